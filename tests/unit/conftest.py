"""
Unit test fixtures - pipelines wired to in-memory adapters.
"""

import pytest

from services import DeletionPipeline, IngestionPipeline, ResourceLocks, RetryDispatcher
from tests.factories.fakes import (
    InMemoryObjectStore,
    InMemoryRecordStore,
    InMemoryServingHandles,
    RecordingQueue,
    StubFetcher,
)
from tests.factories.model_factories import make_app_config


@pytest.fixture
def app_config():
    return make_app_config()


@pytest.fixture
def journal():
    return []


@pytest.fixture
def object_store(journal):
    return InMemoryObjectStore(journal=journal)


@pytest.fixture
def handles(object_store):
    return InMemoryServingHandles(object_store)


@pytest.fixture
def records(journal):
    return InMemoryRecordStore(ids=["42", "43"], journal=journal)


@pytest.fixture
def fetcher():
    return StubFetcher()


@pytest.fixture
def queue():
    return RecordingQueue()


@pytest.fixture
def pipeline(app_config, fetcher, object_store, handles, records):
    return IngestionPipeline(app_config, fetcher, object_store, handles, records, locks=ResourceLocks())


@pytest.fixture
def deletion(app_config, handles, object_store, records):
    return DeletionPipeline(app_config.storage.images_root, handles, object_store, records=records)


@pytest.fixture
def dispatcher(pipeline, queue, app_config):
    return RetryDispatcher(pipeline, queue, app_config.queues)
