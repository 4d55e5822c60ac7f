"""
Trigger test fixtures - services assembled over in-memory adapters.
"""

import pytest

from infrastructure.factory import assemble_services
from tests.factories.fakes import (
    InMemoryObjectStore,
    InMemoryRecordStore,
    InMemoryServingHandles,
    RecordingQueue,
    StubFetcher,
)
from tests.factories.model_factories import make_app_config


@pytest.fixture
def services():
    store = InMemoryObjectStore()
    return assemble_services(
        make_app_config(),
        object_store=store,
        handles=InMemoryServingHandles(store),
        records=InMemoryRecordStore(ids=["42"]),
        queue=RecordingQueue(),
        fetcher=StubFetcher(),
    )
