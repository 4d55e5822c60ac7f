"""
Service wiring tests.
"""

from unittest.mock import MagicMock, patch

from infrastructure.factory import assemble_services, build_services
from tests.factories.fakes import (
    InMemoryObjectStore,
    InMemoryRecordStore,
    InMemoryServingHandles,
    RecordingQueue,
    StubFetcher,
)
from tests.factories.model_factories import make_app_config


def _adapters():
    store = InMemoryObjectStore()
    return store, InMemoryServingHandles(store), InMemoryRecordStore(), RecordingQueue(), StubFetcher()


def test_ingest_and_delete_share_one_lock_table():
    config = make_app_config(ingest={"serialize_per_resource": True})
    services = assemble_services(config, *_adapters())

    assert services.ingestion.locks is services.deletion.locks
    assert services.ingestion.locks.enabled is True
    assert services.dispatcher.pipeline is services.ingestion


def test_locks_disabled_by_default():
    services = assemble_services(make_app_config(), *_adapters())
    assert services.ingestion.locks.enabled is False


def test_build_services_creates_handle_table():
    store, handles, records, queue, fetcher = _adapters()
    handles.ensure_table = MagicMock()

    with patch("infrastructure.factory.RepositoryFactory") as factory:
        factory.create_blob_repository.return_value = store
        factory.create_serving_handle_repository.return_value = handles
        factory.create_record_repository.return_value = records
        factory.create_service_bus_repository.return_value = queue
        factory.create_image_fetcher.return_value = fetcher

        services = build_services(make_app_config())

    handles.ensure_table.assert_called_once_with()
    assert services.object_store is store
    assert services.queue is queue
