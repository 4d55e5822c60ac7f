# ============================================================================
# SERVICE FACTORY
# ============================================================================
# STATUS: Infrastructure - Central creation point for adapters and services
# PURPOSE: Wire concrete adapters and pipelines from the immutable AppConfig
# EXPORTS: ServingServices, RepositoryFactory, build_services
# ============================================================================

"""
Service Factory - Central Creation Point

The only module that constructs concrete adapters. Everything else
depends on the capability interfaces and receives instances from here.

Usage:
    from config import load_config
    from infrastructure.factory import build_services

    services = build_services(load_config())
    services.dispatcher.dispatch('42', 'https://example.test/a.jpg', is_redelivery=False)
"""

from dataclasses import dataclass

from config import AppConfig
from interfaces.repository import (
    IImageFetcher,
    IIngestQueue,
    IObjectStore,
    IRecordStore,
    IServingHandleProvider,
)
from services import DeletionPipeline, IngestionPipeline, ResourceLocks, RetryDispatcher
from util_logger import LoggerFactory, ComponentType, log_exceptions

logger = LoggerFactory.create_logger(ComponentType.FACTORY, "RepositoryFactory")


@dataclass(frozen=True)
class ServingServices:
    """Everything the triggers need, built once per process."""

    config: AppConfig
    object_store: IObjectStore
    handles: IServingHandleProvider
    records: IRecordStore
    queue: IIngestQueue
    fetcher: IImageFetcher
    ingestion: IngestionPipeline
    deletion: DeletionPipeline
    dispatcher: RetryDispatcher


class RepositoryFactory:
    """Factory methods for the concrete adapters."""

    @staticmethod
    def create_blob_repository(config: AppConfig) -> IObjectStore:
        from .blob import BlobRepository
        return BlobRepository(config.storage)

    @staticmethod
    def create_serving_handle_repository(config: AppConfig, object_store: IObjectStore) -> IServingHandleProvider:
        from .serving_handles import ServingHandleRepository
        return ServingHandleRepository(config.database, config.serving, object_store)

    @staticmethod
    def create_record_repository(config: AppConfig) -> IRecordStore:
        from .record_store import ProductRecordRepository
        return ProductRecordRepository(config.database)

    @staticmethod
    def create_service_bus_repository(config: AppConfig) -> IIngestQueue:
        from .service_bus import ServiceBusRepository
        return ServiceBusRepository(config.queues)

    @staticmethod
    def create_image_fetcher(config: AppConfig) -> IImageFetcher:
        from .http_fetcher import HttpImageFetcher
        return HttpImageFetcher(config.ingest)


def assemble_services(
    config: AppConfig,
    object_store: IObjectStore,
    handles: IServingHandleProvider,
    records: IRecordStore,
    queue: IIngestQueue,
    fetcher: IImageFetcher
) -> ServingServices:
    """Build the pipelines on top of already-constructed adapters."""
    # One lock table shared by ingest and delete
    locks = ResourceLocks(enabled=config.ingest.serialize_per_resource)

    ingestion = IngestionPipeline(config, fetcher, object_store, handles, records, locks=locks)
    deletion = DeletionPipeline(
        config.storage.images_root, handles, object_store,
        records=records, locks=locks, deadline_seconds=config.ingest.deadline_seconds
    )
    dispatcher = RetryDispatcher(ingestion, queue, config.queues)

    return ServingServices(
        config=config,
        object_store=object_store,
        handles=handles,
        records=records,
        queue=queue,
        fetcher=fetcher,
        ingestion=ingestion,
        deletion=deletion,
        dispatcher=dispatcher,
    )


@log_exceptions(ComponentType.FACTORY, "build_services")
def build_services(config: AppConfig, ensure_schema: bool = True) -> ServingServices:
    """
    Construct every adapter and pipeline from config.

    Args:
        config: Immutable application config from load_config()
        ensure_schema: Create the serving handle table if missing
    """
    logger.info("🏭 Building adapters and pipelines")

    object_store = RepositoryFactory.create_blob_repository(config)
    handles = RepositoryFactory.create_serving_handle_repository(config, object_store)
    records = RepositoryFactory.create_record_repository(config)
    queue = RepositoryFactory.create_service_bus_repository(config)
    fetcher = RepositoryFactory.create_image_fetcher(config)

    if ensure_schema:
        handles.ensure_table()

    services = assemble_services(config, object_store, handles, records, queue, fetcher)
    logger.info(
        f"✅ Services ready (serialize_per_resource={config.ingest.serialize_per_resource}, "
        f"content_type_policy={config.ingest.content_type_policy.value}, "
        f"source_reference_policy={config.ingest.source_reference_policy.value})"
    )
    return services
