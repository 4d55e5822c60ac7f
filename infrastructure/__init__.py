"""
Infrastructure Package - concrete adapters for Azure and PostgreSQL.

Modules:
    blob.py: BlobRepository (IObjectStore)
    serving_handles.py: ServingHandleRepository (IServingHandleProvider)
    record_store.py: ProductRecordRepository (IRecordStore)
    service_bus.py: ServiceBusRepository (IIngestQueue)
    http_fetcher.py: HttpImageFetcher (IImageFetcher)
    postgresql.py: PostgreSQLRepository base
    factory.py: build_services()

Adapters are imported from their modules directly so that importing this
package does not pull in every Azure SDK.
"""
