"""
Config and message factories for tests.

Each factory returns a valid object; keyword overrides change single
fields of the nested domain config.
"""

from typing import Any, Dict, Optional

from config import AppConfig, DatabaseConfig, IngestConfig, QueueConfig, ServingConfig, StorageConfig
from core.models.queue import IngestTaskMessage


SERVING_BASE_URL = "https://images.example.com/api"
IMAGES_ROOT = "products"
INGEST_QUEUE = "external-image-urls"


def make_app_config(
    storage: Optional[Dict[str, Any]] = None,
    database: Optional[Dict[str, Any]] = None,
    queues: Optional[Dict[str, Any]] = None,
    serving: Optional[Dict[str, Any]] = None,
    ingest: Optional[Dict[str, Any]] = None,
) -> AppConfig:
    return AppConfig(
        environment="test",
        storage=StorageConfig(**{"account_name": "testimages", "images_root": IMAGES_ROOT, **(storage or {})}),
        database=DatabaseConfig(**{"host": "localhost", "database": "testdb", "db_schema": "app", **(database or {})}),
        queues=QueueConfig(**{"namespace": "test.servicebus.windows.net", "ingest_queue": INGEST_QUEUE, **(queues or {})}),
        serving=ServingConfig(**{"base_url": SERVING_BASE_URL, **(serving or {})}),
        ingest=IngestConfig(**(ingest or {})),
    )


def make_task(**overrides) -> IngestTaskMessage:
    data = {
        "resource_id": "42",
        "source_url": "https://example.test/img.jpg",
        "target": INGEST_QUEUE,
        "retry_limit": 2,
        "min_backoff_seconds": 2,
        "max_backoff_seconds": 60,
    }
    data.update(overrides)
    return IngestTaskMessage(**data)
