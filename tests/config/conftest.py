"""
Config test fixtures - clean environment via monkeypatch.
"""

import pytest


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all env vars that config modules might read, for isolation."""
    env_vars_to_clear = [
        "PRODUCT_IMAGES_DIR", "STORAGE_ACCOUNT_NAME", "STORAGE_CONNECTION_STRING", "IMAGES_CONTAINER",
        "POSTGRES_HOST", "POSTGRES_PORT", "POSTGRES_DATABASE", "APP_SCHEMA", "RECORD_TABLE", "HANDLE_TABLE",
        "USE_MANAGED_IDENTITY", "ServiceBusConnection", "SERVICE_BUS_NAMESPACE",
        "ServiceBusConnection__fullyQualifiedNamespace", "INGEST_QUEUE_NAME", "INGEST_RETRY_LIMIT",
        "INGEST_MIN_BACKOFF_SECONDS", "INGEST_MAX_BACKOFF_SECONDS", "SERVING_BASE_URL", "SERVING_IMAGE_SIZE",
        "SERVING_SECURE", "SERVING_HANDLE_TTL_HOURS", "FETCH_TIMEOUT_SECONDS", "CONTENT_TYPE_POLICY",
        "SOURCE_REFERENCE_POLICY", "SERIALIZE_PER_RESOURCE", "ENVIRONMENT", "INGEST_DEADLINE_SECONDS",
        "STORAGE_OPERATION_TIMEOUT", "DB_STATEMENT_TIMEOUT",
    ]
    for var in env_vars_to_clear:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


@pytest.fixture
def valid_env(clean_env):
    """The smallest environment load_config() accepts."""
    clean_env.setenv("PRODUCT_IMAGES_DIR", "/products/")
    clean_env.setenv("STORAGE_ACCOUNT_NAME", "productimages01")
    clean_env.setenv("POSTGRES_HOST", "myserver.postgres.database.azure.com")
    clean_env.setenv("SERVICE_BUS_NAMESPACE", "myservicebus.servicebus.windows.net")
    clean_env.setenv("SERVING_BASE_URL", "https://images.example.com/api/")
    return clean_env
