# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# STATUS: Core - single source of truth for default values
# PURPOSE: Constants used as pydantic Field defaults and env fallbacks
# EXPORTS: AppDefaults, StorageDefaults, DatabaseDefaults, QueueDefaults,
#          ServingDefaults, IngestDefaults
# ============================================================================

"""
Configuration Defaults.

Every default lives here so the domain config modules and the env
validation rules agree on the same values.

Usage:
    from config.defaults import QueueDefaults
    retry_limit = QueueDefaults.INGEST_RETRY_LIMIT
"""


class AppDefaults:
    """Core application settings."""
    ENVIRONMENT = "dev"
    DEBUG_MODE = False


class StorageDefaults:
    """Azure Blob Storage settings for stored product images."""
    IMAGES_CONTAINER = "product-images"
    # Prefix of every storage key: <images_root>/<resource_id>
    IMAGES_ROOT = "products"

    # Server-side timeout for one blob call
    OPERATION_TIMEOUT_SECONDS = 30


class DatabaseDefaults:
    """PostgreSQL settings for product records and serving handles."""
    HOST = "localhost"
    PORT = 5432
    DATABASE = "products"
    USER = "postgres"
    SCHEMA = "public"
    CONNECTION_TIMEOUT_SECONDS = 30
    # Upper bound for one SQL statement (libpq statement_timeout)
    STATEMENT_TIMEOUT_SECONDS = 30

    RECORD_TABLE = "products"
    RECORD_ID_COLUMN = "id"
    RECORD_URL_COLUMN = "image_url"
    RECORD_LOCATION_COLUMN = "image_location"

    HANDLE_TABLE = "serving_handles"

    # Scope for Entra ID tokens used as the PostgreSQL password
    AAD_TOKEN_SCOPE = "https://ossrdbms-aad.database.windows.net/.default"


class QueueDefaults:
    """Azure Service Bus settings for the ingest queue."""
    INGEST_QUEUE = "external-image-urls"

    # Retry budget for one ingest task: 2 additional attempts after the first
    INGEST_RETRY_LIMIT = 2
    INGEST_MIN_BACKOFF_SECONDS = 2
    INGEST_MAX_BACKOFF_SECONDS = 60

    # Transport-level retries inside the Service Bus SDK
    RETRY_COUNT = 3


class ServingDefaults:
    """Serving handle / serving URL settings."""
    # One display size for every product image
    IMAGE_SIZE = 450
    SECURE = True
    HANDLE_TTL_HOURS = 168
    READ_URL_MINUTES = 15


class IngestDefaults:
    """Fetch and ingest policy settings."""
    FETCH_TIMEOUT_SECONDS = 30.0
    MAX_REDIRECTS = 5
    # Budget for one synchronous ingest or delete, shared by all of its I/O calls
    DEADLINE_SECONDS = 120.0
    ALLOWED_CONTENT_TYPES = ("image/png", "image/jpg", "image/jpeg")
    CONTENT_TYPE_POLICY = "enforce"
    SOURCE_REFERENCE_POLICY = "stored_key"
    SERIALIZE_PER_RESOURCE = False
    USER_AGENT = "product-image-ingest/1.0"
