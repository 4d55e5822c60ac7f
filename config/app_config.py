# ============================================================================
# APPLICATION CONFIGURATION
# ============================================================================
# STATUS: Core
# PURPOSE: Immutable composition of the domain configs
# EXPORTS: AppConfig
# DEPENDENCIES: pydantic, domain config modules
# ============================================================================

"""
Application Configuration - composition of domain configs.

AppConfig is frozen. It is built once by config.load_config() at
startup and handed to the factory; components receive the slice they
need and never read the environment themselves.
"""

import os
from pydantic import BaseModel, ConfigDict, Field

from .defaults import AppDefaults
from .storage_config import StorageConfig
from .database_config import DatabaseConfig
from .queue_config import QueueConfig
from .serving_config import ServingConfig
from .ingest_config import IngestConfig


class AppConfig(BaseModel):
    """
    Application configuration - composition of domain configs.

    Each domain config manages its own validation and defaults.
    """

    model_config = ConfigDict(frozen=True)

    environment: str = Field(
        default=AppDefaults.ENVIRONMENT,
        description="Environment name (dev, qa, prod)",
        examples=["dev", "qa", "prod"]
    )

    debug_mode: bool = Field(default=AppDefaults.DEBUG_MODE)

    storage: StorageConfig
    database: DatabaseConfig
    queues: QueueConfig
    serving: ServingConfig
    ingest: IngestConfig

    def debug_dict(self) -> dict:
        """Debug output for startup logging, secrets masked."""
        return {
            "environment": self.environment,
            "debug_mode": self.debug_mode,
            "storage": self.storage.debug_dict(),
            "database": self.database.debug_dict(),
            "queues": self.queues.debug_dict(),
            "serving": self.serving.debug_dict(),
            "ingest": self.ingest.debug_dict(),
        }

    @classmethod
    def from_environment(cls):
        """Load all configs from environment."""
        return cls(
            environment=os.environ.get("ENVIRONMENT", AppDefaults.ENVIRONMENT),
            debug_mode=os.environ.get("DEBUG_MODE", str(AppDefaults.DEBUG_MODE)).lower() == "true",
            storage=StorageConfig.from_environment(),
            database=DatabaseConfig.from_environment(),
            queues=QueueConfig.from_environment(),
            serving=ServingConfig.from_environment(),
            ingest=IngestConfig.from_environment(),
        )
