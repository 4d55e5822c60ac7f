# ============================================================================
# STORAGE CONFIGURATION
# ============================================================================
# STATUS: Core
# PURPOSE: Azure Blob Storage account, image container and key root
# EXPORTS: StorageConfig
# DEPENDENCIES: pydantic
# SOURCE: STORAGE_ACCOUNT_NAME, STORAGE_CONNECTION_STRING, IMAGES_CONTAINER,
#         PRODUCT_IMAGES_DIR
# ============================================================================

"""
Azure Storage Configuration.

Product images live in one container. Every blob name is
``<images_root>/<resource_id>``; images_root comes from
PRODUCT_IMAGES_DIR with surrounding slashes trimmed.
"""

import os
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .defaults import StorageDefaults


class StorageConfig(BaseModel):
    """Azure Blob Storage configuration for stored product images."""

    model_config = ConfigDict(frozen=True)

    account_name: Optional[str] = Field(
        default=None,
        description="Storage account name (managed identity auth via DefaultAzureCredential)"
    )

    connection_string: Optional[str] = Field(
        default=None,
        repr=False,
        description="Storage connection string (local development / Azurite)"
    )

    images_container: str = Field(
        default=StorageDefaults.IMAGES_CONTAINER,
        min_length=3,
        max_length=63,
        description="Container holding stored product images"
    )

    images_root: str = Field(
        default=StorageDefaults.IMAGES_ROOT,
        description="Key prefix for every stored image (PRODUCT_IMAGES_DIR)"
    )

    operation_timeout_seconds: int = Field(
        default=StorageDefaults.OPERATION_TIMEOUT_SECONDS,
        ge=1,
        le=600,
        description="Server-side timeout for one blob call; a smaller caller budget wins"
    )

    @field_validator('images_root')
    @classmethod
    def trim_root(cls, v: str) -> str:
        trimmed = v.strip().strip('/')
        if not trimmed:
            raise ValueError("images_root must not be empty")
        return trimmed

    @property
    def account_url(self) -> Optional[str]:
        if not self.account_name:
            return None
        return f"https://{self.account_name}.blob.core.windows.net"

    def debug_dict(self) -> dict:
        """Debug output with masked connection string."""
        return {
            "account_name": self.account_name,
            "connection_string": "***MASKED***" if self.connection_string else None,
            "images_container": self.images_container,
            "images_root": self.images_root,
            "operation_timeout_seconds": self.operation_timeout_seconds,
        }

    @classmethod
    def from_environment(cls):
        """Load storage configuration from environment variables."""
        return cls(
            account_name=os.environ.get("STORAGE_ACCOUNT_NAME"),
            connection_string=os.environ.get("STORAGE_CONNECTION_STRING"),
            images_container=os.environ.get("IMAGES_CONTAINER", StorageDefaults.IMAGES_CONTAINER),
            images_root=os.environ.get("PRODUCT_IMAGES_DIR", StorageDefaults.IMAGES_ROOT),
            operation_timeout_seconds=int(os.environ.get(
                "STORAGE_OPERATION_TIMEOUT", str(StorageDefaults.OPERATION_TIMEOUT_SECONDS)
            )),
        )
