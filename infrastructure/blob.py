# ============================================================================
# BLOB REPOSITORY
# ============================================================================
# STATUS: Infrastructure - Azure Blob Storage object store
# PURPOSE: Stored product images (put / get / exists / delete / read SAS)
# EXPORTS: BlobRepository
# INTERFACES: IObjectStore
# DEPENDENCIES: azure-storage-blob, azure-identity, azure-core
# ENTRY_POINTS: infrastructure.factory.build_services()
# ============================================================================

"""
Blob Storage Repository - object store for product images.

Every operation addresses one blob in the images container by its
storage key (``<images_root>/<resource_id>``). Keys are computed by the
pipelines; this module never derives them.

Authentication:
    - STORAGE_CONNECTION_STRING when set (local development, Azurite)
    - otherwise DefaultAzureCredential against STORAGE_ACCOUNT_NAME
      (managed identity in Azure, Azure CLI locally)

Usage:
    blob_repo = BlobRepository(config.storage)
    blob_repo.put_object('products/42', data, 'image/jpeg', {'source': url})
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from azure.storage.blob import (
    BlobServiceClient,
    ContainerClient,
    ContentSettings,
    BlobSasPermissions,
    generate_blob_sas,
)
from azure.identity import DefaultAzureCredential
from azure.core.exceptions import ResourceNotFoundError as AzureResourceNotFoundError

from config import StorageConfig
from core.deadline import bounded_timeout
from exceptions import ConfigurationError, ResourceNotFoundError
from interfaces.repository import IObjectStore
from util_logger import LoggerFactory, ComponentType


logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, __name__)


class BlobRepository(IObjectStore):
    """
    Azure Blob Storage implementation of IObjectStore.

    One instance per process, built by the factory and shared by the
    ingest, delete and serve paths. The container client is created once.
    """

    def __init__(self, config: StorageConfig, blob_service: Optional[BlobServiceClient] = None):
        """
        Args:
            config: Storage configuration
            blob_service: Pre-built client (tests); built from config when None
        """
        self.config = config
        self.container = config.images_container
        self._uses_account_key = False

        if blob_service is not None:
            self.blob_service = blob_service
        elif config.connection_string:
            logger.info("Initializing BlobRepository with connection string")
            self.blob_service = BlobServiceClient.from_connection_string(config.connection_string)
            self._uses_account_key = True
        elif config.account_url:
            logger.info(f"Initializing BlobRepository with DefaultAzureCredential for account: {config.account_name}")
            self.blob_service = BlobServiceClient(
                account_url=config.account_url,
                credential=DefaultAzureCredential()
            )
        else:
            raise ConfigurationError("Either STORAGE_CONNECTION_STRING or STORAGE_ACCOUNT_NAME must be set")

        self.storage_account = self.blob_service.account_name
        self._container_client: ContainerClient = self.blob_service.get_container_client(self.container)
        logger.info(f"✅ BlobRepository initialized for {self.storage_account}/{self.container}")

    def _blob(self, storage_key: str):
        return self._container_client.get_blob_client(storage_key)

    def _timeout(self, timeout: Optional[float]) -> int:
        """Whole seconds for the SDK timeout kwarg, at least 1."""
        return max(1, math.ceil(bounded_timeout(timeout, self.config.operation_timeout_seconds)))

    # ========================================================================
    # CORE BLOB OPERATIONS
    # ========================================================================

    def put_object(
        self,
        storage_key: str,
        data: bytes,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Write (overwrite) a blob.

        Args:
            storage_key: Blob name
            data: Image bytes
            content_type: MIME type stored on the blob
            metadata: Blob metadata (provenance: {'source': url})
            timeout: Caller's remaining budget, capped by operation_timeout_seconds

        Returns:
            Dict with blob properties (etag, last_modified, size)
        """
        try:
            blob_client = self._blob(storage_key)
            seconds = self._timeout(timeout)
            logger.debug(f"Writing blob: {self.container}/{storage_key}")

            blob_client.upload_blob(
                data,
                overwrite=True,
                content_settings=ContentSettings(content_type=content_type or "application/octet-stream"),
                metadata=metadata or {},
                timeout=seconds
            )
            properties = blob_client.get_blob_properties(timeout=seconds)

            result = {
                'container': self.container,
                'storage_key': storage_key,
                'size': properties.size,
                'etag': properties.etag,
                'last_modified': properties.last_modified.isoformat() if properties.last_modified else None
            }
            logger.info(f"✅ Wrote blob: {self.container}/{storage_key} ({properties.size} bytes)")
            return result

        except Exception as e:
            logger.error(f"❌ Failed to write blob {self.container}/{storage_key}: {e}")
            raise

    def get_object(self, storage_key: str, timeout: Optional[float] = None) -> bytes:
        """
        Read a blob into memory.

        Raises:
            ResourceNotFoundError: Blob does not exist
        """
        try:
            return self._blob(storage_key).download_blob(timeout=self._timeout(timeout)).readall()
        except AzureResourceNotFoundError as e:
            raise ResourceNotFoundError(f"Blob not found: {self.container}/{storage_key}") from e

    def object_exists(self, storage_key: str, timeout: Optional[float] = None) -> bool:
        try:
            self._blob(storage_key).get_blob_properties(timeout=self._timeout(timeout))
            return True
        except AzureResourceNotFoundError:
            return False
        except Exception as e:
            logger.error(f"Error checking blob existence {self.container}/{storage_key}: {e}")
            raise

    def delete_object(self, storage_key: str, timeout: Optional[float] = None) -> bool:
        """
        Delete a blob.

        Returns:
            True if deleted, False if it was already absent
        """
        try:
            self._blob(storage_key).delete_blob(timeout=self._timeout(timeout))
            logger.info(f"Deleted blob: {self.container}/{storage_key}")
            return True
        except AzureResourceNotFoundError:
            logger.warning(f"Blob not found for deletion: {self.container}/{storage_key}")
            return False
        except Exception as e:
            logger.error(f"❌ Failed to delete blob {self.container}/{storage_key}: {e}")
            raise

    def get_read_url(self, storage_key: str, minutes: int) -> str:
        """
        Blob URL with a read-only SAS token.

        Uses the account key when the repository was built from a
        connection string, a user delegation key otherwise (managed
        identity needs 'Storage Blob Delegator').
        """
        blob_client = self._blob(storage_key)
        start_time = datetime.now(timezone.utc) - timedelta(minutes=5)
        expiry_time = datetime.now(timezone.utc) + timedelta(minutes=minutes)

        if self._uses_account_key:
            sas_token = generate_blob_sas(
                account_name=self.storage_account,
                container_name=self.container,
                blob_name=storage_key,
                account_key=self.blob_service.credential.account_key,
                permission=BlobSasPermissions(read=True),
                expiry=expiry_time,
                start=start_time
            )
        else:
            user_delegation_key = self.blob_service.get_user_delegation_key(
                key_start_time=start_time,
                key_expiry_time=expiry_time
            )
            sas_token = generate_blob_sas(
                account_name=self.storage_account,
                container_name=self.container,
                blob_name=storage_key,
                user_delegation_key=user_delegation_key,
                permission=BlobSasPermissions(read=True),
                expiry=expiry_time,
                start=start_time
            )

        logger.debug(f"SAS URL generated for {self.container}/{storage_key} (expires: {expiry_time.isoformat()})")
        return f"{blob_client.url}?{sas_token}"
