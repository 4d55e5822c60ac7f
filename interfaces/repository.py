# ============================================================================
# CAPABILITY INTERFACES
# ============================================================================
# PURPOSE: Abstract contracts for every external collaborator of the pipelines
# EXPORTS: IImageFetcher, IObjectStore, IServingHandleProvider, IRecordStore,
#          IIngestQueue
# DEPENDENCIES: abc, typing
# PATTERNS: Interface segregation, dependency inversion
# ENTRY_POINTS: Implemented in infrastructure/, faked in tests/factories/fakes.py
# ============================================================================

"""
Capability Interfaces

The ingest and delete pipelines only ever talk to these ABCs. Each has
one concrete adapter under infrastructure/ and one in-memory fake under
tests/.

Every call a pipeline makes takes an optional ``timeout``: the seconds left
in the caller's deadline. Adapters apply the smaller of that and their
own configured per-call ceiling.

Adapters raise their own errors (Azure SDK, psycopg, httpx, or
exceptions.ResourceNotFoundError); the pipelines wrap them into the
pipeline taxonomy. The fetcher is the exception: content-type gating and
status checks are its algorithm, so it raises FetchFailed itself.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from core.models.image import FetchedImage, ServingHandle
from core.models.queue import IngestTaskMessage


class IImageFetcher(ABC):
    """Retrieves image bytes from an external URL."""

    @abstractmethod
    def fetch(self, source_url: str, storage_key: str, timeout: Optional[float] = None) -> FetchedImage:
        """
        Fetch one image.

        Args:
            source_url: Absolute http(s) URL
            storage_key: Destination key; empty is rejected before any request
            timeout: Caller's remaining budget in seconds

        Raises:
            FetchFailed: Empty key/URL, transport error, non-2xx status,
                or a content type the policy rejects
        """
        pass


class IObjectStore(ABC):
    """Key addressed byte store holding stored images."""

    @abstractmethod
    def put_object(
        self,
        storage_key: str,
        data: bytes,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None
    ) -> Dict[str, Any]:
        """Write (overwrite) the object at storage_key. Returns upload details."""
        pass

    @abstractmethod
    def get_object(self, storage_key: str, timeout: Optional[float] = None) -> bytes:
        """Read the object. Raises ResourceNotFoundError when absent."""
        pass

    @abstractmethod
    def object_exists(self, storage_key: str, timeout: Optional[float] = None) -> bool:
        pass

    @abstractmethod
    def delete_object(self, storage_key: str, timeout: Optional[float] = None) -> bool:
        """Delete the object. Returns False when it was already absent."""
        pass

    @abstractmethod
    def get_read_url(self, storage_key: str, minutes: int) -> str:
        """Short-lived read URL for the object."""
        pass


class IServingHandleProvider(ABC):
    """Mints and revokes public serving URLs for stored objects."""

    @abstractmethod
    def mint(self, storage_key: str, size: int, secure: bool, timeout: Optional[float] = None) -> str:
        """
        Mint a serving URL for storage_key.

        A new mint for the same key replaces the previous handle.

        Raises:
            ResourceNotFoundError: No object at storage_key
        """
        pass

    @abstractmethod
    def revoke(self, storage_key: str, timeout: Optional[float] = None) -> bool:
        """Revoke the handle for storage_key. Returns False when none existed."""
        pass

    @abstractmethod
    def resolve(self, token: str) -> Optional[ServingHandle]:
        """Live handle for token, or None when unknown, revoked or expired."""
        pass


class IRecordStore(ABC):
    """Durable record holding the display URL and storage location fields."""

    @abstractmethod
    def update_display_fields(
        self,
        resource_id: str,
        display_url: str,
        storage_location: str,
        timeout: Optional[float] = None
    ) -> None:
        """
        Write both fields for resource_id.

        Raises:
            ResourceNotFoundError: No record for resource_id
        """
        pass

    @abstractmethod
    def clear_display_fields(self, resource_id: str, timeout: Optional[float] = None) -> bool:
        """Null both fields. Returns False when no record matched."""
        pass


class IIngestQueue(ABC):
    """At-least-once delivery mechanism for deferred ingest tasks."""

    @abstractmethod
    def enqueue(self, task: IngestTaskMessage, delay_seconds: int = 0) -> str:
        """
        Submit a task, optionally delayed.

        Returns:
            Message ID
        """
        pass
