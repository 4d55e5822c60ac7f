"""
Image Domain Models.

Value objects that flow through the ingest and delete pipelines.

Exports:
    ResourceRef: Resource id plus the storage key derived from it
    FetchedImage: Bytes and content type returned by a fetch
    IngestedImage: In-flight unit of work for one ingest attempt
    ServingHandle: Persisted serving handle row
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from exceptions import ValidationFailed


@dataclass(frozen=True)
class ResourceRef:
    """
    Identifies the record an image belongs to.

    The storage key is a property, recomputed from the configured root
    and the resource id on every access, so it cannot drift from either.
    """

    resource_id: str
    images_root: str

    @classmethod
    def create(cls, resource_id: Optional[str], images_root: str) -> 'ResourceRef':
        """
        Validate a caller-supplied resource id.

        Raises:
            ValidationFailed: Empty id, or an id that would escape its
                own key segment ('/', '.', '..')
        """
        if resource_id is None or not str(resource_id).strip():
            raise ValidationFailed("resource id is required")

        resource_id = str(resource_id).strip()
        if '/' in resource_id or '\\' in resource_id or resource_id in ('.', '..'):
            raise ValidationFailed(
                f"resource id '{resource_id}' is not a single key segment",
                resource_id=resource_id
            )
        return cls(resource_id=resource_id, images_root=images_root)

    @property
    def storage_key(self) -> str:
        root = self.images_root.strip('/')
        return f"{root}/{self.resource_id}" if root else self.resource_id


@dataclass
class FetchedImage:
    """Raw result of fetching a source URL."""

    data: bytes
    content_type: str
    source_url: str
    content_type_allowed: bool
    status_code: int = 200

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass
class IngestedImage:
    """
    One ingest attempt.

    Created fresh on every attempt, never reused across retries.
    serving_url stays None until a handle has been minted for storage_key.
    """

    source_url: str
    storage_key: str
    data: bytes = b""
    content_type: Optional[str] = None
    content_type_allowed: bool = True
    serving_url: Optional[str] = None

    @classmethod
    def from_fetch(cls, fetched: FetchedImage, storage_key: str) -> 'IngestedImage':
        return cls(
            source_url=fetched.source_url,
            storage_key=storage_key,
            data=fetched.data,
            content_type=fetched.content_type,
            content_type_allowed=fetched.content_type_allowed
        )

    def provenance_metadata(self) -> Dict[str, str]:
        """Blob metadata recording where the bytes came from."""
        return {'source': self.source_url}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ServingHandle:
    """A minted, revocable serving URL bound to one storage key."""

    token: str
    storage_key: str
    size: int
    secure: bool
    expires_at: datetime
    created_at: datetime = field(default_factory=_utc_now)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or _utc_now()
        return now >= self.expires_at
