"""
Pipeline Result Data Models.

Represents results of ingest, delete, dispatch and queue delivery.
No business logic - pure data structures.

Exports:
    IngestResult: Result of one successful ingest
    DeleteResult: Result of one successful delete
    DispatchResult: Result of a dispatch call
    DeliveryOutcome: Result of handling one queue delivery
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .enums import DeliveryStatus, DispatchStatus, SourceKind


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IngestResult(BaseModel):
    """Result of IngestionPipeline.ingest. Only built when every step succeeded."""

    resource_id: str
    storage_key: str
    serving_url: str
    source_kind: SourceKind
    content_type: Optional[str] = None
    content_type_allowed: Optional[bool] = None
    bytes_stored: Optional[int] = None
    completed_at: datetime = Field(default_factory=_utc_now)

    @property
    def fetched(self) -> bool:
        return self.source_kind == SourceKind.EXTERNAL

    def to_response(self) -> Dict[str, Any]:
        return {
            'resource_id': self.resource_id,
            'storage_key': self.storage_key,
            'serving_url': self.serving_url,
            'fetched': self.fetched,
            'content_type': self.content_type,
            'bytes_stored': self.bytes_stored,
        }


class DeleteResult(BaseModel):
    """
    Result of DeletionPipeline.delete.

    handle_revoked / object_deleted are False when the artifact was
    already gone, which still counts as success.
    """

    resource_id: str
    storage_key: str
    handle_revoked: bool
    object_deleted: bool
    record_cleared: bool = False
    completed_at: datetime = Field(default_factory=_utc_now)

    def to_response(self) -> Dict[str, Any]:
        return {
            'resource_id': self.resource_id,
            'storage_key': self.storage_key,
            'handle_revoked': self.handle_revoked,
            'object_deleted': self.object_deleted,
            'record_cleared': self.record_cleared,
        }


class DispatchResult(BaseModel):
    """Result of RetryDispatcher.dispatch."""

    status: DispatchStatus
    resource_id: str
    message_id: Optional[str] = None
    ingest: Optional[IngestResult] = None

    @property
    def serving_url(self) -> Optional[str]:
        return self.ingest.serving_url if self.ingest else None


class DeliveryOutcome(BaseModel):
    """Result of RetryDispatcher.handle_delivery for one queue message."""

    status: DeliveryStatus
    resource_id: str
    attempt: int
    serving_url: Optional[str] = None
    error: Optional[Dict[str, Any]] = None
    next_delay_seconds: Optional[int] = None
    retry_message_id: Optional[str] = None

    @property
    def terminal(self) -> bool:
        return self.status in (DeliveryStatus.EXHAUSTED, DeliveryStatus.REJECTED)
