"""
Ingest Queue Message Model.

Pydantic model for the deferred ingest task carried on Service Bus.

Exports:
    IngestTaskMessage: Task body for the ingest queue
"""

from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IngestTaskMessage(BaseModel):
    """
    Deferred ingest request.

    Carries the (resource_id, source_url) pair plus its own retry budget
    so a redelivery never depends on the config of the instance that
    enqueued it. attempt counts from 0 for the first delivery.
    """

    model_config = ConfigDict(frozen=True)

    resource_id: str = Field(..., min_length=1, max_length=255, description="Record the image belongs to")
    source_url: str = Field(..., min_length=1, description="Absolute http(s) URL to fetch")
    target: str = Field(..., min_length=1, description="Queue the task is redelivered on")
    attempt: int = Field(default=0, ge=0, description="Zero-based delivery attempt")
    retry_limit: int = Field(default=2, ge=0, le=10, description="Additional attempts after the first")
    min_backoff_seconds: int = Field(default=2, ge=0, description="Delay before the first retry")
    max_backoff_seconds: int = Field(default=60, ge=0, description="Upper bound for any retry delay")
    correlation_id: Optional[str] = Field(default=None, max_length=64)
    enqueued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator('resource_id')
    @classmethod
    def resource_id_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("resource_id must not be blank")
        return v

    @field_validator('source_url')
    @classmethod
    def source_url_is_absolute_http(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme.lower() not in ('http', 'https') or not parsed.netloc:
            raise ValueError(f"source_url must be an absolute http(s) URL, got '{v}'")
        return v

    @property
    def retries_remaining(self) -> int:
        return max(self.retry_limit - self.attempt, 0)

    def backoff_seconds(self) -> int:
        """Delay before the next attempt: min_backoff doubled per attempt, capped."""
        return min(self.min_backoff_seconds * (2 ** self.attempt), self.max_backoff_seconds)

    def next_attempt(self) -> 'IngestTaskMessage':
        return self.model_copy(update={
            'attempt': self.attempt + 1,
            'enqueued_at': datetime.now(timezone.utc)
        })
