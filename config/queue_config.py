"""
Azure Service Bus Queue Configuration.

Provides configuration for:
    - Service Bus connection settings
    - The ingest queue name
    - Retry budget and backoff for ingest tasks
    - SDK transport retries

Exports:
    QueueConfig: Pydantic queue configuration model
"""

import os
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .defaults import QueueDefaults


class QueueConfig(BaseModel):
    """
    Azure Service Bus queue configuration.

    retry_limit counts attempts after the first delivery, so the
    default of 2 means an ingest task runs at most three times.
    """

    model_config = ConfigDict(frozen=True)

    connection_string: Optional[str] = Field(
        default=None,
        repr=False,
        description="Service Bus connection string (ServiceBusConnection app setting)"
    )

    namespace: Optional[str] = Field(
        default=None,
        description="Fully qualified namespace for managed identity auth"
    )

    ingest_queue: str = Field(
        default=QueueDefaults.INGEST_QUEUE,
        description="Queue carrying deferred ingest tasks"
    )

    retry_limit: int = Field(default=QueueDefaults.INGEST_RETRY_LIMIT, ge=0, le=10)

    min_backoff_seconds: int = Field(default=QueueDefaults.INGEST_MIN_BACKOFF_SECONDS, ge=0, le=3600)

    max_backoff_seconds: int = Field(default=QueueDefaults.INGEST_MAX_BACKOFF_SECONDS, ge=0, le=86400)

    retry_count: int = Field(
        default=QueueDefaults.RETRY_COUNT,
        ge=0,
        le=10,
        description="Retry attempts inside the Service Bus SDK for one send"
    )

    @model_validator(mode='after')
    def backoff_bounds(self):
        if self.max_backoff_seconds < self.min_backoff_seconds:
            raise ValueError("max_backoff_seconds must be >= min_backoff_seconds")
        return self

    def debug_dict(self) -> dict:
        return {
            "connection_string": "***MASKED***" if self.connection_string else None,
            "namespace": self.namespace,
            "ingest_queue": self.ingest_queue,
            "retry_limit": self.retry_limit,
            "min_backoff_seconds": self.min_backoff_seconds,
            "max_backoff_seconds": self.max_backoff_seconds,
            "retry_count": self.retry_count,
        }

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            connection_string=os.environ.get("ServiceBusConnection"),
            # Check both SERVICE_BUS_NAMESPACE and Azure Functions binding variable
            namespace=os.environ.get("SERVICE_BUS_NAMESPACE") or os.environ.get("ServiceBusConnection__fullyQualifiedNamespace"),
            ingest_queue=os.environ.get("INGEST_QUEUE_NAME", QueueDefaults.INGEST_QUEUE),
            retry_limit=int(os.environ.get("INGEST_RETRY_LIMIT", str(QueueDefaults.INGEST_RETRY_LIMIT))),
            min_backoff_seconds=int(os.environ.get(
                "INGEST_MIN_BACKOFF_SECONDS", str(QueueDefaults.INGEST_MIN_BACKOFF_SECONDS)
            )),
            max_backoff_seconds=int(os.environ.get(
                "INGEST_MAX_BACKOFF_SECONDS", str(QueueDefaults.INGEST_MAX_BACKOFF_SECONDS)
            )),
            retry_count=int(os.environ.get("SERVICE_BUS_RETRY_COUNT", str(QueueDefaults.RETRY_COUNT))),
        )
