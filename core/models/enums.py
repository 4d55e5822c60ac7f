"""
Pure Enumeration Types for the image serving core.

No business logic - pure type definitions only.

Exports:
    ContentTypePolicy: What happens to a fetched image outside the allow-list
    SourceReferencePolicy: How a non-URL source reference is interpreted
    SourceKind: Classification of a source reference
    DispatchStatus: Outcome of a dispatch call
    DeliveryStatus: Outcome of handling one queue delivery
"""

from enum import Enum


class ContentTypePolicy(str, Enum):
    """
    Content-type allow-list policy for fetched images.

    ENFORCE rejects a disallowed type before anything is persisted.
    ADVISORY records the mismatch and stores the bytes anyway.
    """

    ENFORCE = "enforce"
    ADVISORY = "advisory"


class SourceReferencePolicy(str, Enum):
    """
    Interpretation of a source reference that is not an http(s) URL.

    STORED_KEY treats it as the storage key of an object that is already
    resident (skip-fetch, re-mints the serving URL). REJECT fails it
    as a validation error.
    """

    STORED_KEY = "stored_key"
    REJECT = "reject"


class SourceKind(Enum):
    """Where the bytes for an ingest come from."""

    EXTERNAL = "external"
    STORED_KEY = "stored_key"


class DispatchStatus(Enum):
    """
    Result of RetryDispatcher.dispatch.

    - QUEUED: first contact, task handed to the ingest queue
    - COMPLETED: redelivery, ingest ran synchronously
    """

    QUEUED = "queued"
    COMPLETED = "completed"


class DeliveryStatus(Enum):
    """
    Result of handling one ingest queue delivery.

    State transitions for a task across deliveries:
    - COMPLETED (ingest succeeded)
    - RETRY_SCHEDULED -> ... -> COMPLETED
    - RETRY_SCHEDULED -> ... -> EXHAUSTED (budget used up)
    - REJECTED (permanent failure, no retry attempted)
    """

    COMPLETED = "completed"
    RETRY_SCHEDULED = "retry_scheduled"
    EXHAUSTED = "exhausted"
    REJECTED = "rejected"
