"""
Core Data Models Package.

Contains pure data structures without business logic.

Exports:
    ResourceRef, FetchedImage, IngestedImage, ServingHandle: Image models
    IngestTaskMessage: Ingest queue message
    IngestResult, DeleteResult, DispatchResult, DeliveryOutcome: Results
    ContentTypePolicy, SourceReferencePolicy, SourceKind,
    DispatchStatus, DeliveryStatus: Enums
"""

from .enums import (
    ContentTypePolicy,
    SourceReferencePolicy,
    SourceKind,
    DispatchStatus,
    DeliveryStatus
)

from .image import (
    ResourceRef,
    FetchedImage,
    IngestedImage,
    ServingHandle
)

from .queue import IngestTaskMessage

from .results import (
    IngestResult,
    DeleteResult,
    DispatchResult,
    DeliveryOutcome
)

__all__ = [
    'ContentTypePolicy',
    'SourceReferencePolicy',
    'SourceKind',
    'DispatchStatus',
    'DeliveryStatus',
    'ResourceRef',
    'FetchedImage',
    'IngestedImage',
    'ServingHandle',
    'IngestTaskMessage',
    'IngestResult',
    'DeleteResult',
    'DispatchResult',
    'DeliveryOutcome',
]
