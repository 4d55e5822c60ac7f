"""
Services Package - ingest, delete and dispatch pipelines.

Exports:
    IngestionPipeline: fetch -> persist -> mint -> write back
    DeletionPipeline: revoke -> delete object
    RetryDispatcher: enqueue first contact, run redeliveries, retry policy
    ResourceLocks: Optional per-resource serialization
"""

from .resource_locks import ResourceLocks
from .ingestion_service import IngestionPipeline
from .deletion_service import DeletionPipeline
from .dispatcher import RetryDispatcher

__all__ = [
    'ResourceLocks',
    'IngestionPipeline',
    'DeletionPipeline',
    'RetryDispatcher',
]
