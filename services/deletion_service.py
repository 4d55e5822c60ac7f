# ============================================================================
# DELETION PIPELINE
# ============================================================================
# STATUS: Service - inverse of the ingest state machine
# PURPOSE: Revoke serving handle, then delete the stored object
# EXPORTS: DeletionPipeline
# ============================================================================

"""
Deletion Pipeline.

Order is revoke-then-delete. A reader can briefly see a dead handle over
a still-present object, never a live handle over a missing one.

Both steps are idempotent: a handle or object that is already gone
counts as done. The record's display fields are left alone unless the
caller asks for them to be cleared as a separate, final step.

All calls share one Deadline, so revoke, delete and clear together stay
within the budget given to delete().
"""

from typing import Optional

from core.deadline import Deadline
from core.models.image import ResourceRef
from core.models.results import DeleteResult
from exceptions import HandleRevocationFailed, PersistDeletionFailed, PipelineError, RecordUpdateFailed
from interfaces.repository import IObjectStore, IRecordStore, IServingHandleProvider
from util_logger import LoggerFactory, ComponentType, LogContext, LogLevel, log_checkpoint

from .resource_locks import ResourceLocks

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "DeletionPipeline")


class DeletionPipeline:
    """Delete state machine over the handle provider and object store."""

    def __init__(
        self,
        images_root: str,
        handles: IServingHandleProvider,
        object_store: IObjectStore,
        records: Optional[IRecordStore] = None,
        locks: Optional[ResourceLocks] = None,
        deadline_seconds: Optional[float] = None
    ):
        self.images_root = images_root
        self.deadline_seconds = deadline_seconds
        self.handles = handles
        self.object_store = object_store
        self.records = records
        self.locks = locks or ResourceLocks(enabled=False)

    def delete(
        self,
        resource_id: str,
        clear_record: bool = False,
        correlation_id: Optional[str] = None,
        timeout_seconds: Optional[float] = None
    ) -> DeleteResult:
        """
        Tear down the serving handle and stored object for a resource.

        Args:
            resource_id: Record id
            clear_record: Also null the record's display fields afterwards
            correlation_id: Request id for log correlation
            timeout_seconds: Budget for all calls (constructor default when None)

        Raises:
            ValidationFailed: Bad resource id
            HandleRevocationFailed: Revoke failed; the object was not touched
            PersistDeletionFailed: Object delete failed after the handle was revoked
            RecordUpdateFailed: Record clear failed (only with clear_record)
        """
        ref = ResourceRef.create(resource_id, self.images_root)
        deadline = Deadline(timeout_seconds if timeout_seconds is not None else self.deadline_seconds)
        ctx = LogContext(resource_id=ref.resource_id, storage_key=ref.storage_key, correlation_id=correlation_id)

        log_checkpoint(logger, 'DELETE_START', f"🔄 Delete started for resource {ref.resource_id}", context=ctx)

        with self.locks.hold(ref.resource_id):
            try:
                revoked = self._revoke(ref, deadline)
                deleted = self._delete_object(ref, deadline)
                cleared = self._clear_record(ref, deadline) if clear_record else False
            except PipelineError as e:
                log_checkpoint(
                    logger, 'DELETE_FAILED',
                    f"❌ Delete failed for resource {ref.resource_id}: {e}",
                    level=LogLevel.ERROR, context=ctx, operation=e.operation
                )
                raise

        log_checkpoint(
            logger, 'DELETE_COMPLETE',
            f"✅ Delete complete for resource {ref.resource_id}",
            context=ctx, handle_revoked=revoked, object_deleted=deleted, record_cleared=cleared
        )
        return DeleteResult(
            resource_id=ref.resource_id,
            storage_key=ref.storage_key,
            handle_revoked=revoked,
            object_deleted=deleted,
            record_cleared=cleared
        )

    def _revoke(self, ref: ResourceRef, deadline: Deadline) -> bool:
        try:
            return self.handles.revoke(ref.storage_key, timeout=deadline.timeout('revoke_handle'))
        except Exception as e:
            raise HandleRevocationFailed(
                f"serving handle provider error: {e}",
                resource_id=ref.resource_id,
                storage_key=ref.storage_key
            ) from e

    def _delete_object(self, ref: ResourceRef, deadline: Deadline) -> bool:
        try:
            return self.object_store.delete_object(ref.storage_key, timeout=deadline.timeout('delete_object'))
        except Exception as e:
            raise PersistDeletionFailed(
                f"object store delete failed: {e}",
                resource_id=ref.resource_id,
                storage_key=ref.storage_key
            ) from e

    def _clear_record(self, ref: ResourceRef, deadline: Deadline) -> bool:
        if self.records is None:
            raise RecordUpdateFailed(
                "no record store configured for clearing",
                resource_id=ref.resource_id,
                retryable=False
            )
        try:
            return self.records.clear_display_fields(ref.resource_id, timeout=deadline.timeout('clear_record'))
        except Exception as e:
            raise RecordUpdateFailed(
                f"record store error while clearing: {e}",
                resource_id=ref.resource_id,
                storage_key=ref.storage_key
            ) from e
