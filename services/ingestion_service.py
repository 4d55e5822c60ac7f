# ============================================================================
# INGESTION PIPELINE
# ============================================================================
# STATUS: Service - core ingest state machine
# PURPOSE: Fetch -> persist -> mint serving handle -> write back to record
# EXPORTS: IngestionPipeline
# DEPENDENCIES: interfaces.repository (capabilities), core.models
# ============================================================================

"""
Ingestion Pipeline.

Takes a (resource_id, source) pair through, in strict order:

    1. derive the storage key from the resource id
    2. fetch bytes + content type            (external sources only)
    3. persist bytes with provenance metadata (external sources only)
    4. mint a serving handle for the key (fixed display size, secure)
    5. write serving URL + storage key back to the record

Each step needs the previous one to have succeeded. Nothing is rolled
back on failure: steps 3-5 overwrite, so running the same ingest again
converges on the same end state. Validation happens before step 2, so a
rejected request touches none of the stores.

All steps share one Deadline. Each adapter call gets the time left, and a
step that starts with nothing left fails like any other error of that
step (retryable), chained to a TimeoutError.

A source that is this resource's own storage key (and the policy allows
it) skips steps 2-3 and only re-mints the serving URL.
"""

from typing import Optional

from config import AppConfig
from core.deadline import Deadline
from core.models.enums import SourceKind
from core.models.image import FetchedImage, IngestedImage, ResourceRef
from core.models.results import IngestResult
from core.source_reference import classify_source
from exceptions import (
    ContractViolationError,
    FetchFailed,
    HandleCreationFailed,
    PersistFailed,
    PipelineError,
    RecordUpdateFailed,
    ResourceNotFoundError,
)
from interfaces.repository import IImageFetcher, IObjectStore, IRecordStore, IServingHandleProvider
from util_logger import LoggerFactory, ComponentType, LogContext, LogLevel, log_checkpoint

from .resource_locks import ResourceLocks

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "IngestionPipeline")


class IngestionPipeline:
    """Ingest state machine over the four capability interfaces."""

    def __init__(
        self,
        config: AppConfig,
        fetcher: IImageFetcher,
        object_store: IObjectStore,
        handles: IServingHandleProvider,
        records: IRecordStore,
        locks: Optional[ResourceLocks] = None
    ):
        self.config = config
        self.fetcher = fetcher
        self.object_store = object_store
        self.handles = handles
        self.records = records
        self.locks = locks or ResourceLocks(enabled=config.ingest.serialize_per_resource)

    def resource_ref(self, resource_id: Optional[str]) -> ResourceRef:
        """Validated ResourceRef under the configured images root."""
        return ResourceRef.create(resource_id, self.config.storage.images_root)

    def ingest(
        self,
        resource_id: str,
        source: str,
        correlation_id: Optional[str] = None,
        timeout_seconds: Optional[float] = None
    ) -> IngestResult:
        """
        Run the pipeline for one resource.

        Args:
            resource_id: Record id, non-empty single key segment
            source: External http(s) URL, or the resource's storage key
            correlation_id: Request / message id for log correlation
            timeout_seconds: Budget for the whole run, shared by every I/O
                call (IngestConfig.deadline_seconds when None)

        Returns:
            IngestResult with the serving URL now stored on the record

        Raises:
            ValidationFailed: Bad resource id or source reference
            FetchFailed, PersistFailed, HandleCreationFailed, RecordUpdateFailed
        """
        ref = self.resource_ref(resource_id)
        kind = classify_source(source, ref, self.config.ingest.source_reference_policy)
        deadline = Deadline(
            timeout_seconds if timeout_seconds is not None else self.config.ingest.deadline_seconds
        )
        ctx = LogContext(
            resource_id=ref.resource_id,
            storage_key=ref.storage_key,
            correlation_id=correlation_id
        )

        log_checkpoint(
            logger, 'INGEST_START',
            f"🔄 Ingest started for resource {ref.resource_id} ({kind.value})",
            context=ctx, source=source
        )

        with self.locks.hold(ref.resource_id):
            try:
                if kind == SourceKind.EXTERNAL:
                    image = self._fetch(ref, source, ctx, deadline)
                    self._persist(ref, image, ctx, deadline)
                else:
                    image = IngestedImage(source_url=source, storage_key=ref.storage_key)

                image.serving_url = self._mint(ref, ctx, deadline)
                self._write_back(ref, image.serving_url, ctx, deadline)
            except PipelineError as e:
                log_checkpoint(
                    logger, 'INGEST_FAILED',
                    f"❌ Ingest failed for resource {ref.resource_id}: {e}",
                    level=LogLevel.ERROR, context=ctx,
                    operation=e.operation, retryable=e.retryable
                )
                raise

        log_checkpoint(
            logger, 'INGEST_COMPLETE',
            f"✅ Ingest complete for resource {ref.resource_id}",
            context=ctx, serving_url=image.serving_url
        )
        return IngestResult(
            resource_id=ref.resource_id,
            storage_key=ref.storage_key,
            serving_url=image.serving_url,
            source_kind=kind,
            content_type=image.content_type,
            content_type_allowed=image.content_type_allowed if kind == SourceKind.EXTERNAL else None,
            bytes_stored=len(image.data) if kind == SourceKind.EXTERNAL else None
        )

    # ========================================================================
    # STEPS
    # ========================================================================

    def _fetch(self, ref: ResourceRef, source_url: str, ctx: LogContext, deadline: Deadline) -> IngestedImage:
        try:
            fetched = self.fetcher.fetch(source_url, ref.storage_key, timeout=deadline.timeout('fetch'))
        except FetchFailed as e:
            e.resource_id = ref.resource_id
            e.storage_key = e.storage_key or ref.storage_key
            raise
        except Exception as e:
            raise FetchFailed(
                f"fetcher error for {source_url}: {e}",
                resource_id=ref.resource_id,
                storage_key=ref.storage_key
            ) from e

        if not isinstance(fetched, FetchedImage) or not isinstance(fetched.data, bytes):
            raise ContractViolationError(
                f"{type(self.fetcher).__name__}.fetch must return a FetchedImage with bytes data, "
                f"got {type(fetched).__name__}"
            )

        log_checkpoint(
            logger, 'INGEST_FETCHED',
            f"Fetched {fetched.size_bytes} bytes for resource {ref.resource_id}",
            level=LogLevel.DEBUG, context=ctx,
            content_type=fetched.content_type, content_type_allowed=fetched.content_type_allowed
        )
        return IngestedImage.from_fetch(fetched, ref.storage_key)

    def _persist(self, ref: ResourceRef, image: IngestedImage, ctx: LogContext, deadline: Deadline) -> None:
        try:
            self.object_store.put_object(
                ref.storage_key,
                image.data,
                content_type=image.content_type,
                metadata=image.provenance_metadata(),
                timeout=deadline.timeout('persist')
            )
        except Exception as e:
            raise PersistFailed(
                f"object store put failed: {e}",
                resource_id=ref.resource_id,
                storage_key=ref.storage_key
            ) from e

        log_checkpoint(
            logger, 'INGEST_PERSISTED',
            f"Persisted resource {ref.resource_id} to {ref.storage_key}",
            level=LogLevel.DEBUG, context=ctx, bytes=len(image.data)
        )

    def _mint(self, ref: ResourceRef, ctx: LogContext, deadline: Deadline) -> str:
        serving = self.config.serving
        try:
            serving_url = self.handles.mint(
                ref.storage_key, serving.image_size, serving.secure, timeout=deadline.timeout('mint_handle')
            )
        except ResourceNotFoundError as e:
            raise HandleCreationFailed(
                f"no stored object to serve: {e}",
                object_missing=True,
                resource_id=ref.resource_id,
                storage_key=ref.storage_key
            ) from e
        except Exception as e:
            raise HandleCreationFailed(
                f"serving handle provider error: {e}",
                resource_id=ref.resource_id,
                storage_key=ref.storage_key
            ) from e

        if not serving_url:
            raise HandleCreationFailed(
                "serving handle provider returned an empty URL",
                resource_id=ref.resource_id,
                storage_key=ref.storage_key
            )

        log_checkpoint(
            logger, 'INGEST_HANDLE_MINTED',
            f"Minted serving URL for resource {ref.resource_id}",
            level=LogLevel.DEBUG, context=ctx, serving_url=serving_url
        )
        return serving_url

    def _write_back(self, ref: ResourceRef, serving_url: str, ctx: LogContext, deadline: Deadline) -> None:
        try:
            self.records.update_display_fields(
                ref.resource_id, serving_url, ref.storage_key, timeout=deadline.timeout('update_record')
            )
        except ResourceNotFoundError as e:
            raise RecordUpdateFailed(
                f"no record to update: {e}",
                resource_id=ref.resource_id,
                storage_key=ref.storage_key,
                retryable=False
            ) from e
        except Exception as e:
            raise RecordUpdateFailed(
                f"record store error: {e}",
                resource_id=ref.resource_id,
                storage_key=ref.storage_key
            ) from e

        log_checkpoint(
            logger, 'INGEST_RECORD_UPDATED',
            f"Record {ref.resource_id} now points at {serving_url}",
            level=LogLevel.DEBUG, context=ctx
        )
