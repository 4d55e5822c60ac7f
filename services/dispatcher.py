# ============================================================================
# RETRY DISPATCHER
# ============================================================================
# STATUS: Service - decouples callers from source fetch latency
# PURPOSE: Enqueue first-contact ingest requests; run redeliveries; apply the
#          bounded retry / backoff policy to failed deliveries
# EXPORTS: RetryDispatcher
# ============================================================================

"""
Retry Dispatcher.

Two entry points:

    dispatch(resource_id, source, is_redelivery)
        is_redelivery=False (HTTP callers): package the request as an
        IngestTaskMessage and enqueue it. Never runs the ingest.
        is_redelivery=True (queue trigger only): run the ingest now.

    handle_delivery(task)
        Called by the Service Bus trigger for every delivery. On a
        retryable failure with budget left the task is re-sent with
        attempt+1 and a delay of min_backoff * 2**attempt (capped). A
        permanent failure or an exhausted budget is terminal: it is
        logged at CRITICAL (checkpoint INGEST_RETRY_EXHAUSTED) and the
        message completes. If the re-send itself fails, EnqueueFailed
        propagates so Service Bus redelivers the original message.
"""

from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from config import QueueConfig
from core.models.enums import DeliveryStatus, DispatchStatus
from core.models.image import ResourceRef
from core.models.queue import IngestTaskMessage
from core.models.results import DeliveryOutcome, DispatchResult
from core.source_reference import is_external_url
from exceptions import EnqueueFailed, PipelineError, ValidationFailed
from interfaces.repository import IIngestQueue
from util_logger import LoggerFactory, ComponentType, LogContext, LogLevel, log_checkpoint

from .ingestion_service import IngestionPipeline

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "RetryDispatcher")


class RetryDispatcher:
    """Routes ingest requests between the queue and the pipeline."""

    def __init__(self, pipeline: IngestionPipeline, queue: IIngestQueue, config: QueueConfig):
        self.pipeline = pipeline
        self.queue = queue
        self.config = config

    def dispatch(
        self,
        resource_id: str,
        source_url: str,
        is_redelivery: bool,
        correlation_id: Optional[str] = None,
        timeout_seconds: Optional[float] = None
    ) -> DispatchResult:
        """
        Enqueue (first contact) or run (redelivery) one ingest.

        timeout_seconds bounds the redelivery run (see IngestionPipeline.ingest).

        Raises:
            ValidationFailed: Bad resource id or source URL (nothing enqueued)
            EnqueueFailed: Queue did not accept the task
            PipelineError: Any ingest failure on the redelivery path
        """
        if is_redelivery:
            result = self.pipeline.ingest(
                resource_id, source_url, correlation_id=correlation_id, timeout_seconds=timeout_seconds
            )
            return DispatchResult(
                status=DispatchStatus.COMPLETED,
                resource_id=result.resource_id,
                ingest=result
            )

        ref = self.pipeline.resource_ref(resource_id)
        if not is_external_url(source_url):
            raise ValidationFailed(
                f"only absolute http(s) URLs can be queued for fetching, got '{source_url}'",
                resource_id=ref.resource_id,
                storage_key=ref.storage_key
            )

        try:
            task = IngestTaskMessage(
                resource_id=ref.resource_id,
                source_url=source_url,
                target=self.config.ingest_queue,
                retry_limit=self.config.retry_limit,
                min_backoff_seconds=self.config.min_backoff_seconds,
                max_backoff_seconds=self.config.max_backoff_seconds,
                correlation_id=correlation_id
            )
        except PydanticValidationError as e:
            raise ValidationFailed(
                f"ingest task rejected: {e.errors()[0]['msg']}",
                resource_id=ref.resource_id,
                storage_key=ref.storage_key
            ) from e

        message_id = self._send(task, delay_seconds=0)

        log_checkpoint(
            logger, 'DISPATCH_QUEUED',
            f"📤 Ingest for resource {ref.resource_id} queued on {task.target}",
            context=LogContext(resource_id=ref.resource_id, storage_key=ref.storage_key,
                               correlation_id=correlation_id, message_id=message_id),
            source_url=source_url
        )
        return DispatchResult(status=DispatchStatus.QUEUED, resource_id=ref.resource_id, message_id=message_id)

    def handle_delivery(self, task: IngestTaskMessage, message_id: Optional[str] = None) -> DeliveryOutcome:
        """
        Run one queue delivery and apply the retry policy to its failure.

        Raises:
            EnqueueFailed: The retry could not be scheduled
        """
        ctx = LogContext(
            resource_id=task.resource_id,
            correlation_id=task.correlation_id,
            message_id=message_id,
            delivery_attempt=task.attempt
        )
        log_checkpoint(
            logger, 'DELIVERY_START',
            f"🔄 Delivery attempt {task.attempt} of {task.retry_limit + 1} for resource {task.resource_id}",
            context=ctx
        )

        try:
            result = self.dispatch(
                task.resource_id,
                task.source_url,
                is_redelivery=True,
                correlation_id=task.correlation_id
            )
        except PipelineError as e:
            return self._retry_or_give_up(task, e, ctx)

        log_checkpoint(
            logger, 'DELIVERY_COMPLETE',
            f"✅ Delivery attempt {task.attempt} completed for resource {task.resource_id}",
            context=ctx, serving_url=result.serving_url
        )
        return DeliveryOutcome(
            status=DeliveryStatus.COMPLETED,
            resource_id=task.resource_id,
            attempt=task.attempt,
            serving_url=result.serving_url
        )

    def _retry_or_give_up(self, task: IngestTaskMessage, error: PipelineError, ctx: LogContext) -> DeliveryOutcome:
        if not error.retryable or task.retries_remaining == 0:
            status = DeliveryStatus.REJECTED if not error.retryable else DeliveryStatus.EXHAUSTED
            log_checkpoint(
                logger, 'INGEST_RETRY_EXHAUSTED',
                f"❌ Ingest for resource {task.resource_id} failed permanently after "
                f"{task.attempt + 1} attempt(s): {error}",
                level=LogLevel.CRITICAL, context=ctx,
                outcome=status.value, source_url=task.source_url, error=error.to_dict()
            )
            return DeliveryOutcome(
                status=status,
                resource_id=task.resource_id,
                attempt=task.attempt,
                error=error.to_dict()
            )

        delay = task.backoff_seconds()
        retry = task.next_attempt()
        retry_message_id = self._send(retry, delay_seconds=delay)

        log_checkpoint(
            logger, 'DELIVERY_RETRY_SCHEDULED',
            f"🔄 Ingest for resource {task.resource_id} failed ({error.operation}), "
            f"retry {retry.attempt}/{task.retry_limit} in {delay}s",
            level=LogLevel.WARNING, context=ctx,
            retry_message_id=retry_message_id, delay_seconds=delay
        )
        return DeliveryOutcome(
            status=DeliveryStatus.RETRY_SCHEDULED,
            resource_id=task.resource_id,
            attempt=task.attempt,
            error=error.to_dict(),
            next_delay_seconds=delay,
            retry_message_id=retry_message_id
        )

    def _send(self, task: IngestTaskMessage, delay_seconds: int) -> str:
        try:
            return self.queue.enqueue(task, delay_seconds=delay_seconds)
        except Exception as e:
            raise EnqueueFailed(
                f"could not submit ingest task to '{task.target}': {e}",
                resource_id=task.resource_id,
                storage_key=ResourceRef(task.resource_id, self.pipeline.config.storage.images_root).storage_key
            ) from e
