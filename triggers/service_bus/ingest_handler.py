# ============================================================================
# SERVICE BUS INGEST HANDLER
# ============================================================================
# STATUS: Trigger layer - ingest queue message processing
# PURPOSE: Parse IngestTaskMessage deliveries and hand them to the dispatcher
# EXPORTS: handle_ingest_message
# ============================================================================
"""
Ingest Queue Message Handler.

Processing flow:
    1. Log message receipt (delivery count, message id)
    2. Parse IngestTaskMessage
    3. RetryDispatcher.handle_delivery() - runs the ingest and, on a
       retryable failure, schedules the next attempt itself

Returning normally completes the message. Only EnqueueFailed (the retry
could not be scheduled) propagates, leaving redelivery to Service Bus.
A body that does not parse is logged and dropped: redelivering it would
fail the same way.

Usage:
    @app.service_bus_queue_trigger(
        arg_name="msg",
        queue_name="external-image-urls",
        connection="ServiceBusConnection"
    )
    def process_ingest_task(msg: func.ServiceBusMessage) -> None:
        handle_ingest_message(msg, services.dispatcher)
"""

import time
from typing import Optional

import azure.functions as func
from pydantic import ValidationError as PydanticValidationError

from core.models.queue import IngestTaskMessage
from core.models.results import DeliveryOutcome
from exceptions import EnqueueFailed
from services import RetryDispatcher
from util_logger import LoggerFactory, ComponentType, new_correlation_id

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "IngestHandler")


def handle_ingest_message(msg: func.ServiceBusMessage, dispatcher: RetryDispatcher) -> Optional[DeliveryOutcome]:
    """
    Process one ingest queue delivery.

    Returns:
        DeliveryOutcome, or None when the body was unreadable

    Raises:
        EnqueueFailed: Retry could not be scheduled
    """
    correlation_id = new_correlation_id()
    start_time = time.time()

    _log_message_received(msg, correlation_id)

    try:
        body = msg.get_body().decode('utf-8')
        task = IngestTaskMessage.model_validate_json(body)
    except (UnicodeDecodeError, PydanticValidationError) as e:
        logger.error(
            f"[{correlation_id}] ❌ Dropping unreadable ingest message {msg.message_id}: {e}",
            extra={'custom_dimensions': {
                'checkpoint': 'INGEST_MESSAGE_MALFORMED',
                'correlation_id': correlation_id,
                'message_id': msg.message_id,
            }}
        )
        return None

    if not task.correlation_id:
        task = task.model_copy(update={'correlation_id': correlation_id})

    try:
        outcome = dispatcher.handle_delivery(task, message_id=msg.message_id)
    except EnqueueFailed as e:
        logger.error(
            f"[{correlation_id}] ❌ Retry for resource {task.resource_id} could not be scheduled, "
            f"abandoning message for native redelivery: {e}"
        )
        raise

    elapsed = time.time() - start_time
    logger.info(
        f"[{correlation_id}] 🚌 Ingest message for resource {task.resource_id} handled in "
        f"{elapsed:.3f}s: {outcome.status.value}"
    )
    return outcome


def _log_message_received(msg: func.ServiceBusMessage, correlation_id: str) -> None:
    """Log Service Bus message metadata immediately on receipt."""
    logger.info(
        f"[{correlation_id}] 🚌 SERVICE BUS MESSAGE RECEIVED",
        extra={'custom_dimensions': {
            'checkpoint': 'MESSAGE_RECEIVED',
            'correlation_id': correlation_id,
            'message_id': msg.message_id,
            'delivery_count': msg.delivery_count,
            'enqueued_time': msg.enqueued_time_utc.isoformat() if msg.enqueued_time_utc else None,
        }}
    )


__all__ = ['handle_ingest_message']
