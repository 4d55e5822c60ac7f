# ============================================================================
# SERVICE BUS REPOSITORY
# ============================================================================
# STATUS: Infrastructure - Azure Service Bus ingest queue
# PURPOSE: Submit (optionally delayed) ingest tasks to the ingest queue
# EXPORTS: ServiceBusRepository
# INTERFACES: IIngestQueue
# DEPENDENCIES: azure-servicebus, azure-identity
# ENTRY_POINTS: infrastructure.factory.build_services()
# ============================================================================

"""
Service Bus Repository Implementation

The delivery half of the retry mechanism: first-contact ingest requests
and scheduled retries are both sent through enqueue(). Delivery back
into the app is the Service Bus queue trigger in function_app.py.

Retries of a single send are left to the SDK (retry_total); a send that
still fails propagates to the caller, which reports EnqueueFailed.

Authentication:
    - ServiceBusConnection connection string (local development)
    - otherwise DefaultAzureCredential against the namespace FQDN
"""

import threading
import uuid
from datetime import datetime, timezone, timedelta
from typing import Dict, Optional

from azure.servicebus import ServiceBusClient, ServiceBusMessage, ServiceBusSender
from azure.identity import DefaultAzureCredential

from config import QueueConfig
from core.models.queue import IngestTaskMessage
from exceptions import ConfigurationError
from interfaces.repository import IIngestQueue
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "ServiceBusRepository")


# Scheduled retries must outlive the largest backoff
MESSAGE_TTL = timedelta(hours=24)


class ServiceBusRepository(IIngestQueue):
    """
    Service Bus implementation of IIngestQueue.

    Senders are cached per queue and shared across invocation threads,
    so sends on one sender are serialized with a lock.
    """

    def __init__(self, config: QueueConfig, client: Optional[ServiceBusClient] = None):
        """
        Args:
            config: Queue configuration
            client: Pre-built client (tests); built from config when None
        """
        logger.info("🚌 Initializing ServiceBusRepository")
        self.config = config

        if client is not None:
            self.client = client
        elif config.connection_string:
            logger.info("🔑 Using connection string authentication")
            self.client = ServiceBusClient.from_connection_string(
                config.connection_string,
                retry_total=config.retry_count
            )
        elif config.namespace:
            logger.info(f"🔐 Using DefaultAzureCredential for namespace: {config.namespace}")
            self.client = ServiceBusClient(
                fully_qualified_namespace=config.namespace,
                credential=DefaultAzureCredential(),
                retry_total=config.retry_count
            )
        else:
            raise ConfigurationError(
                "Set ServiceBusConnection or SERVICE_BUS_NAMESPACE "
                "(or ServiceBusConnection__fullyQualifiedNamespace)"
            )

        self._senders: Dict[str, ServiceBusSender] = {}
        self._lock = threading.Lock()
        logger.info(f"✅ ServiceBusRepository initialized (ingest_queue={config.ingest_queue})")

    def _get_sender(self, queue_name: str) -> ServiceBusSender:
        """Get or create a cached sender. Caller holds self._lock."""
        if queue_name not in self._senders:
            logger.debug(f"🚌 Creating new sender for queue: {queue_name}")
            self._senders[queue_name] = self.client.get_queue_sender(queue_name)
        return self._senders[queue_name]

    def _build_message(self, task: IngestTaskMessage, delay_seconds: int) -> ServiceBusMessage:
        sb_message = ServiceBusMessage(
            body=task.model_dump_json(),
            content_type="application/json",
            message_id=str(uuid.uuid4()),
            time_to_live=MESSAGE_TTL
        )
        if delay_seconds > 0:
            sb_message.scheduled_enqueue_time_utc = datetime.now(timezone.utc) + timedelta(seconds=delay_seconds)

        sb_message.application_properties = {
            'resource_id': task.resource_id,
            'attempt': task.attempt,
        }
        return sb_message

    def enqueue(self, task: IngestTaskMessage, delay_seconds: int = 0) -> str:
        """
        Send an ingest task to task.target.

        Args:
            task: Ingest task (its target is the queue name)
            delay_seconds: Schedule delivery this far in the future

        Returns:
            Message ID

        Raises:
            Azure SDK errors once the SDK's own retries are used up
        """
        sb_message = self._build_message(task, delay_seconds)

        if delay_seconds > 0:
            logger.info(
                f"⏰ Scheduling ingest task for resource {task.resource_id} in {delay_seconds}s "
                f"(attempt {task.attempt}) on queue: {task.target}"
            )
        else:
            logger.info(f"📤 Sending ingest task for resource {task.resource_id} to queue: {task.target}")

        try:
            with self._lock:
                sender = self._get_sender(task.target)
                sender.send_messages(sb_message)
        except Exception as e:
            logger.error(
                f"❌ Failed to send ingest task for resource {task.resource_id}: {e}",
                extra={'custom_dimensions': {
                    'resource_id': task.resource_id,
                    'queue': task.target,
                    'error_type': type(e).__name__,
                }}
            )
            # Drop a sender that may be in a broken state
            with self._lock:
                self._senders.pop(task.target, None)
            raise

        logger.info(f"✅ Ingest task queued - ID: {sb_message.message_id}")
        return sb_message.message_id

    def close(self) -> None:
        with self._lock:
            for sender in self._senders.values():
                try:
                    sender.close()
                except Exception as e:
                    logger.warning(f"⚠️ Error closing sender: {e}")
            self._senders.clear()
        self.client.close()
