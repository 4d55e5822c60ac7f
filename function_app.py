"""
Azure Functions entry point for the Product Image Serving service.

Takes product images from external URLs into blob storage and gives
each product a stable serving URL stored back on its database record.

Architecture:
    HTTP (servingURL) -> RetryDispatcher -> Service Bus (external-image-urls)
                                                   |
    Service Bus trigger -> RetryDispatcher.handle_delivery -> IngestionPipeline
                                                   |
               fetch (httpx) -> Blob Storage -> serving handle (PostgreSQL)
                                                   |
                                        product record (PostgreSQL)

Endpoints:
    GET    /api/servingURL?productID=&externalImageURL= - Queue ingest / re-mint URL
    DELETE /api/servingURL?productID=[&clearRecord=true] - Revoke and delete
    GET    /api/img/{token}                              - Resolve a serving URL

Queue:
    external-image-urls (INGEST_QUEUE_NAME) - deferred and retried ingests

Exports:
    app: Azure Function App instance
    services: Built adapters and pipelines
"""

# ========================================================================
# IMPORTS
# ========================================================================

import logging

import azure.functions as func

# Suppress Azure Identity and Azure SDK authentication/HTTP logging
logging.getLogger("azure.identity").setLevel(logging.WARNING)
logging.getLogger("azure.identity._internal").setLevel(logging.WARNING)
logging.getLogger("azure.core.pipeline.policies.http_logging_policy").setLevel(logging.WARNING)
logging.getLogger("azure.storage").setLevel(logging.WARNING)
logging.getLogger("azure.servicebus").setLevel(logging.WARNING)
logging.getLogger("azure.core").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("msal").setLevel(logging.WARNING)

from config import load_config
from infrastructure.factory import build_services
from triggers.serving_url import ServingUrlTrigger
from triggers.serve_image import ServeImageTrigger
from triggers.service_bus import handle_ingest_message
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "function_app")

# ========================================================================
# STARTUP - config and services are built once, before traffic
# ========================================================================

config = load_config(logger=logger)
services = build_services(config)

serving_url_trigger = ServingUrlTrigger(services.ingestion, services.deletion, services.dispatcher)
serve_image_trigger = ServeImageTrigger(services.handles, services.object_store, config.serving.read_url_minutes)

app = func.FunctionApp(http_auth_level=func.AuthLevel.ANONYMOUS)

logger.info(f"✅ Function app ready ({config.environment}), ingest queue: {config.queues.ingest_queue}")


# ========================================================================
# HTTP TRIGGERS
# ========================================================================

@app.route(route="servingURL", methods=["GET", "DELETE"])
def serving_url(req: func.HttpRequest) -> func.HttpResponse:
    """Request (GET) or tear down (DELETE) a product's serving URL."""
    return serving_url_trigger.handle_request(req)


@app.route(route="img/{token}", methods=["GET"])
def serve_image(req: func.HttpRequest) -> func.HttpResponse:
    """Redirect a serving URL to a short-lived read URL."""
    return serve_image_trigger.handle_request(req)


# ========================================================================
# SERVICE BUS TRIGGERS
# ========================================================================

@app.service_bus_queue_trigger(
    arg_name="msg",
    queue_name=config.queues.ingest_queue,
    connection="ServiceBusConnection"
)
def process_ingest_task(msg: func.ServiceBusMessage) -> None:
    handle_ingest_message(msg, services.dispatcher)
