# ============================================================================
# SERVING URL HTTP TRIGGER
# ============================================================================
# STATUS: Trigger layer - GET/DELETE /api/servingURL
# PURPOSE: Request a serving URL for a product image, or tear one down
# EXPORTS: ServingUrlTrigger, REDELIVERY_HEADER
# ============================================================================

"""
Serving URL Trigger.

    GET /api/servingURL?productID=<id>&externalImageURL=<source>
        source is an http(s) URL  -> ingest is queued, 200 {status: "queued"}
        source is the stored key  -> re-mint now,     200 {status: "completed"}

    DELETE /api/servingURL?productID=<id>[&clearRecord=true]
        revoke handle, delete stored object, optionally clear the record

Only the Service Bus trigger may run a redelivery. A request that claims
to be one (X-Ingest-Redelivery header) is refused with 403.
"""

from typing import Any, Dict, List

import azure.functions as func

from core.models.enums import DispatchStatus
from core.source_reference import is_external_url
from services import DeletionPipeline, IngestionPipeline, RetryDispatcher

from .http_base import BaseHttpTrigger


REDELIVERY_HEADER = "X-Ingest-Redelivery"

_TRUE_VALUES = ("true", "1", "yes")


class ServingUrlTrigger(BaseHttpTrigger):
    """Front door for serving URL requests."""

    def __init__(self, ingestion: IngestionPipeline, deletion: DeletionPipeline, dispatcher: RetryDispatcher):
        super().__init__("serving_url")
        self.ingestion = ingestion
        self.deletion = deletion
        self.dispatcher = dispatcher

    def get_allowed_methods(self) -> List[str]:
        return ["GET", "DELETE"]

    def process_request(self, req: func.HttpRequest, request_id: str) -> Dict[str, Any]:
        if req.method == "DELETE":
            return self._delete(req, request_id)
        return self._request_serving_url(req, request_id)

    def _request_serving_url(self, req: func.HttpRequest, request_id: str) -> Dict[str, Any]:
        if req.headers.get(REDELIVERY_HEADER) is not None:
            raise PermissionError("redelivery can only be requested by the ingest queue")

        params = self.extract_query_params(req, required_params=["productID", "externalImageURL"])
        resource_id = params["productID"]
        source = params["externalImageURL"]

        if is_external_url(source):
            dispatched = self.dispatcher.dispatch(
                resource_id, source, is_redelivery=False, correlation_id=request_id
            )
            return {
                "status": DispatchStatus.QUEUED.value,
                "resource_id": dispatched.resource_id,
                "message_id": dispatched.message_id,
            }

        result = self.ingestion.ingest(resource_id, source, correlation_id=request_id)
        return {"status": DispatchStatus.COMPLETED.value, **result.to_response()}

    def _delete(self, req: func.HttpRequest, request_id: str) -> Dict[str, Any]:
        params = self.extract_query_params(
            req, required_params=["productID"], optional_params=["clearRecord"]
        )
        clear_record = params.get("clearRecord", "").lower() in _TRUE_VALUES

        result = self.deletion.delete(params["productID"], clear_record=clear_record, correlation_id=request_id)
        return {"status": "deleted", **result.to_response()}
