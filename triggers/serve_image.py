# ============================================================================
# SERVE IMAGE HTTP TRIGGER
# ============================================================================
# STATUS: Trigger layer - GET /api/img/{token}
# PURPOSE: Resolve a serving handle and redirect to a short-lived read URL
# EXPORTS: ServeImageTrigger
# ============================================================================

"""
Serve Image Trigger.

Resolves the token embedded in a serving URL. Unknown, revoked and
expired tokens are all 404; a live one answers 302 to a read-only SAS
URL for the stored blob.
"""

from typing import List

import azure.functions as func

from core.serving_url import parse_serving_path
from interfaces.repository import IObjectStore, IServingHandleProvider

from .http_base import BaseHttpTrigger


class ServeImageTrigger(BaseHttpTrigger):

    def __init__(self, handles: IServingHandleProvider, object_store: IObjectStore, read_url_minutes: int):
        super().__init__("serve_image")
        self.handles = handles
        self.object_store = object_store
        self.read_url_minutes = read_url_minutes

    def get_allowed_methods(self) -> List[str]:
        return ["GET"]

    def process_request(self, req: func.HttpRequest, request_id: str) -> func.HttpResponse:
        segment = self.extract_path_params(req, ["token"])["token"]
        token, _size = parse_serving_path(segment)

        handle = self.handles.resolve(token)
        if handle is None:
            raise FileNotFoundError("serving URL is unknown or has expired")

        read_url = self.object_store.get_read_url(handle.storage_key, self.read_url_minutes)
        self.logger.debug(f"Redirecting {token[:8]}... to {handle.storage_key}")
        return self.redirect(read_url)
