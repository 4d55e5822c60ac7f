# ============================================================================
# HTTP TRIGGER BASE CLASS
# ============================================================================
# STATUS: Trigger layer - shared request/response handling
# PURPOSE: Method check, request id, JSON envelopes and error-to-status mapping
# EXPORTS: BaseHttpTrigger
# ============================================================================

"""
HTTP Trigger Base Class.

Abstract base class for the Azure Functions HTTP triggers providing
consistent request/response handling.

Error mapping (first match wins):
    PipelineError      -> error.http_status (400 / 404 / 502 / 503 / 500)
    ValueError         -> 400
    PermissionError    -> 403
    FileNotFoundError  -> 404
    anything else      -> 500

Exports:
    BaseHttpTrigger: Base class for HTTP triggers
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, Union, List
import json
import traceback
from datetime import datetime, timezone

import azure.functions as func

from exceptions import PipelineError
from util_logger import LoggerFactory, ComponentType, new_correlation_id


class BaseHttpTrigger(ABC):
    """
    Abstract base class for Azure Functions HTTP triggers.

    Subclasses implement process_request() and get_allowed_methods().
    process_request() returns either a dict (serialized as a 200 JSON
    body) or a ready func.HttpResponse (redirects).
    """

    def __init__(self, trigger_name: str):
        """
        Args:
            trigger_name: Name of the trigger for logging (e.g., "serving_url")
        """
        self.trigger_name = trigger_name
        self.logger = LoggerFactory.create_logger(ComponentType.TRIGGER, f"HttpTrigger.{trigger_name}")

    # ========================================================================
    # ABSTRACT METHODS - Must be implemented by concrete triggers
    # ========================================================================

    @abstractmethod
    def process_request(self, req: func.HttpRequest, request_id: str) -> Union[Dict[str, Any], func.HttpResponse]:
        """
        Process the HTTP request.

        Args:
            req: Azure Functions HTTP request object
            request_id: Id generated for this request, used as correlation id

        Raises:
            PipelineError: Mapped to its http_status
            ValueError: For client errors (400)
            PermissionError: For authorization errors (403)
            FileNotFoundError: For not found errors (404)
        """
        pass

    @abstractmethod
    def get_allowed_methods(self) -> List[str]:
        pass

    # ========================================================================
    # CONCRETE INFRASTRUCTURE METHODS
    # ========================================================================

    def handle_request(self, req: func.HttpRequest) -> func.HttpResponse:
        """
        Main entry point for HTTP request handling.

        Returns:
            Azure Functions HTTP response
        """
        request_id = self._generate_request_id()

        self.logger.info(
            f"🌐 [{self.trigger_name}] Request {request_id} started: "
            f"{req.method} {req.url}"
        )

        try:
            if req.method not in self.get_allowed_methods():
                return self._create_error_response(
                    error="Method not allowed",
                    message=f"Method {req.method} not allowed. Allowed: {', '.join(self.get_allowed_methods())}",
                    status_code=405,
                    request_id=request_id
                )

            result = self.process_request(req, request_id)

            if isinstance(result, func.HttpResponse):
                response = result
                response.headers["X-Request-ID"] = request_id
            else:
                response = self._create_success_response(result, request_id)

            self.logger.info(
                f"✅ [{self.trigger_name}] Request {request_id} completed ({response.status_code})"
            )
            return response

        except PipelineError as e:
            log = self.logger.error if e.http_status >= 500 else self.logger.warning
            log(
                f"❌ [{self.trigger_name}] {type(e).__name__}: {e}",
                extra={'custom_dimensions': {'request_id': request_id, **e.to_dict()}}
            )
            return self._create_error_response(
                error=type(e).__name__,
                message=str(e),
                status_code=e.http_status,
                request_id=request_id,
                details=e.to_dict()
            )

        except ValueError as e:
            self.logger.warning(f"❌ [{self.trigger_name}] Client error: {e}")
            return self._create_error_response(
                error="Bad request",
                message=str(e),
                status_code=400,
                request_id=request_id
            )

        except PermissionError as e:
            self.logger.warning(f"🚫 [{self.trigger_name}] Permission denied: {e}")
            return self._create_error_response(
                error="Forbidden",
                message=str(e),
                status_code=403,
                request_id=request_id
            )

        except FileNotFoundError as e:
            self.logger.info(f"🔍 [{self.trigger_name}] Not found: {e}")
            return self._create_error_response(
                error="Not found",
                message=str(e),
                status_code=404,
                request_id=request_id
            )

        except Exception as e:
            self.logger.error(f"💥 [{self.trigger_name}] Internal error: {e}")
            self.logger.debug(f"📍 Full traceback: {traceback.format_exc()}")
            return self._create_error_response(
                error="Internal server error",
                message=str(e),
                status_code=500,
                request_id=request_id
            )

    # ========================================================================
    # UTILITY METHODS FOR SUBCLASSES
    # ========================================================================

    def extract_path_params(self, req: func.HttpRequest, required_params: List[str]) -> Dict[str, str]:
        """
        Extract and validate path parameters.

        Raises:
            ValueError: If required parameters are missing
        """
        params = {}
        missing_params = []

        for param_name in required_params:
            value = req.route_params.get(param_name)
            if not value:
                missing_params.append(param_name)
            else:
                params[param_name] = value

        if missing_params:
            raise ValueError(f"Missing required path parameters: {', '.join(missing_params)}")

        return params

    def extract_query_params(self, req: func.HttpRequest,
                             required_params: Optional[List[str]] = None,
                             optional_params: Optional[List[str]] = None) -> Dict[str, str]:
        """
        Extract and validate query parameters.

        Blank values count as missing.

        Raises:
            ValueError: If required parameters are missing
        """
        params = {}
        required_params = required_params or []
        optional_params = optional_params or []
        missing_params = []

        for param_name in required_params:
            value = (req.params.get(param_name) or "").strip()
            if not value:
                missing_params.append(param_name)
            else:
                params[param_name] = value

        for param_name in optional_params:
            value = (req.params.get(param_name) or "").strip()
            if value:
                params[param_name] = value

        if missing_params:
            raise ValueError(f"Missing required query parameters: {', '.join(missing_params)}")

        return params

    def redirect(self, location: str, status_code: int = 302) -> func.HttpResponse:
        """Bodyless redirect response."""
        return func.HttpResponse(
            status_code=status_code,
            headers={"Location": location, "Cache-Control": "no-store"}
        )

    # ========================================================================
    # PRIVATE INFRASTRUCTURE METHODS
    # ========================================================================

    def _generate_request_id(self) -> str:
        """Generate unique request ID for tracing."""
        return new_correlation_id()

    def _create_success_response(self, data: Dict[str, Any], request_id: str) -> func.HttpResponse:
        response_data = {
            **data,
            "request_id": request_id,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

        return func.HttpResponse(
            json.dumps(response_data, default=str),
            status_code=200,
            mimetype="application/json",
            headers={"X-Request-ID": request_id}
        )

    def _create_error_response(self, error: str, message: str, status_code: int,
                               request_id: str, details: Optional[Dict[str, Any]] = None) -> func.HttpResponse:
        response_data = {
            "error": error,
            "message": message,
            "request_id": request_id,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
        if details:
            response_data["details"] = details

        return func.HttpResponse(
            json.dumps(response_data, default=str),
            status_code=status_code,
            mimetype="application/json",
            headers={"X-Request-ID": request_id}
        )
