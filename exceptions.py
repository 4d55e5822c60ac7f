# ============================================================================
# EXCEPTIONS
# ============================================================================
# STATUS: Core - shared by every layer
# PURPOSE: Exception hierarchy separating contract violations from expected
#          failures, plus the ingest/delete pipeline taxonomy
# EXPORTS: ContractViolationError, BusinessLogicError, ConfigurationError,
#          ResourceNotFoundError, PipelineError and its subclasses
# DEPENDENCIES: None (standard library only)
# ============================================================================

"""
Custom Exception Hierarchy

Distinguishes between:
1. Contract Violations (programming bugs that need fixing)
2. Business Logic Failures (expected runtime issues)

Pipeline failures carry the operation that failed and the resource they
were working on, so a log line is enough to diagnose them without
looking inside the Azure SDK or psycopg error that caused them. The
original adapter error is always chained as ``__cause__``.
"""

from typing import Optional


class ContractViolationError(TypeError):
    """
    Raised when component contracts are violated (programming bugs).

    These should NEVER be caught and handled - they indicate bugs
    that need to be fixed in the code.

    Examples:
        - Adapter returns str where bytes are expected
        - Pipeline constructed without a required collaborator
    """
    pass


class BusinessLogicError(Exception):
    """
    Base class for expected runtime business logic failures.

    These are normal failures that occur during system operation
    and should be handled gracefully without crashing.
    """
    pass


class ResourceNotFoundError(BusinessLogicError):
    """
    Requested resource does not exist.

    Examples:
        - Blob not found when minting a serving handle
        - Product row not found for a record update
    """
    pass


class ConfigurationError(Exception):
    """
    System configuration error.

    These are fatal at startup and indicate misconfiguration
    that prevents the app from operating.

    Examples:
        - Missing PRODUCT_IMAGES_DIR
        - SERVING_BASE_URL not https while SERVING_SECURE is on
    """
    pass


# ============================================================================
# PIPELINE TAXONOMY
# ============================================================================

class PipelineError(BusinessLogicError):
    """
    Failure of one step of the ingest, delete or dispatch pipelines.

    Attributes:
        operation: Step that failed ('fetch', 'persist', 'mint_handle', ...)
        resource_id: Resource the pipeline was working on, when known
        storage_key: Derived object key, when known
        retryable: Whether a redelivery may succeed where this attempt failed
        http_status: Status code the HTTP triggers report for this failure
    """

    operation = "pipeline"
    retryable = True
    http_status = 500

    def __init__(
        self,
        message: str,
        resource_id: Optional[str] = None,
        storage_key: Optional[str] = None,
        operation: Optional[str] = None,
        retryable: Optional[bool] = None
    ):
        super().__init__(message)
        self.message = message
        self.resource_id = resource_id
        self.storage_key = storage_key
        if operation is not None:
            self.operation = operation
        if retryable is not None:
            self.retryable = retryable

    def __str__(self) -> str:
        parts = [f"{self.operation} failed: {self.message}"]
        if self.resource_id is not None:
            parts.append(f"resource_id={self.resource_id}")
        if self.storage_key is not None:
            parts.append(f"storage_key={self.storage_key}")
        return " ".join(parts)

    def to_dict(self) -> dict:
        """Structured view used in log custom dimensions and HTTP error bodies."""
        return {
            'error_type': type(self).__name__,
            'operation': self.operation,
            'message': self.message,
            'resource_id': self.resource_id,
            'storage_key': self.storage_key,
            'retryable': self.retryable,
            'cause': repr(self.__cause__) if self.__cause__ is not None else None,
        }


class ValidationFailed(PipelineError):
    """Missing resource id, or missing/malformed source reference."""
    operation = "validate"
    retryable = False
    http_status = 400


class FetchFailed(PipelineError):
    """
    Source unreachable, non-success status, or disallowed content type.

    Client errors (4xx other than 408 and 429) are permanent: the
    source will answer the same way on every redelivery.
    """
    operation = "fetch"
    http_status = 502

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        if status_code is not None and 'retryable' not in kwargs:
            kwargs['retryable'] = not (400 <= status_code < 500 and status_code not in (408, 429))
        super().__init__(message, **kwargs)
        self.status_code = status_code

    def to_dict(self) -> dict:
        result = super().to_dict()
        result['status_code'] = self.status_code
        return result


class PersistFailed(PipelineError):
    """Object store rejected the put."""
    operation = "persist"


class PersistDeletionFailed(PipelineError):
    """Object store rejected the delete."""
    operation = "delete_object"


class HandleCreationFailed(PipelineError):
    """Serving handle could not be minted (including: backing object missing)."""
    operation = "mint_handle"

    def __init__(self, message: str, object_missing: bool = False, **kwargs):
        if object_missing and 'retryable' not in kwargs:
            kwargs['retryable'] = False
        super().__init__(message, **kwargs)
        self.object_missing = object_missing
        if object_missing:
            self.http_status = 404


class HandleRevocationFailed(PipelineError):
    """Serving handle provider reported an error while revoking."""
    operation = "revoke_handle"


class RecordUpdateFailed(PipelineError):
    """Durable record write failed (including: no row for the resource id)."""
    operation = "update_record"


class EnqueueFailed(PipelineError):
    """Delivery mechanism did not accept the ingest task."""
    operation = "enqueue"
    http_status = 503
