from typing import Any, Dict, List, Optional

class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)

class ValidationError(AppException):
    """Malformed or missing input that the caller can fix."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details
        )

class AuthenticationError(AppException):
    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED"
        )

class ForbiddenError(AppException):
    """Authorization failure, including self-approval and role mismatch."""
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(
            message=message,
            status_code=403,
            error_code="FORBIDDEN"
        )

class NotFoundError(AppException):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND"
        )

class InvalidStateError(AppException):
    """Operation not valid for the entity's current status."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="INVALID_STATE",
            details=details
        )

class PastStartDateError(AppException):
    def __init__(self, message: str = "Cannot cancel an approved leave that has already started"):
        super().__init__(
            message=message,
            status_code=400,
            error_code="PAST_START_DATE"
        )

class OverlapConflictError(AppException):
    """Carries the conflicting requests so callers can display them."""
    def __init__(self, message: str, conflicts: List[Dict[str, Any]]):
        self.conflicts = conflicts
        super().__init__(
            message=message,
            status_code=409,
            error_code="OVERLAP_CONFLICT",
            details={"conflicting_requests": conflicts}
        )

class InsufficientBalanceError(AppException):
    def __init__(self, available: Any, requested: Any, pending: Any):
        self.available = available
        self.requested = requested
        self.pending = pending
        super().__init__(
            message=(
                f"Insufficient leave balance. Available: {available}, "
                f"Requested: {requested}, Pending: {pending}"
            ),
            status_code=400,
            error_code="INSUFFICIENT_BALANCE",
            details={
                "available_balance": str(available),
                "requested_days": str(requested),
                "pending_days": str(pending),
            }
        )

class NoWorkflowError(AppException):
    def __init__(self, message: str = "No approval workflow found for this leave duration. Please contact your administrator."):
        super().__init__(
            message=message,
            status_code=400,
            error_code="NO_WORKFLOW"
        )

class WorkflowNotFoundError(NoWorkflowError):
    """Raised by the catalog when no active workflow covers a duration."""

class NoApproverConfiguredError(AppException):
    def __init__(self, message: str = "No approvers found for your leave request. Please contact your administrator to set up the approval workflow."):
        super().__init__(
            message=message,
            status_code=400,
            error_code="NO_APPROVER_CONFIGURED"
        )

class DuplicateNameError(AppException):
    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=409,
            error_code="DUPLICATE_NAME"
        )

class OverlappingRangeError(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=409,
            error_code="OVERLAPPING_RANGE",
            details=details
        )

class ConcurrentModificationError(AppException):
    def __init__(self, message: str = "The record was modified by another request. Please reload and retry."):
        super().__init__(
            message=message,
            status_code=409,
            error_code="CONCURRENT_MODIFICATION"
        )
