from fastapi import HTTPException, status
from typing import Optional, Dict, Any


class APIError(HTTPException):
    """Base API error with consistent error code format."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            status_code=status_code,
            detail={
                "code": code,
                "message": message,
                "details": details or {}
            }
        )


class MissingFieldError(APIError):
    """400 error for missing required fields."""

    def __init__(self, field_name: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            code="MISSING_FIELD",
            message=f"Missing required field: {field_name}",
            details={"field": field_name}
        )


class InvalidArgumentError(APIError):
    """400 error for malformed input."""

    def __init__(self, reason: str, field: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            code="INVALID_ARGUMENT",
            message=f"Invalid argument: {reason}",
            details={"field": field} if field else {}
        )


class UnauthenticatedError(APIError):
    """401 error for a missing operator identity or an invalid bearer token."""

    def __init__(self, reason: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="UNAUTHENTICATED",
            message=reason,
            details={}
        )


class TokenRejectedError(APIError):
    """
    401 error for an enrollment token refused at provisioning time.

    Unlike bearer failures this carries the precise reason, since it guides
    a legitimate device through setup.
    """

    def __init__(self, reason: str):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="TOKEN_REJECTED",
            message=f"Enrollment token rejected: {reason}",
            details={"reason": reason}
        )


class UnauthorizedError(APIError):
    """403 error when the caller does not own the targeted resource."""

    def __init__(self, reason: str = "Resource belongs to another operator"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            code="UNAUTHORIZED",
            message=reason,
            details={}
        )


class NotFoundError(APIError):
    """404 error for a missing token, enrollment, policy, command or binary."""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} {resource_id} not found"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            code="NOT_FOUND",
            message=message,
            details={"resource": resource}
        )


class InvalidStateError(APIError):
    """409 error when an operation is not legal from the entity's current state."""

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            code="INVALID_STATE",
            message=reason,
            details=details
        )


class PrecheckFailedError(APIError):
    """412 error when a precondition owned by another subsystem is not met."""

    def __init__(self, reason: str):
        super().__init__(
            status_code=status.HTTP_412_PRECONDITION_FAILED,
            code="PRECONDITION_FAILED",
            message=reason,
            details={}
        )


class StorageUnavailableError(APIError):
    """503 error for data-store connectivity failures. Never exposes driver detail."""

    def __init__(self):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            code="STORAGE_UNAVAILABLE",
            message="Storage is temporarily unavailable. Please retry.",
            details={}
        )
