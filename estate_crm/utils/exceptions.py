"""
Exceptions raised by services and dependencies.

Each class carries its HTTP status, error code and default message, so a
bare ``raise InviteExpiredError()`` renders a complete error envelope.
"""

from typing import Any, Dict, Optional, List
from fastapi import HTTPException, status


class APIException(HTTPException):
    """Base for every error rendered by ErrorHandlerService."""

    default_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: str = "API_ERROR"
    default_detail: str = "Request could not be processed"

    def __init__(
        self,
        detail: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            status_code=status_code or self.default_status,
            detail=detail or self.default_detail,
            headers=headers
        )
        self.error_code = error_code or self.default_code


class BadRequestError(APIException):
    default_status = status.HTTP_400_BAD_REQUEST
    default_code = "BAD_REQUEST"
    default_detail = "Bad request"


class UnauthorizedError(APIException):
    default_status = status.HTTP_401_UNAUTHORIZED
    default_code = "UNAUTHORIZED"
    default_detail = "Authentication required"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class PaymentRequiredError(APIException):
    """The AI gateway refused the call for lack of credits."""

    default_status = status.HTTP_402_PAYMENT_REQUIRED
    default_code = "PAYMENT_REQUIRED"
    default_detail = "Payment required, please add credits"


class ForbiddenError(APIException):
    default_status = status.HTTP_403_FORBIDDEN
    default_code = "FORBIDDEN"
    default_detail = "Access forbidden"


class NotFoundError(APIException):
    default_status = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        suffix = f" with ID: {resource_id}" if resource_id else ""
        super().__init__(f"{resource} not found{suffix}")


class ConflictError(APIException):
    default_status = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"
    default_detail = "Resource conflict"


class ValidationError(APIException):
    """Business-rule validation failure, optionally listing the offending fields."""

    default_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_code = "VALIDATION_ERROR"

    def __init__(self, detail: str, field_errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(detail)
        self.field_errors = field_errors or []


class RateLimitExceededError(APIException):
    default_status = status.HTTP_429_TOO_MANY_REQUESTS
    default_code = "RATE_LIMIT_EXCEEDED"
    default_detail = "Rate limit exceeded"

    def __init__(self, retry_after: int = 60, detail: Optional[str] = None):
        super().__init__(detail, headers={"Retry-After": str(retry_after)})


class ServiceUnavailableError(APIException):
    """An upstream integration (AI gateway, Webtiv, Resend) failed."""

    default_status = status.HTTP_503_SERVICE_UNAVAILABLE
    default_code = "SERVICE_UNAVAILABLE"
    default_detail = "Service temporarily unavailable"


# Authentication
class InvalidCredentialsError(UnauthorizedError):
    default_detail = "Invalid email or password"


class TokenExpiredError(UnauthorizedError):
    default_detail = "Token has expired"


class InvalidTokenError(UnauthorizedError):
    default_detail = "Invalid token"


class InactiveUserError(ForbiddenError):
    default_detail = "User account is inactive"


class InsufficientPermissionsError(ForbiddenError):
    def __init__(self, action: str):
        super().__init__(f"Insufficient permissions to {action}")


class DuplicateResourceError(ConflictError):
    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} with identifier '{identifier}' already exists")


# Invitations
class InviteExpiredError(BadRequestError):
    default_detail = "Invitation has expired"


class InviteAlreadyAcceptedError(BadRequestError):
    default_detail = "Invitation has already been accepted"
