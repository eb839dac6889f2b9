"""
Utility modules for the Estate CRM API.
"""

from .auth import (
    create_access_token,
    create_refresh_token,
    verify_token,
    TokenPayload
)

from .exceptions import (
    APIException,
    ValidationError,
    NotFoundError,
    UnauthorizedError,
    ForbiddenError,
    ConflictError,
    BadRequestError,
    InvalidCredentialsError,
    TokenExpiredError,
    InvalidTokenError,
    InactiveUserError,
    InsufficientPermissionsError,
    DuplicateResourceError,
    InviteExpiredError,
    InviteAlreadyAcceptedError,
    RateLimitExceededError,
    PaymentRequiredError,
    ServiceUnavailableError
)

from .phone import sanitize_phone, is_valid_israeli_phone, format_phone_display
from .formatting import format_price

# Dependencies are imported directly where needed to avoid circular imports

__all__ = [
    # Auth utilities
    "create_access_token",
    "create_refresh_token",
    "verify_token",
    "TokenPayload",

    # Exceptions
    "APIException",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "ForbiddenError",
    "ConflictError",
    "BadRequestError",
    "InvalidCredentialsError",
    "TokenExpiredError",
    "InvalidTokenError",
    "InactiveUserError",
    "InsufficientPermissionsError",
    "DuplicateResourceError",
    "InviteExpiredError",
    "InviteAlreadyAcceptedError",
    "RateLimitExceededError",
    "PaymentRequiredError",
    "ServiceUnavailableError",

    # Formatting
    "sanitize_phone",
    "is_valid_israeli_phone",
    "format_phone_display",
    "format_price",
]
