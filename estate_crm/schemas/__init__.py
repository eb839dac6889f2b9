"""
Pydantic schemas for request/response validation.
"""

# Authentication schemas
from .auth import (
    LoginRequest,
    RefreshTokenRequest,
    AccessTokenResponse,
    CurrentUserResponse,
    LoginResponse,
    TokenValidationResponse
)

# User schemas
from .user import (
    UserCreate,
    UserUpdate,
    UserResponse,
    UserListResponse,
    PasswordResetRequest
)

# Property schemas
from .property import (
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    PropertyListResponse,
    PropertySearchParams,
    PropertySummary,
    PropertyImageCreate,
    PropertyImageResponse,
    PropertyExtendedDetailsSchema
)

# Buyer schemas
from .buyer import (
    BuyerCreate,
    BuyerUpdate,
    BuyerResponse,
    BuyerListResponse
)

from .buyer_property import (
    OfferPropertiesRequest,
    BuyerPropertyUpdate,
    BuyerPropertyResponse
)

from .match import (
    MatchingTriggerRequest,
    MatchingResult,
    TriggerResult,
    BuyerRealtimeMatches
)

from .notification import (
    NotificationResponse,
    NotificationListResponse,
    ActivityLogCreate,
    ActivityLogResponse
)

# Error schemas
from .error import (
    ErrorDetail,
    ErrorResponse,
    APIErrorResponse,
    get_common_error_responses,
    get_crud_error_responses,
    get_integration_error_responses
)

__all__ = [
    "LoginRequest",
    "RefreshTokenRequest",
    "AccessTokenResponse",
    "CurrentUserResponse",
    "LoginResponse",
    "TokenValidationResponse",
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    "UserListResponse",
    "PasswordResetRequest",
    "PropertyCreate",
    "PropertyUpdate",
    "PropertyResponse",
    "PropertyListResponse",
    "PropertySearchParams",
    "PropertySummary",
    "PropertyImageCreate",
    "PropertyImageResponse",
    "PropertyExtendedDetailsSchema",
    "BuyerCreate",
    "BuyerUpdate",
    "BuyerResponse",
    "BuyerListResponse",
    "OfferPropertiesRequest",
    "BuyerPropertyUpdate",
    "BuyerPropertyResponse",
    "MatchingTriggerRequest",
    "MatchingResult",
    "TriggerResult",
    "BuyerRealtimeMatches",
    "NotificationResponse",
    "NotificationListResponse",
    "ActivityLogCreate",
    "ActivityLogResponse",
    "ErrorDetail",
    "ErrorResponse",
    "APIErrorResponse",
    "get_common_error_responses",
    "get_crud_error_responses",
    "get_integration_error_responses",
]
