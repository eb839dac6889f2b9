"""
Pydantic schemas for authentication requests and responses.
Handles login, token refresh, and user authentication data validation.
"""

from pydantic import BaseModel, EmailStr, Field, validator
from typing import Optional, List
from estate_crm.models.user import UserRole
from estate_crm.schemas.user import UserResponse, check_password_strength

ROLE_PERMISSIONS = {
    UserRole.ADMIN: [
        "manage_users",
        "manage_any_property",
        "manage_any_buyer",
        "view_all_notifications",
        "sync_listings",
        "manage_neighborhoods",
    ],
    UserRole.MANAGER: [
        "manage_any_property",
        "manage_any_buyer",
        "view_all_notifications",
        "sync_listings",
    ],
    UserRole.AGENT: [
        "manage_own_properties",
        "manage_own_buyers",
        "send_invites",
    ],
    UserRole.CLIENT: [
        "view_assigned_properties",
    ],
}


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr = Field(
        ...,
        description="User's email address",
        example="agent@example.com"
    )
    password: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="User's password",
        example="Secure#Pass1"
    )

    @validator('email')
    def normalize_email(cls, v):
        """Normalize email to lowercase."""
        return v.lower().strip()


class RefreshTokenRequest(BaseModel):
    """Refresh token request schema."""

    refresh_token: str = Field(
        ...,
        description="Valid refresh token",
        example="eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9..."
    )


class AccessTokenResponse(BaseModel):
    """Access token response schema."""

    access_token: str = Field(
        ...,
        description="New JWT access token",
        example="eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9..."
    )
    token_type: str = Field(
        default="bearer",
        description="Token type",
        example="bearer"
    )
    expires_in: int = Field(
        ...,
        description="Access token expiration time in seconds",
        example=1800
    )


class CurrentUserResponse(UserResponse):
    """Current user response with role permissions."""

    permissions: List[str] = Field(
        default_factory=list,
        description="User's permissions based on role",
        example=["manage_own_properties", "manage_own_buyers"]
    )

    @validator('permissions', pre=True, always=True)
    def set_permissions(cls, v, values):
        """Set permissions based on user role."""
        role = values.get('role')
        return list(ROLE_PERMISSIONS.get(role, []))


class LoginResponse(BaseModel):
    """Complete login response schema."""

    user: CurrentUserResponse = Field(
        ...,
        description="Authenticated user information"
    )
    access_token: str = Field(
        ...,
        description="JWT access token",
        example="eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9..."
    )
    refresh_token: str = Field(
        ...,
        description="JWT refresh token",
        example="eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9..."
    )
    token_type: str = Field(
        default="bearer",
        description="Token type",
        example="bearer"
    )
    expires_in: int = Field(
        ...,
        description="Access token expiration time in seconds",
        example=1800
    )


class TokenValidationResponse(BaseModel):
    """Token validation response schema."""

    valid: bool = Field(..., description="Whether the token is valid", example=True)
    user_id: Optional[str] = Field(None, description="User ID if token is valid")
    email: Optional[EmailStr] = Field(None, description="User email if token is valid")
    role: Optional[UserRole] = Field(None, description="User role if token is valid")


class RegisterRequest(BaseModel):
    """Self sign-up schema. The account has no role until it claims an invitation."""

    email: EmailStr = Field(..., description="User's email address", example="client@example.com")
    password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="Password: 8+ characters with an uppercase letter, a digit and a special character",
        example="Secure#Pass1"
    )
    full_name: str = Field(..., min_length=2, max_length=255, description="User's full name")

    @validator('email')
    def normalize_email(cls, v):
        return v.lower().strip()

    @validator('password')
    def validate_password(cls, v):
        return check_password_strength(v)
