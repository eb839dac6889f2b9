"""
Pydantic schemas for user requests and responses.
Handles admin user creation, password resets and role validation.
"""

from pydantic import BaseModel, EmailStr, Field, validator
from typing import Optional, List
from datetime import datetime
from estate_crm.models.user import UserRole

SPECIAL_CHARACTERS = set("!@#$%^&*()_+-=[]{};':\"\\|,.<>/?`~")


def check_password_strength(password: str) -> str:
    """Password needs 8+ characters with an uppercase letter, a digit and a special character."""
    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters long")
    if not any(c.isupper() for c in password):
        raise ValueError("Password must contain at least one uppercase letter")
    if not any(c.isdigit() for c in password):
        raise ValueError("Password must contain at least one number")
    if not any(c in SPECIAL_CHARACTERS for c in password):
        raise ValueError("Password must contain at least one special character")
    return password


class UserBase(BaseModel):
    """Base user schema with common fields."""

    email: EmailStr = Field(
        ...,
        description="User's email address",
        example="agent@example.com"
    )

    full_name: str = Field(
        ...,
        min_length=2,
        max_length=255,
        description="User's full name",
        example="Dana Cohen"
    )

    phone: Optional[str] = Field(
        None,
        max_length=20,
        description="Contact phone number",
        example="0521234567"
    )

    @validator('email')
    def normalize_email(cls, v):
        """Normalize email to lowercase."""
        return v.lower().strip()

    @validator('full_name')
    def validate_full_name(cls, v):
        """Validate and clean full name."""
        if not v or not v.strip():
            raise ValueError("Full name cannot be empty")
        return v.strip()


class UserCreate(UserBase):
    """Schema for an admin creating a new user."""

    password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="Password: 8+ characters with an uppercase letter, a digit and a special character",
        example="Secure#Pass1"
    )

    role: UserRole = Field(
        UserRole.AGENT,
        description="User's role (default: agent)",
        example="agent"
    )

    @validator('password')
    def validate_password(cls, v):
        """Validate password strength."""
        return check_password_strength(v)

    class Config:
        json_schema_extra = {
            "example": {
                "email": "agent@example.com",
                "full_name": "Dana Cohen",
                "password": "Secure#Pass1",
                "role": "agent"
            }
        }


class UserUpdate(BaseModel):
    """Schema for updating an existing user (admin only)."""

    full_name: Optional[str] = Field(None, min_length=2, max_length=255, description="User's full name")
    phone: Optional[str] = Field(None, max_length=20, description="Contact phone number")
    role: Optional[UserRole] = Field(None, description="User's role")
    is_active: Optional[bool] = Field(None, description="Whether the user account is active")


class PasswordResetRequest(BaseModel):
    """Schema for an admin resetting another user's password."""

    new_password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="New password",
        example="N3w#Password"
    )

    @validator('new_password')
    def validate_new_password(cls, v):
        """Validate password strength."""
        return check_password_strength(v)


class UserResponse(BaseModel):
    """User response schema (excluding sensitive data)."""

    id: str = Field(
        ...,
        description="User's unique identifier",
        example="123e4567-e89b-12d3-a456-426614174000"
    )

    email: EmailStr = Field(
        ...,
        description="User's email address",
        example="agent@example.com"
    )

    full_name: str = Field(
        ...,
        description="User's full name",
        example="Dana Cohen"
    )

    phone: Optional[str] = Field(None, description="Contact phone number")

    role: Optional[UserRole] = Field(
        None,
        description="User's role; empty until an invite is claimed",
        example="agent"
    )

    is_active: bool = Field(
        ...,
        description="Whether the user account is active",
        example=True
    )

    agent_id: Optional[str] = Field(
        None,
        description="Linked agent for client accounts"
    )

    created_at: datetime = Field(
        ...,
        description="Account creation timestamp",
        example="2024-01-01T00:00:00Z"
    )

    updated_at: datetime = Field(
        ...,
        description="Last update timestamp",
        example="2024-01-01T00:00:00Z"
    )

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    """Schema for user list response."""

    users: List[UserResponse] = Field(..., description="List of users")
    total: int = Field(..., description="Number of users returned", example=12)
