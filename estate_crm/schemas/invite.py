"""
Pydantic schemas for client invitations.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from estate_crm.models.invite import InviteStatus
import uuid


class SendInviteRequest(BaseModel):
    """Invite a client to view a set of properties."""

    property_ids: List[uuid.UUID] = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Properties to share (1-50)"
    )

    message: Optional[str] = Field(
        None,
        max_length=1000,
        description="Personal message shown with the invite"
    )

    client_name: Optional[str] = Field(
        None,
        min_length=1,
        max_length=100,
        description="Name of the invited client",
        example="משפחת כהן"
    )

    @field_validator('client_name')
    @classmethod
    def validate_client_name(cls, v):
        if v is not None:
            v = v.strip()
            if not v:
                raise ValueError("Client name cannot be empty")
        return v


class SendInviteResponse(BaseModel):
    invite_id: str
    invite_url: str = Field(..., example="http://localhost:5173/invite/0c5f4c9e-...")
    expires_at: datetime


class ClaimInviteRequest(BaseModel):
    token: str = Field(..., min_length=10, max_length=500, description="Token from the invite link")


class ClaimInviteResponse(BaseModel):
    success: bool
    property_count: int


class InviteResponse(BaseModel):
    id: str
    agent_id: str
    email: str
    message: Optional[str] = None
    status: InviteStatus
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    property_ids: List[str] = Field(default_factory=list)
    created_at: datetime
