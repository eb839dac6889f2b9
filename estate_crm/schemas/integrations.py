"""
Pydantic schemas for outbound integrations.
Taste profile extraction, Webtiv listing sync and agent email notifications.
"""

from pydantic import BaseModel, Field
from typing import Optional


class TasteProfileResponse(BaseModel):
    """Liked and disliked summaries extracted from buyer feedback."""

    liked: str = Field("", description="What the buyer tends to like")
    disliked: str = Field("", description="What the buyer tends to dislike")
    error: Optional[str] = Field(None, example="No feedback data provided")


class WebtivFilteredCounts(BaseModel):
    no_pictures: int = 0


class WebtivSyncResponse(BaseModel):
    inserted: int = 0
    updated: int = 0
    filtered: WebtivFilteredCounts = Field(default_factory=WebtivFilteredCounts)
    inserted_agents: int = 0
    total_images: int = 0


class AgentEmailRequest(BaseModel):
    """Tell an agent that a buyer asked about a property."""

    agent_id: Optional[str] = Field(None, description="Agent to notify")
    buyer_name: Optional[str] = Field(None, max_length=100)
    buyer_phone: Optional[str] = Field(None, max_length=20)
    property_address: Optional[str] = Field(None, max_length=200)
    property_city: Optional[str] = Field(None, max_length=100)
    property_id: Optional[str] = None
    message: Optional[str] = Field(None, max_length=2000)


class AgentEmailResponse(BaseModel):
    sent: bool
    email_id: Optional[str] = None
    reason: Optional[str] = None
