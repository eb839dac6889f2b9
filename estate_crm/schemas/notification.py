"""
Pydantic schemas for notifications and activity logs.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from estate_crm.models.activity_log import ActionType


class NotificationResponse(BaseModel):
    """Notification with buyer and property context."""

    id: str
    buyer_id: str
    property_id: Optional[str] = None
    agent_id: Optional[str] = None
    match_score: int = Field(..., example=85)
    message: Optional[str] = None
    is_read_by_agent: bool
    is_read_by_manager: bool
    buyer_name: Optional[str] = None
    property_address: Optional[str] = None
    property_city: Optional[str] = None
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int = Field(..., description="Unread notifications for the viewer", example=3)


class MarkAllReadResponse(BaseModel):
    updated: int = Field(..., description="Number of notifications marked as read", example=5)


class ActivityLogCreate(BaseModel):
    """Manual timeline entry, e.g. a WhatsApp message sent by the agent."""

    action_type: ActionType = Field(..., example="whatsapp_sent")
    description: str = Field(..., min_length=1, max_length=2000)
    property_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ActivityLogResponse(BaseModel):
    id: str
    buyer_id: Optional[str] = None
    agent_id: Optional[str] = None
    property_id: Optional[str] = None
    action_type: ActionType
    description: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
