"""
Activity log model recording the buyer timeline.
"""

from sqlalchemy import Text, ForeignKey, JSON, Enum as SQLEnum, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from estate_crm.database import Base
import enum
import uuid
from typing import Optional, Dict, Any


class ActionType(str, enum.Enum):
    """Kinds of events recorded on a buyer's timeline."""
    PROPERTY_OFFERED = "property_offered"
    NOTE_ADDED = "note_added"
    FEEDBACK_ADDED = "feedback_added"
    LINK_VIEWED = "link_viewed"
    STATUS_CHANGED = "status_changed"
    BUYER_CREATED = "buyer_created"
    MATCH_FOUND = "match_found"
    WHATSAPP_SENT = "whatsapp_sent"
    FILE_UPLOADED = "file_uploaded"
    SELF_REGISTERED = "self_registered"
    PROPERTY_SAVED = "property_saved"


class ActivityLog(Base):
    """Single timeline entry."""

    __tablename__ = "activity_logs"

    buyer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("buyers.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )

    agent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    property_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="SET NULL"),
        nullable=True
    )

    action_type: Mapped[ActionType] = mapped_column(
        SQLEnum(ActionType),
        nullable=False,
        index=True
    )

    description: Mapped[str] = mapped_column(Text, nullable=False)

    # "metadata" is reserved on declarative classes
    details: Mapped[Dict[str, Any]] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
        default=dict
    )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "buyer_id": str(self.buyer_id) if self.buyer_id else None,
            "agent_id": str(self.agent_id) if self.agent_id else None,
            "property_id": str(self.property_id) if self.property_id else None,
            "action_type": self.action_type.value,
            "description": self.description,
            "metadata": dict(self.details or {}),
            "created_at": self.created_at.isoformat(),
        }
