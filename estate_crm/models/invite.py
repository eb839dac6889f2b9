"""
Invitation models.
An agent invites a client to view a set of properties; claiming the invite
assigns those properties to the client's account.
"""

from sqlalchemy import String, Text, DateTime, Enum as SQLEnum, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from estate_crm.database import Base
from datetime import datetime, timezone
import enum
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from estate_crm.models.property import Property


class InviteStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class Invite(Base):
    """Invitation sent by an agent to a prospective client."""

    __tablename__ = "invites"

    token: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        unique=True,
        index=True,
        comment="Opaque token embedded in the invite link"
    )

    agent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Invitee email, or the client name when no email is known"
    )

    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[InviteStatus] = mapped_column(
        SQLEnum(InviteStatus),
        nullable=False,
        default=InviteStatus.PENDING,
        index=True
    )

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    accepted_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    properties: Mapped[List["InviteProperty"]] = relationship(
        "InviteProperty",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    @property
    def is_expired(self) -> bool:
        expires_at = self.expires_at
        # SQLite drops tzinfo on read
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at < datetime.now(timezone.utc)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "agent_id": str(self.agent_id),
            "email": self.email,
            "message": self.message,
            "status": self.status.value,
            "expires_at": self.expires_at.isoformat(),
            "accepted_at": self.accepted_at.isoformat() if self.accepted_at else None,
            "property_ids": [str(item.property_id) for item in self.properties],
            "created_at": self.created_at.isoformat(),
        }


class InviteProperty(Base):
    """Property included in an invitation."""

    __tablename__ = "invite_properties"

    invite_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("invites.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False
    )


class PropertyView(Base):
    """Property visible to a client account."""

    __tablename__ = "property_views"
    __table_args__ = (
        UniqueConstraint("user_id", "property_id", name="uq_property_views_user_property"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False
    )

    source: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="assigned",
        comment="assigned through an invite, or catalog"
    )

    property: Mapped["Property"] = relationship("Property", lazy="selectin")
