"""
Buyer model for CRM leads.
Holds price, location and feature preferences that drive property matching.
"""

from sqlalchemy import String, Text, Integer, Numeric, Enum as SQLEnum, ForeignKey, JSON, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from estate_crm.database import Base
from decimal import Decimal
import enum
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from estate_crm.models.user import User

# Keys accepted in Buyer.required_features
FEATURE_KEYS = ("has_safe_room", "has_sun_balcony", "parking_spots", "has_elevator")


class BuyerStatus(str, enum.Enum):
    """Lifecycle status of a buyer lead."""
    LEAD = "lead"
    ACTIVE = "active"
    INACTIVE = "inactive"
    CLOSED = "closed"


class Buyer(Base):
    """
    Buyer model for managing CRM leads and their search preferences.
    Each buyer belongs to one agent; catalog self-registrations start unassigned.
    """

    __tablename__ = "buyers"

    full_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        comment="Buyer full name"
    )

    phone: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        index=True,
        comment="Sanitized Israeli phone number"
    )

    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Buyer email address"
    )

    status: Mapped[BuyerStatus] = mapped_column(
        SQLEnum(BuyerStatus),
        nullable=False,
        default=BuyerStatus.ACTIVE,
        index=True,
        comment="Lead lifecycle status"
    )

    # Search preferences
    budget_min: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=True,
        comment="Minimum budget in shekels"
    )

    budget_max: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=True,
        comment="Maximum budget in shekels"
    )

    min_rooms: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=4, scale=1),
        nullable=True,
        comment="Minimum number of rooms"
    )

    target_cities: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Cities the buyer is searching in"
    )

    target_neighborhoods: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Neighborhoods the buyer is searching in; empty means any"
    )

    required_features: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Must-have feature keys, see FEATURE_KEYS"
    )

    floor_min: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Lowest acceptable floor"
    )

    floor_max: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Highest acceptable floor"
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Free-form agent notes"
    )

    # Extracted taste profile
    global_liked_profile: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Summary of what the buyer liked across feedback"
    )

    global_disliked_profile: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Summary of what the buyer disliked across feedback"
    )

    agent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Agent responsible for this buyer"
    )

    agent: Mapped[Optional["User"]] = relationship("User", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Buyer(id={self.id}, full_name={self.full_name})>"

    def to_dict(self) -> dict:
        """
        Convert buyer to dictionary.

        Returns:
            Dictionary representation of buyer
        """
        return {
            "id": str(self.id),
            "full_name": self.full_name,
            "phone": self.phone,
            "email": self.email,
            "status": self.status.value,
            "budget_min": float(self.budget_min) if self.budget_min is not None else None,
            "budget_max": float(self.budget_max) if self.budget_max is not None else None,
            "min_rooms": float(self.min_rooms) if self.min_rooms is not None else None,
            "target_cities": list(self.target_cities or []),
            "target_neighborhoods": list(self.target_neighborhoods or []),
            "required_features": list(self.required_features or []),
            "floor_min": self.floor_min,
            "floor_max": self.floor_max,
            "notes": self.notes,
            "global_liked_profile": self.global_liked_profile,
            "global_disliked_profile": self.global_disliked_profile,
            "agent_id": str(self.agent_id) if self.agent_id else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


agent_status_index = Index(
    'idx_buyers_agent_status',
    Buyer.agent_id,
    Buyer.status
)
