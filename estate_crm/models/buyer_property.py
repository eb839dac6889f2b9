"""
BuyerProperty model tracking a buyer's journey with a property.
Stores offer status plus free-text feedback used for taste-profile extraction.
"""

from sqlalchemy import String, Text, Numeric, DateTime, Enum as SQLEnum, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from estate_crm.database import Base
from decimal import Decimal
from datetime import datetime
import enum
import uuid
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from estate_crm.models.buyer import Buyer
    from estate_crm.models.property import Property


class BuyerPropertyStatus(str, enum.Enum):
    """Status of a property offered to (or saved by) a buyer."""
    OFFERED = "offered"
    WANT_TO_SEE = "want_to_see"
    SEEN = "seen"
    INTERESTED = "interested"
    NOT_INTERESTED = "not_interested"
    OFFERED_PRICE = "offered_price"


class BuyerProperty(Base):
    """Link between a buyer and a property with status and feedback."""

    __tablename__ = "buyer_properties"
    __table_args__ = (
        UniqueConstraint("buyer_id", "property_id", name="uq_buyer_properties_buyer_property"),
    )

    buyer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("buyers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    status: Mapped[BuyerPropertyStatus] = mapped_column(
        SQLEnum(BuyerPropertyStatus),
        nullable=False,
        default=BuyerPropertyStatus.OFFERED,
        index=True,
        comment="Where the buyer stands with this property"
    )

    liked_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    disliked_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    not_interested_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    price_offered: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=True,
        comment="Price the buyer offered"
    )

    visited_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the buyer visited the property"
    )

    source: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="agent",
        comment="agent when offered by an agent, catalog when saved by the buyer"
    )

    buyer: Mapped["Buyer"] = relationship("Buyer", lazy="selectin")
    property: Mapped["Property"] = relationship("Property", lazy="selectin")

    def to_dict(self, include_property: bool = True) -> dict:
        result = {
            "id": str(self.id),
            "buyer_id": str(self.buyer_id),
            "property_id": str(self.property_id),
            "status": self.status.value,
            "liked_text": self.liked_text,
            "disliked_text": self.disliked_text,
            "not_interested_reason": self.not_interested_reason,
            "note": self.note,
            "price_offered": float(self.price_offered) if self.price_offered is not None else None,
            "visited_at": self.visited_at.isoformat() if self.visited_at else None,
            "source": self.source,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
        if include_property and self.property is not None:
            result["property"] = self.property.to_summary()
        return result
