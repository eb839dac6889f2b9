"""
Notification model for high-scoring matches and buyer requests.
Read state is tracked separately for the responsible agent and for managers.
"""

from sqlalchemy import Integer, Boolean, Text, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from estate_crm.database import Base
import uuid
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from estate_crm.models.buyer import Buyer
    from estate_crm.models.property import Property


class Notification(Base):
    """Notification about a buyer-property pair."""

    __tablename__ = "notifications"

    buyer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("buyers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    property_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )

    agent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Agent who should act on the notification"
    )

    match_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)

    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_read_by_agent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    is_read_by_manager: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    buyer: Mapped["Buyer"] = relationship("Buyer", lazy="selectin")
    property: Mapped[Optional["Property"]] = relationship("Property", lazy="selectin")

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "buyer_id": str(self.buyer_id),
            "property_id": str(self.property_id) if self.property_id else None,
            "agent_id": str(self.agent_id) if self.agent_id else None,
            "match_score": self.match_score,
            "message": self.message,
            "is_read_by_agent": self.is_read_by_agent,
            "is_read_by_manager": self.is_read_by_manager,
            "buyer_name": self.buyer.full_name if self.buyer else None,
            "property_address": self.property.address if self.property else None,
            "property_city": self.property.city if self.property else None,
            "created_at": self.created_at.isoformat(),
        }
