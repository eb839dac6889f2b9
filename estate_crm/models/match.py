"""
Match model storing persisted buyer-property matching results.
Rows that failed a hard filter are kept with a zero score and the exclusion reason.
"""

from sqlalchemy import Integer, Boolean, Text, ForeignKey, UniqueConstraint, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from estate_crm.database import Base
import uuid
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from estate_crm.models.buyer import Buyer
    from estate_crm.models.property import Property


class Match(Base):
    """Result of matching one buyer against one property."""

    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("buyer_id", "property_id", name="uq_matches_buyer_property"),
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

    match_score: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Additive match score between 0 and 100"
    )

    match_reason: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Score reasons, or the exclusion reason when the hard filters failed"
    )

    hard_filter_passed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True
    )

    buyer: Mapped["Buyer"] = relationship("Buyer", lazy="noload")
    property: Mapped["Property"] = relationship("Property", lazy="selectin")

    def to_dict(self, include_property: bool = False) -> dict:
        result = {
            "id": str(self.id),
            "buyer_id": str(self.buyer_id),
            "property_id": str(self.property_id),
            "match_score": self.match_score,
            "match_reason": self.match_reason,
            "hard_filter_passed": self.hard_filter_passed,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
        if include_property and self.property is not None:
            result["property"] = self.property.to_dict(include_images=True)
        return result


buyer_passed_score_index = Index(
    'idx_matches_buyer_passed_score',
    Match.buyer_id,
    Match.hard_filter_passed,
    Match.match_score.desc()
)
