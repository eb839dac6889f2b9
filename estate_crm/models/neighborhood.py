"""
Neighborhood lookup model.
Rows extend the built-in neighborhood lists; admins add custom entries.
"""

from sqlalchemy import String, Boolean, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from estate_crm.database import Base
import uuid
from typing import Optional


class Neighborhood(Base):
    """Neighborhood name within a city."""

    __tablename__ = "neighborhoods"
    __table_args__ = (
        UniqueConstraint("city", "name", name="uq_neighborhoods_city_name"),
    )

    city: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_custom: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    added_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "city": self.city,
            "name": self.name,
            "is_custom": self.is_custom,
        }
