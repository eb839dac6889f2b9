"""
Extended property details.
Optional one-to-one attributes that do not take part in matching.
"""

from sqlalchemy import String, Text, Integer, Numeric, Boolean, ForeignKey, Date, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from estate_crm.database import Base
from decimal import Decimal
from datetime import date
import uuid
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from estate_crm.models.property import Property

DETAIL_FIELDS = (
    "parking_type",
    "storage_room",
    "accessibility",
    "air_conditioning",
    "heating_type",
    "furnished",
    "pets_allowed",
    "balcony_size_sqm",
    "garden_size_sqm",
    "entry_date",
    "arnona_monthly",
    "vaad_bayit_monthly",
    "extra_notes",
)


class PropertyExtendedDetails(Base):
    """Extended attributes for a property, one row per property."""

    __tablename__ = "property_extended_details"

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True
    )

    parking_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    storage_room: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    accessibility: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    air_conditioning: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    heating_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    furnished: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    pets_allowed: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    balcony_size_sqm: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    garden_size_sqm: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    entry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    arnona_monthly: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=True,
        comment="Municipal property tax per month"
    )

    vaad_bayit_monthly: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=True,
        comment="Building committee fee per month"
    )

    extra_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    property_rel: Mapped["Property"] = relationship(
        "Property",
        back_populates="extended_details",
        lazy="noload"
    )

    def to_dict(self) -> dict:
        result = {"property_id": str(self.property_id)}
        for field in DETAIL_FIELDS:
            value = getattr(self, field)
            if isinstance(value, Decimal):
                value = float(value)
            elif isinstance(value, date):
                value = value.isoformat()
            result[field] = value
        return result
