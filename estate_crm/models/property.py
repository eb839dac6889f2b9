"""
Property model for sale listings.
Handles Israeli listing attributes, pricing, features and agent ownership.
"""

from sqlalchemy import String, Text, Integer, Numeric, Boolean, Enum as SQLEnum, Index, ForeignKey, JSON, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from estate_crm.database import Base
from decimal import Decimal
import enum
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from estate_crm.models.user import User
    from estate_crm.models.image import PropertyImage
    from estate_crm.models.property_details import PropertyExtendedDetails


class PropertyStatus(str, enum.Enum):
    """Listing availability status."""
    AVAILABLE = "available"
    PENDING = "pending"
    SOLD = "sold"
    RENTED = "rented"
    INACTIVE = "inactive"


class Property(Base):
    """
    Property model for managing listings.
    Only available properties take part in matching and appear in the public catalog.
    """

    __tablename__ = "properties"

    # Location
    address: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        index=True,
        comment="Street address"
    )

    city: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        comment="City name"
    )

    neighborhood: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
        comment="Neighborhood (shcuna)"
    )

    # Pricing and size
    price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=True,
        index=True,
        comment="Asking price in shekels"
    )

    rooms: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=4, scale=1),
        nullable=True,
        index=True,
        comment="Number of rooms, half rooms allowed"
    )

    size_sqm: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Built area in square meters"
    )

    floor: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Floor number"
    )

    total_floors: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Number of floors in the building"
    )

    # Features
    parking_spots: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Number of parking spots"
    )

    has_elevator: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_safe_room: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Reinforced safe room (mamad)"
    )
    has_sun_balcony: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Sun balcony (mirpeset shemesh)"
    )
    has_balcony: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Listing description"
    )

    build_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    renovation_status: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="Renovation state, e.g. new, renovated, needs_renovation"
    )

    air_directions: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Air directions of the apartment"
    )

    status: Mapped[PropertyStatus] = mapped_column(
        SQLEnum(PropertyStatus),
        nullable=False,
        default=PropertyStatus.AVAILABLE,
        index=True,
        comment="Listing status"
    )

    external_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        unique=True,
        comment="Serial of the listing in the Webtiv feed"
    )

    agent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="ID of the agent who owns this listing"
    )

    # Relationships
    agent: Mapped[Optional["User"]] = relationship("User", lazy="selectin")

    images: Mapped[List["PropertyImage"]] = relationship(
        "PropertyImage",
        back_populates="property_rel",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PropertyImage.is_primary.desc(), PropertyImage.display_order.asc()"
    )

    extended_details: Mapped[Optional["PropertyExtendedDetails"]] = relationship(
        "PropertyExtendedDetails",
        back_populates="property_rel",
        cascade="all, delete-orphan",
        uselist=False,
        lazy="selectin"
    )

    def __repr__(self) -> str:
        """String representation of the property."""
        return f"<Property(id={self.id}, address={self.address}, city={self.city}, price={self.price})>"

    @property
    def primary_image(self) -> Optional["PropertyImage"]:
        """Get the primary image for this property."""
        for image in self.images:
            if image.is_primary:
                return image
        return self.images[0] if self.images else None

    @property
    def is_available(self) -> bool:
        return self.status == PropertyStatus.AVAILABLE

    def validate_price(self) -> None:
        """
        Validate property price.

        Raises:
            ValueError: If price is invalid
        """
        if self.price is None:
            return

        if self.price <= 0:
            raise ValueError("Property price must be greater than 0")

        if self.price > Decimal('999999999'):
            raise ValueError("Property price exceeds maximum allowed value")

    def validate_rooms(self) -> None:
        """
        Validate number of rooms.

        Raises:
            ValueError: If room count is invalid
        """
        if self.rooms is None:
            return

        if self.rooms <= 0:
            raise ValueError("Number of rooms must be greater than 0")

        if self.rooms > 20:
            raise ValueError("Number of rooms exceeds reasonable limit")

    def validate_floor(self) -> None:
        """
        Validate floor numbers.

        Raises:
            ValueError: If floor is out of range
        """
        if self.floor is not None and not (-5 <= self.floor <= 200):
            raise ValueError("Floor must be between -5 and 200")

        if self.floor is not None and self.total_floors is not None and self.floor > self.total_floors:
            raise ValueError("Floor cannot be above the number of floors in the building")

    def validate_all(self) -> None:
        """
        Run all validation checks on the property.

        Raises:
            ValueError: If any validation fails
        """
        self.validate_price()
        self.validate_rooms()
        self.validate_floor()

        if self.parking_spots is not None and not (0 <= self.parking_spots <= 100):
            raise ValueError("Parking spots must be between 0 and 100")

    def to_summary(self) -> dict:
        """Compact representation used in match results and realtime payloads."""
        primary = self.primary_image
        return {
            "id": str(self.id),
            "address": self.address,
            "city": self.city,
            "neighborhood": self.neighborhood,
            "price": float(self.price) if self.price is not None else None,
            "rooms": float(self.rooms) if self.rooms is not None else None,
            "size_sqm": self.size_sqm,
            "floor": self.floor,
            "status": self.status.value,
            "primary_image_url": primary.url if primary else None,
        }

    def to_dict(self, include_agent: bool = False, include_images: bool = True) -> dict:
        """
        Convert property to dictionary.

        Args:
            include_agent: Whether to include agent information
            include_images: Whether to include image information

        Returns:
            Dictionary representation of property
        """
        result = {
            "id": str(self.id),
            "address": self.address,
            "city": self.city,
            "neighborhood": self.neighborhood,
            "price": float(self.price) if self.price is not None else None,
            "rooms": float(self.rooms) if self.rooms is not None else None,
            "size_sqm": self.size_sqm,
            "floor": self.floor,
            "total_floors": self.total_floors,
            "parking_spots": self.parking_spots,
            "has_elevator": self.has_elevator,
            "has_safe_room": self.has_safe_room,
            "has_sun_balcony": self.has_sun_balcony,
            "has_balcony": self.has_balcony,
            "description": self.description,
            "build_year": self.build_year,
            "renovation_status": self.renovation_status,
            "air_directions": list(self.air_directions or []),
            "status": self.status.value,
            "external_id": self.external_id,
            "agent_id": str(self.agent_id) if self.agent_id else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

        if include_agent and self.agent:
            result["agent"] = self.agent.to_dict()

        if include_images:
            result["images"] = [image.to_dict() for image in self.images]
            primary = self.primary_image
            result["primary_image"] = primary.to_dict() if primary else None
            result["extended_details"] = self.extended_details.to_dict() if self.extended_details else None

        return result


# Composite index for the matching candidate scan
status_city_price_index = Index(
    'idx_properties_status_city_price',
    Property.status,
    Property.city,
    Property.price
)

# Composite index for agent's listings
agent_status_index = Index(
    'idx_properties_agent_status',
    Property.agent_id,
    Property.status
)
