"""
Pydantic schemas for property requests and responses.
Handles listing CRUD, search filters, images and extended details.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal
from estate_crm.models.property import PropertyStatus
from estate_crm.schemas.user import UserResponse

MAX_PRICE = Decimal("999999999")


class PropertyImageResponse(BaseModel):
    """Schema for a property image."""

    id: str = Field(..., description="Image unique identifier")
    property_id: str = Field(..., description="Owning property")
    url: str = Field(..., description="Image URL", example="https://cdn.example.com/p/1.jpg")
    is_primary: bool = Field(..., description="Whether this is the primary image")
    display_order: int = Field(..., description="Ordering position", example=0)
    created_at: datetime = Field(..., description="Creation timestamp")

    class Config:
        from_attributes = True


class PropertyImageCreate(BaseModel):
    """Schema for attaching an image URL to a property."""

    url: str = Field(
        ...,
        min_length=1,
        max_length=1000,
        description="Public URL of the image",
        example="https://cdn.example.com/p/1.jpg"
    )

    is_primary: bool = Field(
        False,
        description="Make this the primary image"
    )

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        """Only http(s) URLs are stored."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("Image URL must start with http:// or https://")
        return v


class PropertyBase(BaseModel):
    """Base property schema with common fields."""

    address: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Street address",
        example="הרצל 12"
    )

    city: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="City",
        example="תל אביב"
    )

    neighborhood: Optional[str] = Field(
        None,
        max_length=100,
        description="Neighborhood",
        example="פלורנטין"
    )

    price: Optional[Decimal] = Field(
        None,
        gt=0,
        le=MAX_PRICE,
        description="Asking price in shekels",
        example=2450000
    )

    rooms: Optional[Decimal] = Field(
        None,
        gt=0,
        le=20,
        description="Number of rooms; half rooms allowed",
        example=3.5
    )

    size_sqm: Optional[int] = Field(
        None,
        ge=1,
        le=10000,
        description="Built area in square meters",
        example=85
    )

    floor: Optional[int] = Field(
        None,
        ge=-5,
        le=200,
        description="Floor number",
        example=3
    )

    total_floors: Optional[int] = Field(
        None,
        ge=0,
        le=200,
        description="Floors in the building",
        example=8
    )

    parking_spots: int = Field(
        0,
        ge=0,
        le=100,
        description="Number of parking spots",
        example=1
    )

    has_elevator: bool = Field(False, description="Building has an elevator")
    has_safe_room: bool = Field(False, description="Apartment has a safe room (mamad)")
    has_sun_balcony: bool = Field(False, description="Apartment has a sun balcony")
    has_balcony: bool = Field(False, description="Apartment has a balcony")

    description: Optional[str] = Field(
        None,
        max_length=5000,
        description="Free-text description"
    )

    build_year: Optional[int] = Field(None, ge=1800, le=2100, description="Year of construction")
    renovation_status: Optional[str] = Field(None, max_length=50, description="Renovation state")
    air_directions: List[str] = Field(default_factory=list, description="Air directions", example=["north", "west"])

    status: PropertyStatus = Field(
        PropertyStatus.AVAILABLE,
        description="Listing status",
        example="available"
    )

    @field_validator('address', 'city')
    @classmethod
    def validate_required_text(cls, v):
        """Strip and reject blank values."""
        if not v or not v.strip():
            raise ValueError("Value cannot be empty")
        return v.strip()

    @field_validator('neighborhood', 'description')
    @classmethod
    def strip_optional_text(cls, v):
        if v is None:
            return v
        v = v.strip()
        return v or None

    @model_validator(mode='after')
    def validate_floors(self):
        """Floor cannot be above the building's top floor."""
        if self.floor is not None and self.total_floors is not None and self.floor > self.total_floors:
            raise ValueError("Floor cannot be greater than total floors")
        return self


class PropertyCreate(PropertyBase):
    """Schema for creating a new property."""

    image_urls: List[str] = Field(
        default_factory=list,
        max_length=50,
        description="Image URLs; the first becomes primary"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "address": "הרצל 12",
                "city": "תל אביב",
                "neighborhood": "פלורנטין",
                "price": 2450000,
                "rooms": 3.5,
                "size_sqm": 85,
                "floor": 3,
                "parking_spots": 1,
                "has_elevator": True,
                "has_safe_room": True,
                "image_urls": ["https://cdn.example.com/p/1.jpg"]
            }
        }


class PropertyUpdate(BaseModel):
    """Schema for updating an existing property. All fields are optional."""

    address: Optional[str] = Field(None, min_length=1, max_length=200)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    neighborhood: Optional[str] = Field(None, max_length=100)
    price: Optional[Decimal] = Field(None, gt=0, le=MAX_PRICE)
    rooms: Optional[Decimal] = Field(None, gt=0, le=20)
    size_sqm: Optional[int] = Field(None, ge=1, le=10000)
    floor: Optional[int] = Field(None, ge=-5, le=200)
    total_floors: Optional[int] = Field(None, ge=0, le=200)
    parking_spots: Optional[int] = Field(None, ge=0, le=100)
    has_elevator: Optional[bool] = None
    has_safe_room: Optional[bool] = None
    has_sun_balcony: Optional[bool] = None
    has_balcony: Optional[bool] = None
    description: Optional[str] = Field(None, max_length=5000)
    build_year: Optional[int] = Field(None, ge=1800, le=2100)
    renovation_status: Optional[str] = Field(None, max_length=50)
    air_directions: Optional[List[str]] = None
    status: Optional[PropertyStatus] = None

    @field_validator('address', 'city')
    @classmethod
    def validate_required_text(cls, v):
        if v is not None:
            if not v.strip():
                raise ValueError("Value cannot be empty")
            return v.strip()
        return v

    @model_validator(mode='after')
    def validate_update_data(self):
        """At least one field must be provided for update."""
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        return self


class PropertyExtendedDetailsSchema(BaseModel):
    """Extended details of a property."""

    parking_type: Optional[str] = Field(None, max_length=50, example="underground")
    storage_room: Optional[bool] = None
    accessibility: Optional[bool] = None
    air_conditioning: Optional[str] = Field(None, max_length=50, example="central")
    heating_type: Optional[str] = Field(None, max_length=50)
    furnished: Optional[str] = Field(None, max_length=50, example="partial")
    pets_allowed: Optional[bool] = None
    balcony_size_sqm: Optional[int] = Field(None, ge=0, le=10000)
    garden_size_sqm: Optional[int] = Field(None, ge=0, le=100000)
    entry_date: Optional[date] = None
    arnona_monthly: Optional[Decimal] = Field(None, ge=0, description="Monthly municipal tax")
    vaad_bayit_monthly: Optional[Decimal] = Field(None, ge=0, description="Monthly building committee fee")
    extra_notes: Optional[str] = Field(None, max_length=5000)


class PropertyResponse(PropertyBase):
    """Schema for property response with additional metadata."""

    id: str = Field(
        ...,
        description="Property unique identifier",
        example="123e4567-e89b-12d3-a456-426614174000"
    )

    agent_id: Optional[str] = Field(
        None,
        description="ID of the agent who owns this property",
        example="123e4567-e89b-12d3-a456-426614174001"
    )

    external_id: Optional[str] = Field(None, description="Webtiv serial for synced listings")

    created_at: datetime = Field(..., description="Property creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    agent: Optional[UserResponse] = Field(None, description="Agent information (if included)")

    images: List[PropertyImageResponse] = Field(
        default_factory=list,
        description="Property images"
    )

    primary_image: Optional[PropertyImageResponse] = Field(None, description="Primary image")

    extended_details: Optional[PropertyExtendedDetailsSchema] = Field(
        None,
        description="Extended details (if any)"
    )

    class Config:
        from_attributes = True


class PropertyListResponse(BaseModel):
    """Schema for paginated property list response."""

    properties: List[PropertyResponse] = Field(..., description="List of properties")
    total: int = Field(..., description="Total number of properties matching the criteria", example=150)
    page: int = Field(..., description="Current page number", example=1)
    page_size: int = Field(..., description="Number of properties per page", example=20)
    total_pages: int = Field(..., description="Total number of pages", example=8)
    has_next: bool = Field(..., description="Whether there are more pages", example=True)
    has_previous: bool = Field(..., description="Whether there are previous pages", example=False)


class PropertySearchParams(BaseModel):
    """Schema for property search filters with optional parameters."""

    query: Optional[str] = Field(
        None,
        min_length=1,
        max_length=255,
        description="Search text for address, city, neighborhood and description"
    )
    city: Optional[str] = Field(None, max_length=100, description="City filter")
    neighborhood: Optional[str] = Field(None, max_length=100, description="Neighborhood filter")
    min_price: Optional[Decimal] = Field(None, ge=0, description="Minimum price filter")
    max_price: Optional[Decimal] = Field(None, ge=0, description="Maximum price filter")
    min_rooms: Optional[Decimal] = Field(None, ge=0, le=20, description="Minimum rooms")
    status: Optional[PropertyStatus] = Field(None, description="Listing status filter")
    agent_id: Optional[str] = Field(None, description="Filter by agent ID")

    page: int = Field(1, ge=1, description="Page number (starts from 1)")
    page_size: int = Field(20, ge=1, le=100, description="Number of properties per page (max 100)")

    sort_by: str = Field("created_at", description="Sort field (created_at, updated_at, price, rooms, size_sqm)")
    sort_order: str = Field("desc", description="Sort order (asc or desc)")

    @field_validator('sort_by')
    @classmethod
    def validate_sort_by(cls, v):
        """Validate sort field."""
        allowed_fields = ['created_at', 'updated_at', 'price', 'rooms', 'size_sqm', 'city']
        if v not in allowed_fields:
            raise ValueError(f"Sort field must be one of: {', '.join(allowed_fields)}")
        return v

    @field_validator('sort_order')
    @classmethod
    def validate_sort_order(cls, v):
        """Validate sort order."""
        if v.lower() not in ['asc', 'desc']:
            raise ValueError("Sort order must be 'asc' or 'desc'")
        return v.lower()

    @model_validator(mode='after')
    def validate_ranges(self):
        """Validate price range."""
        if self.min_price is not None and self.max_price is not None:
            if self.min_price > self.max_price:
                raise ValueError("Minimum price cannot be greater than maximum price")
        return self


class PropertySummary(BaseModel):
    """Compact property view used in matches and offered lists."""

    id: str
    address: str
    city: str
    neighborhood: Optional[str] = None
    price: Optional[float] = None
    rooms: Optional[float] = None
    size_sqm: Optional[int] = None
    floor: Optional[int] = None
    status: PropertyStatus
    primary_image_url: Optional[str] = None
