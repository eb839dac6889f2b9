"""
Pydantic schemas for the public catalog and the buyer portal.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from estate_crm.utils.phone import sanitize_phone, is_valid_israeli_phone


class CatalogProperty(BaseModel):
    """Public listing card."""

    id: str
    address: str
    city: str
    neighborhood: Optional[str] = None
    price: Optional[float] = None
    formatted_price: str = Field(..., example="₪2,450,000")
    rooms: Optional[float] = None
    size_sqm: Optional[int] = None
    floor: Optional[int] = None
    has_elevator: bool = False
    has_safe_room: bool = False
    has_sun_balcony: bool = False
    parking_spots: int = 0
    description: Optional[str] = None
    image_urls: List[str] = Field(default_factory=list)
    primary_image_url: Optional[str] = None


class CatalogListResponse(BaseModel):
    properties: List[CatalogProperty]
    total: int


class LeadRegistrationRequest(BaseModel):
    """Self-registration from the public catalog."""

    full_name: str = Field(..., min_length=1, max_length=100, example="רונית אברהם")
    phone: str = Field(..., min_length=9, max_length=20, example="050-123-4567")
    email: Optional[str] = Field(None, max_length=255)
    property_id: Optional[str] = Field(None, description="Listing the visitor was looking at")

    @field_validator('full_name')
    @classmethod
    def validate_full_name(cls, v):
        if not v.strip():
            raise ValueError("Full name cannot be empty")
        return v.strip()

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        phone = sanitize_phone(v)
        if not is_valid_israeli_phone(phone):
            raise ValueError("Invalid Israeli phone number")
        return phone


class LeadRegistrationResponse(BaseModel):
    buyer_id: str
    is_new: bool = Field(..., description="False when a buyer with this phone already existed")


class SavePropertyRequest(BaseModel):
    buyer_id: str
    property_id: str


class SavePropertyResponse(BaseModel):
    buyer_property_id: str
    already_saved: bool


class PortalFeedbackUpdate(BaseModel):
    """Fields a buyer may edit on their own offered property."""

    note: Optional[str] = Field(None, max_length=5000)
    liked_text: Optional[str] = Field(None, max_length=5000)
    disliked_text: Optional[str] = Field(None, max_length=5000)


class UploadCreate(BaseModel):
    """Metadata of a file the buyer uploaded to external storage."""

    file_url: str = Field(..., min_length=1, max_length=1000)
    file_name: str = Field(..., min_length=1, max_length=255, example="payslip.pdf")
    file_type: Optional[str] = Field(None, max_length=100, example="application/pdf")
    description: Optional[str] = Field(None, max_length=2000)


class UploadResponse(BaseModel):
    id: str
    buyer_id: str
    file_url: str
    file_name: str
    file_type: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime
