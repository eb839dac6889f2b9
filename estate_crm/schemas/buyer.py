"""
Pydantic schemas for buyer requests and responses.
Validates phone numbers, budget and floor ranges, and required feature keys.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from estate_crm.models.buyer import BuyerStatus, FEATURE_KEYS
from estate_crm.utils.phone import sanitize_phone, is_valid_israeli_phone

# Fields whose change requires rematching the buyer
MATCHING_FIELDS = (
    "budget_min",
    "budget_max",
    "min_rooms",
    "target_cities",
    "target_neighborhoods",
    "required_features",
    "floor_min",
    "floor_max",
)


def _clean_phone(v: Optional[str]) -> Optional[str]:
    if v is None or not v.strip():
        return None
    phone = sanitize_phone(v)
    if not is_valid_israeli_phone(phone):
        raise ValueError("Invalid Israeli phone number")
    return phone


def _clean_list(values: Optional[List[str]]) -> Optional[List[str]]:
    if values is None:
        return None
    cleaned = []
    for value in values:
        value = value.strip()
        if value and value not in cleaned:
            cleaned.append(value)
    return cleaned


class BuyerPreferences(BaseModel):
    """Search preferences shared by create and update schemas."""

    budget_min: Optional[Decimal] = Field(
        None,
        ge=0,
        le=Decimal("999999999"),
        description="Minimum budget in shekels",
        example=1800000
    )

    budget_max: Optional[Decimal] = Field(
        None,
        ge=0,
        le=Decimal("999999999"),
        description="Maximum budget in shekels",
        example=2500000
    )

    min_rooms: Optional[Decimal] = Field(
        None,
        gt=0,
        le=20,
        description="Minimum number of rooms",
        example=3
    )

    target_cities: Optional[List[str]] = Field(
        None,
        description="Cities the buyer is searching in",
        example=["תל אביב", "רמת גן"]
    )

    target_neighborhoods: Optional[List[str]] = Field(
        None,
        description="Neighborhoods; empty means any neighborhood in the target cities",
        example=["פלורנטין"]
    )

    required_features: Optional[List[str]] = Field(
        None,
        description=f"Must-have features, any of: {', '.join(FEATURE_KEYS)}",
        example=["has_safe_room", "has_elevator"]
    )

    floor_min: Optional[int] = Field(None, ge=-5, le=200, description="Lowest acceptable floor")
    floor_max: Optional[int] = Field(None, ge=-5, le=200, description="Highest acceptable floor")

    @field_validator('target_cities', 'target_neighborhoods')
    @classmethod
    def validate_locations(cls, v):
        return _clean_list(v)

    @field_validator('required_features')
    @classmethod
    def validate_required_features(cls, v):
        """Only known feature keys are accepted."""
        v = _clean_list(v)
        if v:
            unknown = [key for key in v if key not in FEATURE_KEYS]
            if unknown:
                raise ValueError(f"Unknown features: {', '.join(unknown)}")
        return v

    @model_validator(mode='after')
    def validate_ranges(self):
        """Validate budget and floor ranges."""
        if self.budget_min is not None and self.budget_max is not None:
            if self.budget_min > self.budget_max:
                raise ValueError("Minimum budget cannot be greater than maximum budget")

        if self.floor_min is not None and self.floor_max is not None:
            if self.floor_min > self.floor_max:
                raise ValueError("Minimum floor cannot be greater than maximum floor")

        return self


class BuyerCreate(BuyerPreferences):
    """Schema for creating a new buyer."""

    full_name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Buyer full name",
        example="יוסי לוי"
    )

    phone: Optional[str] = Field(
        None,
        max_length=20,
        description="Israeli phone number; stored sanitized",
        example="052-123-4567"
    )

    email: Optional[str] = Field(None, max_length=255, description="Buyer email")

    status: BuyerStatus = Field(BuyerStatus.ACTIVE, description="Lead status")

    notes: Optional[str] = Field(None, max_length=5000, description="Agent notes")

    agent_id: Optional[str] = Field(
        None,
        description="Assign to another agent (admin and manager only)"
    )

    @field_validator('full_name')
    @classmethod
    def validate_full_name(cls, v):
        if not v.strip():
            raise ValueError("Full name cannot be empty")
        return v.strip()

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return _clean_phone(v)

    class Config:
        json_schema_extra = {
            "example": {
                "full_name": "יוסי לוי",
                "phone": "052-123-4567",
                "budget_min": 1800000,
                "budget_max": 2500000,
                "min_rooms": 3,
                "target_cities": ["תל אביב"],
                "required_features": ["has_safe_room"]
            }
        }


class BuyerUpdate(BuyerPreferences):
    """Schema for updating a buyer. Only provided fields change."""

    full_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=255)
    status: Optional[BuyerStatus] = None
    notes: Optional[str] = Field(None, max_length=5000)
    agent_id: Optional[str] = None

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return _clean_phone(v)

    def changes_matching_filters(self) -> bool:
        """True if the update touches any field used by matching."""
        return any(field in self.model_fields_set for field in MATCHING_FIELDS)


class BuyerResponse(BaseModel):
    """Schema for buyer response."""

    id: str = Field(..., description="Buyer unique identifier")
    full_name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    status: BuyerStatus
    budget_min: Optional[float] = None
    budget_max: Optional[float] = None
    min_rooms: Optional[float] = None
    target_cities: List[str] = Field(default_factory=list)
    target_neighborhoods: List[str] = Field(default_factory=list)
    required_features: List[str] = Field(default_factory=list)
    floor_min: Optional[int] = None
    floor_max: Optional[int] = None
    notes: Optional[str] = None
    global_liked_profile: Optional[str] = None
    global_disliked_profile: Optional[str] = None
    agent_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BuyerListResponse(BaseModel):
    """Schema for paginated buyer list response."""

    buyers: List[BuyerResponse] = Field(..., description="List of buyers")
    total: int = Field(..., description="Total number of buyers matching the criteria", example=42)
    page: int = Field(..., description="Current page number", example=1)
    page_size: int = Field(..., description="Number of buyers per page", example=20)
    total_pages: int = Field(..., description="Total number of pages", example=3)
    has_next: bool = Field(..., description="Whether there are more pages")
    has_previous: bool = Field(..., description="Whether there are previous pages")
