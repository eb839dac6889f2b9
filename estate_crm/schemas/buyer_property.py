"""
Pydantic schemas for offered properties and buyer feedback.
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from estate_crm.models.buyer_property import BuyerPropertyStatus
from estate_crm.schemas.property import PropertySummary


class OfferPropertiesRequest(BaseModel):
    """Offer one or more properties to a buyer."""

    property_ids: List[str] = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Properties to offer",
        example=["123e4567-e89b-12d3-a456-426614174000"]
    )


class BuyerPropertyUpdate(BaseModel):
    """Status and feedback update for an offered property."""

    status: Optional[BuyerPropertyStatus] = Field(None, description="New status", example="seen")
    liked_text: Optional[str] = Field(None, max_length=5000, description="What the buyer liked")
    disliked_text: Optional[str] = Field(None, max_length=5000, description="What the buyer disliked")
    not_interested_reason: Optional[str] = Field(None, max_length=5000)
    note: Optional[str] = Field(None, max_length=5000, description="Agent or buyer note")
    price_offered: Optional[Decimal] = Field(None, gt=0, le=Decimal("999999999"))
    visited_at: Optional[datetime] = None

    @model_validator(mode='after')
    def validate_update_data(self):
        """At least one field must be provided for update."""
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        return self


class BuyerPropertyResponse(BaseModel):
    """Offered property with feedback."""

    id: str
    buyer_id: str
    property_id: str
    status: BuyerPropertyStatus
    liked_text: Optional[str] = None
    disliked_text: Optional[str] = None
    not_interested_reason: Optional[str] = None
    note: Optional[str] = None
    price_offered: Optional[float] = None
    visited_at: Optional[datetime] = None
    source: str = "agent"
    property: Optional[PropertySummary] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
