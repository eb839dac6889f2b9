"""
Pydantic schemas for matching requests and results.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum
from estate_crm.schemas.property import PropertySummary


class TriggerType(str, Enum):
    PROPERTY_CHANGE = "property_change"
    BUYER_FILTER_CHANGE = "buyer_filter_change"


class MatchingTriggerRequest(BaseModel):
    """Manual matching trigger."""

    type: TriggerType = Field(..., description="What changed", example="property_change")
    property_id: Optional[str] = Field(None, description="Changed property (property_change)")
    buyer_id: Optional[str] = Field(None, description="Changed buyer (buyer_filter_change)")


class MatchedProperty(PropertySummary):
    """Property summary with its score."""

    match_score: int = Field(..., ge=0, le=100, example=85)
    match_reasons: List[str] = Field(default_factory=list)


class FloorRange(BaseModel):
    min: Optional[int] = None
    max: Optional[int] = None


class FiltersApplied(BaseModel):
    """Human-readable summary of the buyer filters used."""

    budget: str = Field(..., example="1800000-2500000")
    min_rooms: Optional[float] = None
    cities: List[str] = Field(default_factory=list)
    neighborhoods: List[str] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)
    floor_range: FloorRange


class MatchingResult(BaseModel):
    """Result of running matching for one buyer."""

    buyer_id: str
    buyer_name: str
    matches: List[MatchedProperty] = Field(default_factory=list)
    total_filtered: int = Field(..., description="Properties that passed the hard filters")
    failed_count: int = Field(..., description="Properties excluded by the hard filters")
    new_matches: int = Field(0, description="Matches that did not exist before this run")
    notifications_created: int = 0
    filters_applied: FiltersApplied


class TriggerResult(BaseModel):
    """Result of a matching trigger."""

    type: TriggerType
    buyers_processed: int = 0
    failed_buyer_ids: List[str] = Field(default_factory=list, description="Buyers whose rematch failed")
    results: List[Dict[str, Any]] = Field(default_factory=list)


class MatchResponse(BaseModel):
    """Persisted match row."""

    id: str
    buyer_id: str
    property_id: str
    match_score: int
    match_reason: Optional[str] = None
    hard_filter_passed: bool
    created_at: datetime
    updated_at: datetime
    property: Optional[Dict[str, Any]] = None


class BuyerRealtimeMatches(BaseModel):
    """Matches of one buyer split into passed and excluded."""

    buyer_id: str
    passed: List[MatchResponse] = Field(default_factory=list)
    excluded: List[MatchResponse] = Field(default_factory=list)


class MatchPreviewItem(BaseModel):
    property: PropertySummary
    match_score: int
    match_reasons: List[str] = Field(default_factory=list)
