"""
Pydantic schemas for calculators, analytics and neighborhood lookups.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict


class MortgageRequest(BaseModel):
    principal: float = Field(..., gt=0, example=1500000)
    annual_rate_percent: float = Field(..., ge=0, le=100, example=4.5)
    years: int = Field(..., ge=1, le=50, example=25)


class MortgageResponse(BaseModel):
    monthly_payment: float
    total_paid: float
    total_interest: float


class ROIRequest(BaseModel):
    price: float = Field(..., gt=0, example=2000000)
    monthly_rent: float = Field(..., ge=0, example=6500)
    annual_expenses: Optional[float] = Field(None, example=8000)


class ROIResponse(BaseModel):
    annual_income: float
    gross_yield: float
    net_yield: Optional[float] = None
    payback_years: Optional[float] = None


class TransactionCostRequest(BaseModel):
    price: float = Field(..., example=2000000)
    purchase_tax: float = Field(0, ge=0)
    lawyer_fee: float = Field(0, ge=0)
    broker_fee: float = Field(0, ge=0)
    renovation: float = Field(0, ge=0)
    other_fees: float = Field(0, ge=0)
    loan_amount: float = Field(0, ge=0)
    annual_rate_percent: float = Field(0, ge=0, le=100)
    loan_years: int = Field(0, ge=0, le=50)


class TransactionCostResponse(BaseModel):
    price: float
    purchase_tax: float
    lawyer_fee: float
    broker_fee: float
    renovation: float
    other_fees: float
    financing_cost: float
    total_cost: float
    equity_required: float


class ExclusionReasonCount(BaseModel):
    reason: str
    count: int


class DashboardStats(BaseModel):
    buyers: int
    properties: int
    available_properties: int
    high_score_matches: int = Field(..., description="Passing matches at or above the notification threshold")
    unread_notifications: int


class NeighborhoodCreate(BaseModel):
    city: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=100)


class NeighborhoodResponse(BaseModel):
    id: str
    city: str
    name: str
    is_custom: bool


class NeighborhoodLookup(BaseModel):
    cities: Dict[str, List[str]] = Field(..., description="Neighborhood names per city")
