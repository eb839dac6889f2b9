"""
Dashboard analytics, financial calculators and the neighborhood lookup.
"""

from fastapi import APIRouter, Depends, status, Query
from typing import Optional, List
from datetime import datetime

from estate_crm.models.user import User
from estate_crm.services import analytics
from estate_crm.services.analytics import AnalyticsService
from estate_crm.services.neighborhood import NeighborhoodService
from estate_crm.schemas.analytics import (
    MortgageRequest,
    MortgageResponse,
    ROIRequest,
    ROIResponse,
    TransactionCostRequest,
    TransactionCostResponse,
    ExclusionReasonCount,
    DashboardStats,
    NeighborhoodCreate,
    NeighborhoodResponse,
    NeighborhoodLookup
)
from estate_crm.schemas.error import get_common_error_responses, get_crud_error_responses
from estate_crm.utils.dependencies import (
    get_current_agent_user,
    get_current_admin_user,
    get_analytics_service,
    get_neighborhood_service
)


router = APIRouter(tags=["Analytics"])


@router.get(
    "/analytics/dashboard",
    response_model=DashboardStats,
    summary="Dashboard counters",
    responses=get_common_error_responses()
)
async def dashboard(
    current_user: User = Depends(get_current_agent_user),
    analytics_service: AnalyticsService = Depends(get_analytics_service)
) -> DashboardStats:
    return DashboardStats.model_validate(await analytics_service.dashboard_stats(current_user))


@router.get(
    "/analytics/exclusion-reasons",
    response_model=List[ExclusionReasonCount],
    summary="Top exclusion reasons",
    description="Most common reasons listings failed the hard filters",
    responses=get_common_error_responses()
)
async def exclusion_reasons(
    date_from: Optional[datetime] = Query(None, description="Only matches created at or after"),
    date_to: Optional[datetime] = Query(None, description="Only matches created at or before"),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_agent_user),
    analytics_service: AnalyticsService = Depends(get_analytics_service)
) -> List[ExclusionReasonCount]:
    rows = await analytics_service.top_exclusion_reasons(current_user, date_from, date_to, limit)
    return [ExclusionReasonCount.model_validate(row) for row in rows]


@router.post("/calculators/mortgage", response_model=MortgageResponse, summary="Mortgage payment")
async def mortgage(request: MortgageRequest) -> MortgageResponse:
    return MortgageResponse.model_validate(analytics.mortgage(request))


@router.post("/calculators/roi", response_model=ROIResponse, summary="Rental yield")
async def roi(request: ROIRequest) -> ROIResponse:
    return ROIResponse.model_validate(analytics.roi(request))


@router.post(
    "/calculators/transaction-cost",
    response_model=TransactionCostResponse,
    summary="Transaction cost",
    responses=get_common_error_responses()
)
async def transaction_cost(request: TransactionCostRequest) -> TransactionCostResponse:
    return TransactionCostResponse.model_validate(analytics.transaction_cost(request))


@router.get(
    "/neighborhoods",
    response_model=NeighborhoodLookup,
    summary="Neighborhood lookup",
    description="Neighborhood names per city, built-in and admin-added"
)
async def neighborhoods(
    city: Optional[str] = Query(None, description="Only this city"),
    neighborhood_service: NeighborhoodService = Depends(get_neighborhood_service)
) -> NeighborhoodLookup:
    return NeighborhoodLookup.model_validate(await neighborhood_service.lookup(city))


@router.get(
    "/neighborhoods/custom",
    response_model=List[NeighborhoodResponse],
    summary="Admin-added neighborhoods",
    responses=get_common_error_responses()
)
async def custom_neighborhoods(
    current_user: User = Depends(get_current_admin_user),
    neighborhood_service: NeighborhoodService = Depends(get_neighborhood_service)
) -> List[NeighborhoodResponse]:
    rows = await neighborhood_service.list_custom()
    return [NeighborhoodResponse.model_validate(row.to_dict()) for row in rows]


@router.post(
    "/neighborhoods",
    response_model=NeighborhoodResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add neighborhood",
    responses=get_crud_error_responses()
)
async def add_neighborhood(
    data: NeighborhoodCreate,
    current_user: User = Depends(get_current_admin_user),
    neighborhood_service: NeighborhoodService = Depends(get_neighborhood_service)
) -> NeighborhoodResponse:
    row = await neighborhood_service.add_custom(data, current_user)
    return NeighborhoodResponse.model_validate(row.to_dict())
