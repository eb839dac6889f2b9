"""
Buyer management API endpoints.
CRUD for buyers, the properties offered to them, their timeline and their matches.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import async_sessionmaker
from typing import Optional, List
from uuid import UUID
import math

from estate_crm.database import get_session_factory
from estate_crm.models.user import User
from estate_crm.models.buyer import BuyerStatus
from estate_crm.services.activity_log import ActivityLogService
from estate_crm.services.buyer import BuyerService
from estate_crm.services.buyer_property import BuyerPropertyService
from estate_crm.services.matching import MatchingService, run_matching_trigger
from estate_crm.services.taste_profile import TasteProfileService
from estate_crm.schemas.buyer import BuyerCreate, BuyerUpdate, BuyerResponse, BuyerListResponse
from estate_crm.schemas.buyer_property import (
    OfferPropertiesRequest,
    BuyerPropertyUpdate,
    BuyerPropertyResponse
)
from estate_crm.schemas.match import (
    TriggerType,
    MatchingResult,
    MatchResponse,
    MatchPreviewItem
)
from estate_crm.schemas.notification import ActivityLogCreate, ActivityLogResponse
from estate_crm.schemas.integrations import TasteProfileResponse
from estate_crm.utils.dependencies import (
    get_current_agent_user,
    get_buyer_service,
    get_buyer_property_service,
    get_activity_log_service,
    get_matching_service,
    get_taste_profile_service
)
from estate_crm.utils.exceptions import NotFoundError, ValidationError
from estate_crm.schemas.error import (
    get_crud_error_responses,
    get_common_error_responses,
    get_integration_error_responses
)
import uuid


router = APIRouter(prefix="/buyers", tags=["Buyers"])


@router.post(
    "",
    response_model=BuyerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create buyer",
    description="Create a buyer owned by the caller. Managers may assign another agent.",
    responses=get_crud_error_responses()
)
async def create_buyer(
    buyer_data: BuyerCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_agent_user),
    buyer_service: BuyerService = Depends(get_buyer_service),
    session_factory: async_sessionmaker = Depends(get_session_factory)
) -> BuyerResponse:
    buyer = await buyer_service.create_buyer(buyer_data, current_user)

    background_tasks.add_task(
        run_matching_trigger, session_factory, TriggerType.BUYER_FILTER_CHANGE, buyer_id=buyer.id
    )

    return BuyerResponse.model_validate(buyer.to_dict())


@router.get(
    "",
    response_model=BuyerListResponse,
    summary="List buyers",
    description="Agents see their own buyers; managers and admins see everyone",
    responses=get_common_error_responses()
)
async def list_buyers(
    status_filter: Optional[BuyerStatus] = Query(None, alias="status", description="Lead status"),
    city: Optional[str] = Query(None, description="Target city"),
    query: Optional[str] = Query(None, description="Search name, phone and email"),
    page: int = Query(1, ge=1, description="Page number (starts from 1)"),
    page_size: int = Query(20, ge=1, le=100, description="Number of buyers per page"),
    current_user: User = Depends(get_current_agent_user),
    buyer_service: BuyerService = Depends(get_buyer_service)
) -> BuyerListResponse:
    buyers, total_count = await buyer_service.list_buyers(
        current_user,
        status=status_filter,
        city=city,
        search_text=query,
        page=page,
        page_size=page_size
    )

    total_pages = math.ceil(total_count / page_size) if total_count > 0 else 1

    return BuyerListResponse(
        buyers=[BuyerResponse.model_validate(buyer.to_dict()) for buyer in buyers],
        total=total_count,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_previous=page > 1
    )


@router.get(
    "/{buyer_id}",
    response_model=BuyerResponse,
    summary="Get buyer",
    responses=get_common_error_responses()
)
async def get_buyer(
    buyer_id: UUID = Path(..., description="Buyer ID"),
    current_user: User = Depends(get_current_agent_user),
    buyer_service: BuyerService = Depends(get_buyer_service)
) -> BuyerResponse:
    buyer = await buyer_service.get_buyer(buyer_id, current_user)
    return BuyerResponse.model_validate(buyer.to_dict())


@router.put(
    "/{buyer_id}",
    response_model=BuyerResponse,
    summary="Update buyer",
    description="Update a buyer. Changing a matching filter rematches the buyer in the background.",
    responses=get_crud_error_responses()
)
async def update_buyer(
    background_tasks: BackgroundTasks,
    buyer_id: UUID = Path(..., description="Buyer ID"),
    buyer_data: BuyerUpdate = ...,
    current_user: User = Depends(get_current_agent_user),
    buyer_service: BuyerService = Depends(get_buyer_service),
    session_factory: async_sessionmaker = Depends(get_session_factory)
) -> BuyerResponse:
    """
    Update buyer details.

    Raises:
        NotFoundError: If the buyer doesn't exist
        ForbiddenError: If the buyer belongs to another agent
        ValidationError: If the merged preferences are inconsistent
    """
    buyer, filters_changed = await buyer_service.update_buyer(buyer_id, buyer_data, current_user)

    if filters_changed:
        background_tasks.add_task(
            run_matching_trigger, session_factory, TriggerType.BUYER_FILTER_CHANGE, buyer_id=buyer_id
        )

    return BuyerResponse.model_validate(buyer.to_dict())


@router.delete(
    "/{buyer_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete buyer",
    responses=get_crud_error_responses()
)
async def delete_buyer(
    buyer_id: UUID = Path(..., description="Buyer ID"),
    current_user: User = Depends(get_current_agent_user),
    buyer_service: BuyerService = Depends(get_buyer_service)
) -> None:
    deleted = await buyer_service.delete_buyer(buyer_id, current_user)

    if not deleted:
        raise NotFoundError("Buyer", str(buyer_id))


# Offered properties

@router.get(
    "/{buyer_id}/properties",
    response_model=List[BuyerPropertyResponse],
    summary="List offered properties",
    description="Properties offered to or saved by the buyer, newest first",
    responses=get_common_error_responses()
)
async def list_offered_properties(
    buyer_id: UUID = Path(..., description="Buyer ID"),
    current_user: User = Depends(get_current_agent_user),
    buyer_property_service: BuyerPropertyService = Depends(get_buyer_property_service)
) -> List[BuyerPropertyResponse]:
    rows = await buyer_property_service.list_offered(buyer_id, current_user)
    return [BuyerPropertyResponse.model_validate(row.to_dict()) for row in rows]


@router.post(
    "/{buyer_id}/properties",
    response_model=List[BuyerPropertyResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Offer properties",
    description="Offer listings to the buyer. Listings already offered are skipped.",
    responses=get_crud_error_responses()
)
async def offer_properties(
    buyer_id: UUID = Path(..., description="Buyer ID"),
    request: OfferPropertiesRequest = ...,
    current_user: User = Depends(get_current_agent_user),
    buyer_property_service: BuyerPropertyService = Depends(get_buyer_property_service)
) -> List[BuyerPropertyResponse]:
    rows = await buyer_property_service.offer_properties(buyer_id, request.property_ids, current_user)
    return [BuyerPropertyResponse.model_validate(row.to_dict()) for row in rows]


@router.put(
    "/{buyer_id}/properties/{buyer_property_id}",
    response_model=BuyerPropertyResponse,
    summary="Update offered property",
    description="Change status and feedback of an offered property",
    responses=get_crud_error_responses()
)
async def update_offered_property(
    buyer_id: UUID = Path(..., description="Buyer ID"),
    buyer_property_id: UUID = Path(..., description="Offered property ID"),
    update: BuyerPropertyUpdate = ...,
    current_user: User = Depends(get_current_agent_user),
    buyer_property_service: BuyerPropertyService = Depends(get_buyer_property_service)
) -> BuyerPropertyResponse:
    row = await buyer_property_service.update_offered(buyer_id, buyer_property_id, update, current_user)
    return BuyerPropertyResponse.model_validate(row.to_dict())


# Timeline

@router.get(
    "/{buyer_id}/activity",
    response_model=List[ActivityLogResponse],
    summary="Buyer timeline",
    description="Latest 50 timeline entries of the buyer",
    responses=get_common_error_responses()
)
async def get_buyer_activity(
    buyer_id: UUID = Path(..., description="Buyer ID"),
    current_user: User = Depends(get_current_agent_user),
    buyer_service: BuyerService = Depends(get_buyer_service),
    activity_service: ActivityLogService = Depends(get_activity_log_service)
) -> List[ActivityLogResponse]:
    await buyer_service.get_buyer(buyer_id, current_user)
    entries = await activity_service.get_buyer_timeline(buyer_id)
    return [ActivityLogResponse.model_validate(entry.to_dict()) for entry in entries]


@router.post(
    "/{buyer_id}/activity",
    response_model=ActivityLogResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add timeline entry",
    description="Record an action taken outside the CRM, such as a WhatsApp message",
    responses=get_crud_error_responses()
)
async def add_buyer_activity(
    buyer_id: UUID = Path(..., description="Buyer ID"),
    entry: ActivityLogCreate = ...,
    current_user: User = Depends(get_current_agent_user),
    buyer_service: BuyerService = Depends(get_buyer_service),
    activity_service: ActivityLogService = Depends(get_activity_log_service)
) -> ActivityLogResponse:
    await buyer_service.get_buyer(buyer_id, current_user)

    property_id = None
    if entry.property_id:
        try:
            property_id = uuid.UUID(entry.property_id)
        except ValueError:
            raise ValidationError("Invalid property ID format")

    row = await activity_service.log(
        entry.action_type,
        entry.description,
        buyer_id=buyer_id,
        agent_id=current_user.id,
        property_id=property_id,
        metadata=entry.metadata
    )
    return ActivityLogResponse.model_validate(row.to_dict())


# Matching

@router.post(
    "/{buyer_id}/matching",
    response_model=MatchingResult,
    summary="Run matching",
    description="Filter, score and store matches for the buyer now",
    responses=get_common_error_responses()
)
async def run_matching(
    buyer_id: UUID = Path(..., description="Buyer ID"),
    save_to_db: bool = Query(True, description="Persist matches and notifications"),
    current_user: User = Depends(get_current_agent_user),
    buyer_service: BuyerService = Depends(get_buyer_service),
    matching_service: MatchingService = Depends(get_matching_service)
) -> MatchingResult:
    await buyer_service.get_buyer(buyer_id, current_user)
    result = await matching_service.run_matching(buyer_id, save_to_db=save_to_db)
    return MatchingResult.model_validate(result)


@router.get(
    "/{buyer_id}/matches",
    response_model=List[MatchResponse],
    summary="Stored matches",
    description="Passing matches of the buyer, best first",
    responses=get_common_error_responses()
)
async def get_buyer_matches(
    buyer_id: UUID = Path(..., description="Buyer ID"),
    current_user: User = Depends(get_current_agent_user),
    matching_service: MatchingService = Depends(get_matching_service)
) -> List[MatchResponse]:
    matches = await matching_service.get_buyer_matches(buyer_id, current_user)
    return [MatchResponse.model_validate(match.to_dict(include_property=True)) for match in matches]


@router.get(
    "/{buyer_id}/matches/preview",
    response_model=List[MatchPreviewItem],
    summary="Preview ranking",
    description="Score every available listing for the buyer without hard filters or saving",
    responses=get_common_error_responses()
)
async def preview_buyer_matches(
    buyer_id: UUID = Path(..., description="Buyer ID"),
    current_user: User = Depends(get_current_agent_user),
    matching_service: MatchingService = Depends(get_matching_service)
) -> List[MatchPreviewItem]:
    items = await matching_service.preview_matches(buyer_id, current_user)
    return [MatchPreviewItem.model_validate(item) for item in items]


@router.post(
    "/{buyer_id}/taste-profile",
    response_model=TasteProfileResponse,
    summary="Extract taste profile",
    description="Summarize the buyer's feedback into liked and disliked profiles with the AI gateway",
    responses=get_integration_error_responses()
)
async def extract_taste_profile(
    buyer_id: UUID = Path(..., description="Buyer ID"),
    current_user: User = Depends(get_current_agent_user),
    taste_service: TasteProfileService = Depends(get_taste_profile_service)
) -> TasteProfileResponse:
    result = await taste_service.extract(buyer_id, current_user)
    return TasteProfileResponse.model_validate(result)
