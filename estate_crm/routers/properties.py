"""
Property management API endpoints for CRUD operations, search, images and extended details.
Creating or updating a listing schedules matching for the buyers it may suit.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import async_sessionmaker
from typing import Optional
from uuid import UUID
from decimal import Decimal
import math

from estate_crm.database import get_session_factory
from estate_crm.models.user import User
from estate_crm.models.property import PropertyStatus
from estate_crm.services.property import PropertyService
from estate_crm.services.matching import run_matching_trigger
from estate_crm.schemas.match import TriggerType
from estate_crm.schemas.property import (
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    PropertyListResponse,
    PropertySearchParams,
    PropertyImageCreate,
    PropertyImageResponse,
    PropertyExtendedDetailsSchema
)
from estate_crm.utils.dependencies import get_current_agent_user, get_property_service
from estate_crm.utils.exceptions import NotFoundError
from estate_crm.schemas.error import get_crud_error_responses, get_common_error_responses


router = APIRouter(prefix="/properties", tags=["Properties"])


@router.post(
    "",
    response_model=PropertyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new property",
    description="Create a new listing owned by the caller. Requires a staff role.",
    responses=get_crud_error_responses()
)
async def create_property(
    property_data: PropertyCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_agent_user),
    property_service: PropertyService = Depends(get_property_service),
    session_factory: async_sessionmaker = Depends(get_session_factory)
) -> PropertyResponse:
    """
    Create a new property listing.

    Raises:
        InsufficientPermissionsError: If user doesn't have a staff role
        ValidationError: If property data is invalid
    """
    property_obj = await property_service.create_property(property_data, current_user)

    background_tasks.add_task(
        run_matching_trigger, session_factory, TriggerType.PROPERTY_CHANGE, property_id=property_obj.id
    )

    return PropertyResponse.model_validate(property_obj.to_dict())


@router.get(
    "",
    response_model=PropertyListResponse,
    status_code=status.HTTP_200_OK,
    summary="List properties with search and filtering",
    description="Get paginated list of properties with optional search filters",
    responses=get_common_error_responses()
)
async def list_properties(
    query: Optional[str] = Query(None, description="Search address, neighborhood and description"),
    city: Optional[str] = Query(None, description="City filter"),
    neighborhood: Optional[str] = Query(None, description="Neighborhood filter"),
    min_price: Optional[Decimal] = Query(None, ge=0, description="Minimum price filter"),
    max_price: Optional[Decimal] = Query(None, ge=0, description="Maximum price filter"),
    min_rooms: Optional[Decimal] = Query(None, ge=0, le=20, description="Minimum number of rooms"),
    status_filter: Optional[PropertyStatus] = Query(None, alias="status", description="Listing status"),
    agent_id: Optional[str] = Query(None, description="Filter by agent ID"),
    page: int = Query(1, ge=1, description="Page number (starts from 1)"),
    page_size: int = Query(20, ge=1, le=100, description="Number of properties per page"),
    sort_by: str = Query("created_at", description="Sort field"),
    sort_order: str = Query("desc", description="Sort order (asc/desc)"),
    current_user: User = Depends(get_current_agent_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyListResponse:
    search_params = PropertySearchParams(
        query=query,
        city=city,
        neighborhood=neighborhood,
        min_price=min_price,
        max_price=max_price,
        min_rooms=min_rooms,
        status=status_filter,
        agent_id=agent_id,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        sort_order=sort_order
    )

    properties, total_count = await property_service.search_properties(search_params)

    total_pages = math.ceil(total_count / page_size) if total_count > 0 else 1

    return PropertyListResponse(
        properties=[PropertyResponse.model_validate(prop.to_dict()) for prop in properties],
        total=total_count,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_previous=page > 1
    )


@router.get(
    "/{property_id}",
    response_model=PropertyResponse,
    status_code=status.HTTP_200_OK,
    summary="Get property details",
    description="Listing with agent, images and extended details",
    responses=get_common_error_responses()
)
async def get_property(
    property_id: UUID = Path(..., description="Property ID"),
    current_user: User = Depends(get_current_agent_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    property_obj = await property_service.get_property(property_id)
    return PropertyResponse.model_validate(property_obj.to_dict(include_agent=True))


@router.put(
    "/{property_id}",
    response_model=PropertyResponse,
    status_code=status.HTTP_200_OK,
    summary="Update property",
    description="Update listing fields. Only the listing agent, managers and admins can update.",
    responses=get_crud_error_responses()
)
async def update_property(
    background_tasks: BackgroundTasks,
    property_id: UUID = Path(..., description="Property ID"),
    property_data: PropertyUpdate = ...,
    current_user: User = Depends(get_current_agent_user),
    property_service: PropertyService = Depends(get_property_service),
    session_factory: async_sessionmaker = Depends(get_session_factory)
) -> PropertyResponse:
    """
    Update property details and rematch candidate buyers in the background.

    Raises:
        NotFoundError: If property doesn't exist
        InsufficientPermissionsError: If user doesn't own the property
        ValidationError: If update data is invalid
    """
    updated_property = await property_service.update_property(property_id, property_data, current_user)

    background_tasks.add_task(
        run_matching_trigger, session_factory, TriggerType.PROPERTY_CHANGE, property_id=property_id
    )

    return PropertyResponse.model_validate(updated_property.to_dict())


@router.delete(
    "/{property_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete property",
    description="Delete a listing. Only the listing agent, managers and admins can delete.",
    responses=get_crud_error_responses()
)
async def delete_property(
    property_id: UUID = Path(..., description="Property ID"),
    current_user: User = Depends(get_current_agent_user),
    property_service: PropertyService = Depends(get_property_service)
) -> None:
    deleted = await property_service.delete_property(property_id, current_user)

    if not deleted:
        raise NotFoundError("Property", str(property_id))


@router.post(
    "/{property_id}/images",
    response_model=PropertyImageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add image",
    description="Attach an image URL to a listing",
    responses=get_crud_error_responses()
)
async def add_image(
    property_id: UUID = Path(..., description="Property ID"),
    image_data: PropertyImageCreate = ...,
    current_user: User = Depends(get_current_agent_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyImageResponse:
    image = await property_service.add_image(property_id, image_data, current_user)
    return PropertyImageResponse.model_validate(image.to_dict())


@router.put(
    "/{property_id}/images/{image_id}/primary",
    response_model=PropertyImageResponse,
    summary="Set primary image",
    description="Make an image the primary one. Any other primary image of the listing is cleared.",
    responses=get_crud_error_responses()
)
async def set_primary_image(
    property_id: UUID = Path(..., description="Property ID"),
    image_id: UUID = Path(..., description="Image ID"),
    current_user: User = Depends(get_current_agent_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyImageResponse:
    image = await property_service.set_primary_image(property_id, image_id, current_user)
    return PropertyImageResponse.model_validate(image.to_dict())


@router.delete(
    "/{property_id}/images/{image_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete image",
    responses=get_crud_error_responses()
)
async def delete_image(
    property_id: UUID = Path(..., description="Property ID"),
    image_id: UUID = Path(..., description="Image ID"),
    current_user: User = Depends(get_current_agent_user),
    property_service: PropertyService = Depends(get_property_service)
) -> None:
    await property_service.delete_image(property_id, image_id, current_user)


@router.put(
    "/{property_id}/details",
    response_model=PropertyExtendedDetailsSchema,
    summary="Save extended details",
    description="Create or update the extended details of a listing. Only fields sent are written.",
    responses=get_crud_error_responses()
)
async def upsert_extended_details(
    property_id: UUID = Path(..., description="Property ID"),
    details: PropertyExtendedDetailsSchema = ...,
    current_user: User = Depends(get_current_agent_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyExtendedDetailsSchema:
    row = await property_service.upsert_extended_details(property_id, details, current_user)
    return PropertyExtendedDetailsSchema.model_validate(row.to_dict())
