"""
Public catalog and buyer portal endpoints. No login is required.
"""

from fastapi import APIRouter, Depends, status, Query, Path
from typing import Optional, List
from uuid import UUID

from estate_crm.services.catalog import CatalogService, BuyerPortalService, catalog_card
from estate_crm.schemas.catalog import (
    CatalogProperty,
    CatalogListResponse,
    LeadRegistrationRequest,
    LeadRegistrationResponse,
    SavePropertyRequest,
    SavePropertyResponse,
    PortalFeedbackUpdate,
    UploadCreate,
    UploadResponse
)
from estate_crm.schemas.buyer_property import BuyerPropertyResponse
from estate_crm.schemas.error import get_common_error_responses
from estate_crm.utils.dependencies import get_catalog_service, get_portal_service


router = APIRouter(tags=["Catalog"])


@router.get(
    "/catalog/properties",
    response_model=CatalogListResponse,
    summary="Browse catalog",
    description="Available listings with images and a formatted price, newest first"
)
async def list_catalog(
    city: Optional[str] = Query(None, description="City filter"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> CatalogListResponse:
    properties, total = await catalog_service.list_catalog(city=city, page=page, page_size=page_size)
    return CatalogListResponse(
        properties=[CatalogProperty.model_validate(catalog_card(prop)) for prop in properties],
        total=total
    )


@router.get(
    "/catalog/properties/{property_id}",
    response_model=CatalogProperty,
    summary="Catalog listing",
    responses=get_common_error_responses()
)
async def get_catalog_property(
    property_id: UUID = Path(..., description="Property ID"),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> CatalogProperty:
    prop = await catalog_service.get_catalog_property(property_id)
    return CatalogProperty.model_validate(catalog_card(prop))


@router.post(
    "/catalog/register",
    response_model=LeadRegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register as a lead",
    description="Create a buyer lead from the catalog, or return the buyer already registered with this phone",
    responses=get_common_error_responses()
)
async def register_lead(
    request: LeadRegistrationRequest,
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> LeadRegistrationResponse:
    buyer, is_new = await catalog_service.register_lead(request)
    return LeadRegistrationResponse(buyer_id=str(buyer.id), is_new=is_new)


@router.post(
    "/catalog/save",
    response_model=SavePropertyResponse,
    summary="Save a listing",
    description="Add a listing to the buyer's journal. Saving twice is harmless.",
    responses=get_common_error_responses()
)
async def save_property(
    request: SavePropertyRequest,
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> SavePropertyResponse:
    row, already_saved = await catalog_service.save_property(request.buyer_id, request.property_id)
    return SavePropertyResponse(buyer_property_id=str(row.id), already_saved=already_saved)


# Buyer portal

@router.get(
    "/portal/{buyer_id}/properties",
    response_model=List[BuyerPropertyResponse],
    summary="Buyer journal",
    description="Properties offered to or saved by the buyer",
    responses=get_common_error_responses()
)
async def portal_properties(
    buyer_id: UUID = Path(..., description="Buyer ID"),
    portal_service: BuyerPortalService = Depends(get_portal_service)
) -> List[BuyerPropertyResponse]:
    rows = await portal_service.list_properties(buyer_id)
    return [BuyerPropertyResponse.model_validate(row.to_dict()) for row in rows]


@router.get(
    "/portal/{buyer_id}/properties/{buyer_property_id}",
    response_model=BuyerPropertyResponse,
    summary="Open a journal entry",
    description="Returns one property of the journal and records the view on the buyer's timeline",
    responses=get_common_error_responses()
)
async def portal_view_property(
    buyer_id: UUID = Path(..., description="Buyer ID"),
    buyer_property_id: UUID = Path(..., description="Journal entry ID"),
    portal_service: BuyerPortalService = Depends(get_portal_service)
) -> BuyerPropertyResponse:
    row = await portal_service.view_property(buyer_id, buyer_property_id)
    return BuyerPropertyResponse.model_validate(row.to_dict())


@router.put(
    "/portal/{buyer_id}/properties/{buyer_property_id}",
    response_model=BuyerPropertyResponse,
    summary="Update journal feedback",
    description="Edit note, liked and disliked text on a journal entry",
    responses=get_common_error_responses()
)
async def portal_update_feedback(
    buyer_id: UUID = Path(..., description="Buyer ID"),
    buyer_property_id: UUID = Path(..., description="Journal entry ID"),
    update: PortalFeedbackUpdate = ...,
    portal_service: BuyerPortalService = Depends(get_portal_service)
) -> BuyerPropertyResponse:
    row = await portal_service.update_feedback(buyer_id, buyer_property_id, update)
    return BuyerPropertyResponse.model_validate(row.to_dict())


@router.post(
    "/portal/{buyer_id}/uploads",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register upload",
    description="Record metadata of a document the buyer uploaded to storage",
    responses=get_common_error_responses()
)
async def portal_add_upload(
    buyer_id: UUID = Path(..., description="Buyer ID"),
    upload: UploadCreate = ...,
    portal_service: BuyerPortalService = Depends(get_portal_service)
) -> UploadResponse:
    row = await portal_service.add_upload(buyer_id, upload)
    return UploadResponse.model_validate(row.to_dict())


@router.get(
    "/portal/{buyer_id}/uploads",
    response_model=List[UploadResponse],
    summary="List uploads",
    responses=get_common_error_responses()
)
async def portal_list_uploads(
    buyer_id: UUID = Path(..., description="Buyer ID"),
    portal_service: BuyerPortalService = Depends(get_portal_service)
) -> List[UploadResponse]:
    rows = await portal_service.list_uploads(buyer_id)
    return [UploadResponse.model_validate(row.to_dict()) for row in rows]
