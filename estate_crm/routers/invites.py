"""
Invitation endpoints.
Agents share a set of listings through an invite link; the signed-in client claims it.
"""

from fastapi import APIRouter, Depends, status
from typing import List

from estate_crm.models.user import User
from estate_crm.services.invite import InviteService
from estate_crm.schemas.invite import (
    SendInviteRequest,
    SendInviteResponse,
    ClaimInviteRequest,
    ClaimInviteResponse,
    InviteResponse
)
from estate_crm.schemas.property import PropertyResponse
from estate_crm.schemas.error import get_crud_error_responses, get_common_error_responses
from estate_crm.utils.dependencies import (
    get_current_active_user,
    get_current_agent_user,
    get_invite_service
)


router = APIRouter(tags=["Invites"])


@router.post(
    "/invites",
    response_model=SendInviteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send invite",
    description="Create an invite link for up to 50 listings",
    responses=get_crud_error_responses()
)
async def send_invite(
    request: SendInviteRequest,
    current_user: User = Depends(get_current_agent_user),
    invite_service: InviteService = Depends(get_invite_service)
) -> SendInviteResponse:
    result = await invite_service.send_invite(request, current_user)
    return SendInviteResponse.model_validate(result)


@router.get(
    "/invites",
    response_model=List[InviteResponse],
    summary="List invites",
    description="Invitations sent by the caller, newest first",
    responses=get_common_error_responses()
)
async def list_invites(
    current_user: User = Depends(get_current_agent_user),
    invite_service: InviteService = Depends(get_invite_service)
) -> List[InviteResponse]:
    invites = await invite_service.list_invites(current_user)
    return [InviteResponse.model_validate(invite.to_dict()) for invite in invites]


@router.post(
    "/invites/claim",
    response_model=ClaimInviteResponse,
    summary="Claim invite",
    description="Attach the invited listings to the signed-in account. An account without a role becomes a client.",
    responses=get_common_error_responses()
)
async def claim_invite(
    request: ClaimInviteRequest,
    current_user: User = Depends(get_current_active_user),
    invite_service: InviteService = Depends(get_invite_service)
) -> ClaimInviteResponse:
    """
    Claim an invitation.

    Raises:
        NotFoundError: If the token is unknown
        InviteExpiredError: If the invitation has expired
        InviteAlreadyAcceptedError: If it was already claimed
    """
    result = await invite_service.claim_invite(request.token, current_user)
    return ClaimInviteResponse.model_validate(result)


@router.get(
    "/client/properties",
    response_model=List[PropertyResponse],
    summary="Assigned properties",
    description="Listings assigned to the signed-in client through claimed invites",
    responses=get_common_error_responses()
)
async def client_properties(
    current_user: User = Depends(get_current_active_user),
    invite_service: InviteService = Depends(get_invite_service)
) -> List[PropertyResponse]:
    views = await invite_service.get_client_properties(current_user)
    return [PropertyResponse.model_validate(view.property.to_dict()) for view in views if view.property]
