"""
Integration endpoints: Webtiv listing sync and agent email notifications.
"""

from fastapi import APIRouter, Depends

from estate_crm.models.user import User
from estate_crm.services.email import EmailService
from estate_crm.services.webtiv import WebtivSyncService
from estate_crm.schemas.integrations import (
    WebtivSyncResponse,
    AgentEmailRequest,
    AgentEmailResponse
)
from estate_crm.schemas.error import get_error_responses, get_integration_error_responses
from estate_crm.utils.dependencies import (
    get_current_agent_user,
    get_webtiv_service,
    get_email_service
)


router = APIRouter(prefix="/integrations", tags=["Integrations"])


@router.post(
    "/webtiv/sync",
    response_model=WebtivSyncResponse,
    summary="Sync Webtiv listings",
    description="Fetch the office feed and upsert listings, pictures and agents",
    responses=get_integration_error_responses()
)
async def sync_webtiv(
    current_user: User = Depends(get_current_agent_user),
    webtiv_service: WebtivSyncService = Depends(get_webtiv_service)
) -> WebtivSyncResponse:
    result = await webtiv_service.sync(current_user)
    return WebtivSyncResponse.model_validate(result)


@router.post(
    "/email/agent",
    response_model=AgentEmailResponse,
    summary="Email an agent",
    description="Tell an agent that a buyer asked about a listing. Public, used by the catalog.",
    responses=get_error_responses(400, 404, 503)
)
async def notify_agent(
    request: AgentEmailRequest,
    email_service: EmailService = Depends(get_email_service)
) -> AgentEmailResponse:
    result = await email_service.notify_agent(request)
    return AgentEmailResponse.model_validate(result)
