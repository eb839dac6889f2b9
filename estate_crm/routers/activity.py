"""
Office-wide activity feed.
"""

from fastapi import APIRouter, Depends
from typing import List

from estate_crm.models.user import User
from estate_crm.services.activity_log import ActivityLogService
from estate_crm.schemas.notification import ActivityLogResponse
from estate_crm.schemas.error import get_auth_error_responses
from estate_crm.utils.dependencies import get_current_agent_user, get_activity_log_service


router = APIRouter(prefix="/activity", tags=["Activity"])


@router.get(
    "",
    response_model=List[ActivityLogResponse],
    summary="Recent activity",
    description="Latest 100 timeline entries. Agents see the entries they performed.",
    responses=get_auth_error_responses()
)
async def recent_activity(
    current_user: User = Depends(get_current_agent_user),
    activity_service: ActivityLogService = Depends(get_activity_log_service)
) -> List[ActivityLogResponse]:
    agent_id = None if current_user.is_manager else current_user.id
    entries = await activity_service.get_recent(agent_id)
    return [ActivityLogResponse.model_validate(entry.to_dict()) for entry in entries]
