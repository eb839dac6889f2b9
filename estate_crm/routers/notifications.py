"""
Notification endpoints.
Agents read their own match notifications; managers see every notification ranked by score.
"""

from fastapi import APIRouter, Depends, Path
from uuid import UUID

from estate_crm.models.user import User
from estate_crm.services.notification import NotificationService
from estate_crm.schemas.notification import (
    NotificationResponse,
    NotificationListResponse,
    MarkAllReadResponse
)
from estate_crm.schemas.error import get_common_error_responses
from estate_crm.utils.dependencies import (
    get_current_agent_user,
    get_current_manager_user,
    get_notification_service
)


router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List notifications",
    description="Agent view: own latest 50. Manager view: top 100 by match score.",
    responses=get_common_error_responses()
)
async def list_notifications(
    current_user: User = Depends(get_current_agent_user),
    notification_service: NotificationService = Depends(get_notification_service)
) -> NotificationListResponse:
    notifications, unread = await notification_service.get_notifications(current_user)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n.to_dict()) for n in notifications],
        unread_count=unread
    )


@router.post(
    "/read-all",
    response_model=MarkAllReadResponse,
    summary="Mark all as read",
    description="Mark the caller's own unread notifications as read",
    responses=get_common_error_responses()
)
async def mark_all_as_read(
    current_user: User = Depends(get_current_agent_user),
    notification_service: NotificationService = Depends(get_notification_service)
) -> MarkAllReadResponse:
    updated = await notification_service.mark_all_as_read(current_user)
    return MarkAllReadResponse(updated=updated)


@router.post(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark as read",
    responses=get_common_error_responses()
)
async def mark_as_read(
    notification_id: UUID = Path(..., description="Notification ID"),
    current_user: User = Depends(get_current_agent_user),
    notification_service: NotificationService = Depends(get_notification_service)
) -> NotificationResponse:
    notification = await notification_service.mark_as_read(notification_id, current_user)
    return NotificationResponse.model_validate(notification.to_dict())


@router.post(
    "/{notification_id}/manager-read",
    response_model=NotificationResponse,
    summary="Mark as read in the manager view",
    responses=get_common_error_responses()
)
async def mark_as_read_by_manager(
    notification_id: UUID = Path(..., description="Notification ID"),
    current_user: User = Depends(get_current_manager_user),
    notification_service: NotificationService = Depends(get_notification_service)
) -> NotificationResponse:
    notification = await notification_service.mark_as_read_by_manager(notification_id, current_user)
    return NotificationResponse.model_validate(notification.to_dict())
