"""
Notification service.
Creates match and lead notifications and serves the agent and manager views.
"""

from typing import Optional, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from estate_crm.repositories.notification import NotificationRepository
from estate_crm.models.notification import Notification
from estate_crm.models.user import User
from estate_crm.utils.exceptions import (
    NotFoundError,
    ForbiddenError,
    InsufficientPermissionsError,
    BadRequestError
)
import uuid
import logging

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Service for notification business logic.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.notification_repo = NotificationRepository(db_session)

    async def create_notification(
        self,
        buyer_id: uuid.UUID,
        property_id: Optional[uuid.UUID],
        agent_id: Optional[uuid.UUID],
        match_score: int,
        message: str,
        skip_if_exists: bool = True
    ) -> Optional[Notification]:
        """
        Create an unread notification for a buyer-property pair.

        Args:
            buyer_id: Buyer concerned
            property_id: Property concerned
            agent_id: Agent who should act
            match_score: Score shown to the agent
            message: Notification text
            skip_if_exists: Do nothing when the pair was already notified

        Returns:
            Created notification, or None when skipped
        """
        if skip_if_exists and property_id and await self.notification_repo.exists_for_pair(buyer_id, property_id):
            logger.debug(f"Notification for buyer {buyer_id} / property {property_id} already exists")
            return None

        notification = await self.notification_repo.create({
            "buyer_id": buyer_id,
            "property_id": property_id,
            "agent_id": agent_id,
            "match_score": match_score,
            "message": message,
            "is_read_by_agent": False,
            "is_read_by_manager": False,
        })
        logger.info(f"Notification created for agent {agent_id}: buyer {buyer_id}, score {match_score}")
        return notification

    async def get_notifications(self, current_user: User) -> Tuple[List[Notification], int]:
        """
        Agent view or manager view depending on the caller's role.

        Returns:
            Tuple of (notifications, unread count for this viewer)
        """
        if current_user.is_manager:
            notifications = await self.notification_repo.get_for_manager()
            unread = await self.notification_repo.count_unread()
        else:
            notifications = await self.notification_repo.get_for_agent(current_user.id)
            unread = await self.notification_repo.count_unread(current_user.id)
        return notifications, unread

    async def _get_notification(self, notification_id: uuid.UUID) -> Notification:
        notification = await self.notification_repo.get_by_id(notification_id)
        if not notification:
            raise NotFoundError("Notification", str(notification_id))
        return notification

    async def mark_as_read(self, notification_id: uuid.UUID, current_user: User) -> Notification:
        """
        Mark a notification as read by its agent.

        Raises:
            NotFoundError: If the notification does not exist
            ForbiddenError: If it belongs to another agent
        """
        try:
            notification = await self._get_notification(notification_id)

            if notification.agent_id != current_user.id and not current_user.is_manager:
                raise ForbiddenError("You can only mark your own notifications as read")

            return await self.notification_repo.update(notification_id, {"is_read_by_agent": True})

        except (NotFoundError, ForbiddenError):
            raise
        except Exception as e:
            logger.error(f"Failed to mark notification {notification_id} as read: {e}")
            raise BadRequestError(f"Failed to update notification: {str(e)}")

    async def mark_all_as_read(self, current_user: User) -> int:
        """Mark the caller's own unread notifications as read."""
        return await self.notification_repo.mark_all_read_for_agent(current_user.id)

    async def mark_as_read_by_manager(self, notification_id: uuid.UUID, current_user: User) -> Notification:
        """
        Mark a notification as read in the manager view.

        Raises:
            InsufficientPermissionsError: If the caller is not a manager or admin
        """
        if not current_user.is_manager:
            raise InsufficientPermissionsError("mark notifications as read for managers")

        await self._get_notification(notification_id)
        return await self.notification_repo.update(notification_id, {"is_read_by_manager": True})
