"""
Notification repository with agent and manager views.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, desc
from estate_crm.repositories.base import BaseRepository
from estate_crm.models.notification import Notification
from typing import List, Optional
import uuid
import logging

logger = logging.getLogger(__name__)

AGENT_VIEW_LIMIT = 50
MANAGER_VIEW_LIMIT = 100


class NotificationRepository(BaseRepository[Notification]):
    """
    Repository for match and lead notifications.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Notification, db)

    async def exists_for_pair(self, buyer_id: uuid.UUID, property_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            select(func.count(Notification.id)).where(
                Notification.buyer_id == buyer_id,
                Notification.property_id == property_id
            )
        )
        return result.scalar() > 0

    async def get_for_agent(self, agent_id: uuid.UUID, limit: int = AGENT_VIEW_LIMIT) -> List[Notification]:
        """Latest notifications addressed to an agent."""
        result = await self.db.execute(
            select(Notification)
            .where(Notification.agent_id == agent_id)
            .order_by(desc(Notification.created_at))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_for_manager(self, limit: int = MANAGER_VIEW_LIMIT) -> List[Notification]:
        """Every notification, best scores first."""
        result = await self.db.execute(
            select(Notification)
            .order_by(desc(Notification.match_score), desc(Notification.created_at))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_unread(self, agent_id: Optional[uuid.UUID] = None) -> int:
        """
        Count unread notifications.

        Args:
            agent_id: Count the agent's unread; None counts unread for managers
        """
        if agent_id is not None:
            query = select(func.count(Notification.id)).where(
                Notification.agent_id == agent_id,
                Notification.is_read_by_agent.is_(False)
            )
        else:
            query = select(func.count(Notification.id)).where(Notification.is_read_by_manager.is_(False))
        return (await self.db.execute(query)).scalar()

    async def mark_all_read_for_agent(self, agent_id: uuid.UUID) -> int:
        """
        Mark every unread notification of an agent as read.

        Returns:
            Number of updated notifications
        """
        try:
            result = await self.db.execute(
                update(Notification)
                .where(Notification.agent_id == agent_id, Notification.is_read_by_agent.is_(False))
                .values(is_read_by_agent=True)
            )
            await self.db.commit()
            logger.debug(f"Marked {result.rowcount} notifications read for agent {agent_id}")
            return result.rowcount
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to mark notifications read for agent {agent_id}: {e}")
            raise
