"""
Activity log repository for buyer timelines.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from estate_crm.repositories.base import BaseRepository
from estate_crm.models.activity_log import ActivityLog
from typing import List, Optional
import uuid


class ActivityLogRepository(BaseRepository[ActivityLog]):

    def __init__(self, db: AsyncSession):
        super().__init__(ActivityLog, db)

    async def get_for_buyer(self, buyer_id: uuid.UUID, limit: int = 50) -> List[ActivityLog]:
        result = await self.db.execute(
            select(ActivityLog)
            .where(ActivityLog.buyer_id == buyer_id)
            .order_by(desc(ActivityLog.created_at))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_recent(self, limit: int = 100, agent_id: Optional[uuid.UUID] = None) -> List[ActivityLog]:
        query = select(ActivityLog)
        if agent_id is not None:
            query = query.where(ActivityLog.agent_id == agent_id)
        result = await self.db.execute(query.order_by(desc(ActivityLog.created_at)).limit(limit))
        return list(result.scalars().all())
