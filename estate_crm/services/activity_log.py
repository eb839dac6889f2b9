"""
Activity log service.
Records buyer timeline events and announces them on the realtime broker.
"""

from typing import Optional, Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession
from estate_crm.repositories.activity_log import ActivityLogRepository
from estate_crm.models.activity_log import ActivityLog, ActionType
from estate_crm.services.realtime import MatchEventBroker, match_event_broker
import uuid
import logging

logger = logging.getLogger(__name__)


class ActivityLogService:
    """
    Service for writing and reading buyer timelines.
    """

    def __init__(self, db_session: AsyncSession, broker: Optional[MatchEventBroker] = None):
        self.db = db_session
        self.log_repo = ActivityLogRepository(db_session)
        self.broker = broker or match_event_broker

    async def log(
        self,
        action_type: ActionType,
        description: str,
        buyer_id: Optional[uuid.UUID] = None,
        agent_id: Optional[uuid.UUID] = None,
        property_id: Optional[uuid.UUID] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> ActivityLog:
        """
        Insert a timeline entry and publish an activity_logs event.

        Args:
            action_type: Kind of event
            description: Human-readable description
            buyer_id: Buyer the event belongs to
            agent_id: Agent who performed the action
            property_id: Related property
            metadata: Extra structured data

        Returns:
            Created log entry
        """
        entry = await self.log_repo.create({
            "action_type": action_type,
            "description": description,
            "buyer_id": buyer_id,
            "agent_id": agent_id,
            "property_id": property_id,
            "details": metadata or {},
        })

        logger.info(f"Activity {action_type.value} logged for buyer {buyer_id}")
        self.broker.publish("activity_logs", "insert", buyer_id=buyer_id, action_type=action_type.value)
        return entry

    async def get_buyer_timeline(self, buyer_id: uuid.UUID) -> List[ActivityLog]:
        """Latest 50 entries of one buyer."""
        return await self.log_repo.get_for_buyer(buyer_id, limit=50)

    async def get_recent(self, agent_id: Optional[uuid.UUID] = None) -> List[ActivityLog]:
        """Latest 100 entries overall, or of one agent."""
        return await self.log_repo.get_recent(limit=100, agent_id=agent_id)
