"""
Match repository for persisted matching results.
Handles upserts per buyer-property pair, stale-match cleanup and exclusion statistics.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, desc
from estate_crm.repositories.base import BaseRepository
from estate_crm.models.match import Match
from estate_crm.models.buyer import Buyer
from datetime import datetime
from typing import Optional, List, Dict, Any, Iterable, Tuple
import uuid
import logging

logger = logging.getLogger(__name__)


class MatchRepository(BaseRepository[Match]):
    """
    Repository for the matches table.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Match, db)

    async def get_pair(self, buyer_id: uuid.UUID, property_id: uuid.UUID) -> Optional[Match]:
        result = await self.db.execute(
            select(Match).where(Match.buyer_id == buyer_id, Match.property_id == property_id)
        )
        return result.scalar_one_or_none()

    async def upsert_match(
        self,
        buyer_id: uuid.UUID,
        property_id: uuid.UUID,
        match_score: int,
        match_reason: Optional[str],
        hard_filter_passed: bool
    ) -> Tuple[Match, bool]:
        """
        Insert or update the match of a buyer-property pair. Does not commit.

        Args:
            buyer_id: UUID of the buyer
            property_id: UUID of the property
            match_score: Score between 0 and 100
            match_reason: Reasons joined into one string, or the exclusion reason
            hard_filter_passed: Whether the property passed the hard filters

        Returns:
            Tuple of (match, created) where created is True for a new row
        """
        match = await self.get_pair(buyer_id, property_id)
        created = match is None

        if created:
            match = Match(buyer_id=buyer_id, property_id=property_id)
            self.db.add(match)

        match.match_score = match_score
        match.match_reason = match_reason
        match.hard_filter_passed = hard_filter_passed
        await self.db.flush()
        return match, created

    async def delete_stale(
        self,
        buyer_id: uuid.UUID,
        keep_property_ids: Iterable[uuid.UUID],
        passed: bool
    ) -> int:
        """
        Remove the buyer's passing or excluded matches that are not in the new result set. Does not commit.

        Args:
            buyer_id: UUID of the buyer
            keep_property_ids: Property IDs of the new rows of that kind; empty removes all
            passed: True for passing matches, False for exclusions

        Returns:
            Number of removed matches
        """
        keep = set(keep_property_ids)
        result = await self.db.execute(
            select(Match).where(Match.buyer_id == buyer_id, Match.hard_filter_passed.is_(passed))
        )
        stale = [m for m in result.scalars().all() if m.property_id not in keep]
        for match in stale:
            await self.db.delete(match)
        await self.db.flush()

        if stale:
            kind = "passing" if passed else "excluded"
            logger.debug(f"Removed {len(stale)} stale {kind} matches for buyer {buyer_id}")
        return len(stale)

    async def get_for_buyer(self, buyer_id: uuid.UUID, passed_only: bool = True) -> List[Match]:
        query = select(Match).where(Match.buyer_id == buyer_id)
        if passed_only:
            query = query.where(Match.hard_filter_passed.is_(True))
        result = await self.db.execute(query.order_by(desc(Match.match_score)))
        return list(result.scalars().all())

    async def get_for_agent(self, agent_id: Optional[uuid.UUID]) -> List[Match]:
        """
        All matches, optionally restricted to buyers of one agent.

        Args:
            agent_id: Agent to scope by, or None for every buyer

        Returns:
            Matches with properties loaded
        """
        try:
            query = select(Match)
            if agent_id is not None:
                query = query.join(Buyer, Buyer.id == Match.buyer_id).where(Buyer.agent_id == agent_id)
            result = await self.db.execute(query)
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"Failed to get matches for agent {agent_id}: {e}")
            raise

    async def count_above(self, threshold: int, agent_id: Optional[uuid.UUID] = None) -> int:
        query = select(func.count(Match.id)).where(
            Match.hard_filter_passed.is_(True),
            Match.match_score >= threshold
        )
        if agent_id is not None:
            query = query.join(Buyer, Buyer.id == Match.buyer_id).where(Buyer.agent_id == agent_id)
        return (await self.db.execute(query)).scalar()

    async def top_exclusion_reasons(
        self,
        agent_id: Optional[uuid.UUID] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: int = 10
    ) -> List[Dict[str, Any]]:
        """
        Count the most common hard-filter exclusion reasons.

        Args:
            agent_id: Only count matches of this agent's buyers
            date_from: Only matches created at or after this time
            date_to: Only matches created at or before this time
            limit: Maximum number of reasons

        Returns:
            List of {"reason", "count"} ordered by count descending
        """
        try:
            reason_count = func.count(Match.id).label("count")
            query = (
                select(Match.match_reason, reason_count)
                .where(Match.hard_filter_passed.is_(False), Match.match_reason.is_not(None))
            )
            if agent_id is not None:
                query = query.join(Buyer, Buyer.id == Match.buyer_id).where(Buyer.agent_id == agent_id)
            if date_from is not None:
                query = query.where(Match.created_at >= date_from)
            if date_to is not None:
                query = query.where(Match.created_at <= date_to)

            query = query.group_by(Match.match_reason).order_by(desc(reason_count), Match.match_reason).limit(limit)
            result = await self.db.execute(query)
            return [{"reason": reason, "count": count} for reason, count in result.all()]
        except Exception as e:
            logger.error(f"Failed to compute exclusion reasons: {e}")
            raise
