"""
Buyer repository for CRM lead management.
Supports agent scoping, phone lookups and filtered listing.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func, desc
from estate_crm.repositories.base import BaseRepository
from estate_crm.models.buyer import Buyer, BuyerStatus
from typing import Optional, List, Tuple
import uuid
import logging

logger = logging.getLogger(__name__)


class BuyerRepository(BaseRepository[Buyer]):
    """
    Repository for buyer leads.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Buyer, db)

    async def get_by_phone(self, phone: str) -> Optional[Buyer]:
        """
        Get a buyer by sanitized phone number.

        Args:
            phone: Phone number already run through sanitize_phone

        Returns:
            First buyer with that phone, None otherwise
        """
        return await self.get_by_field("phone", phone)

    async def search_buyers(
        self,
        agent_id: Optional[uuid.UUID] = None,
        status: Optional[BuyerStatus] = None,
        city: Optional[str] = None,
        search_text: Optional[str] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Buyer], int]:
        """
        List buyers with optional filters.

        Args:
            agent_id: Restrict to one agent's buyers (None means all)
            status: Lead status filter
            city: Only buyers targeting this city
            search_text: Matches name, phone or email
            skip: Pagination offset
            limit: Page size

        Returns:
            Tuple of (buyers, total count)
        """
        try:
            conditions = []
            if agent_id is not None:
                conditions.append(Buyer.agent_id == agent_id)
            if status is not None:
                conditions.append(Buyer.status == status)
            if search_text:
                term = f"%{search_text}%"
                conditions.append(
                    or_(
                        Buyer.full_name.ilike(term),
                        Buyer.phone.ilike(term),
                        Buyer.email.ilike(term)
                    )
                )

            query = select(Buyer)
            if conditions:
                query = query.where(and_(*conditions))
            query = query.order_by(desc(Buyer.created_at))

            if city:
                # target_cities is a JSON list, so the city filter runs in Python
                result = await self.db.execute(query)
                buyers = [b for b in result.scalars().all() if city in (b.target_cities or [])]
                return buyers[skip:skip + limit], len(buyers)

            count_query = select(func.count(Buyer.id))
            if conditions:
                count_query = count_query.where(and_(*conditions))
            total = (await self.db.execute(count_query)).scalar()

            result = await self.db.execute(query.offset(skip).limit(limit))
            buyers = list(result.scalars().all())

            logger.debug(f"Buyer search returned {len(buyers)} of {total} buyers")
            return buyers, total
        except Exception as e:
            logger.error(f"Failed to search buyers: {e}")
            raise

    async def get_matchable_buyers(self) -> List[Buyer]:
        """
        Buyers that take part in reverse matching when a property changes.

        Returns:
            Buyers that are not inactive or closed
        """
        try:
            result = await self.db.execute(
                select(Buyer).where(Buyer.status.in_([BuyerStatus.LEAD, BuyerStatus.ACTIVE]))
            )
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"Failed to get matchable buyers: {e}")
            raise

    async def count_for_agent(self, agent_id: Optional[uuid.UUID]) -> int:
        return await self.count({"agent_id": agent_id} if agent_id else None)
