"""
Repository for properties offered to or saved by buyers.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from estate_crm.repositories.base import BaseRepository
from estate_crm.models.buyer_property import BuyerProperty
from typing import Optional, List, Set
import uuid
import logging

logger = logging.getLogger(__name__)


class BuyerPropertyRepository(BaseRepository[BuyerProperty]):
    """
    Repository for buyer_properties rows.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(BuyerProperty, db)

    async def get_pair(self, buyer_id: uuid.UUID, property_id: uuid.UUID) -> Optional[BuyerProperty]:
        """
        Get the row linking a buyer to a property.

        Returns:
            BuyerProperty if the property was offered or saved, None otherwise
        """
        result = await self.db.execute(
            select(BuyerProperty).where(
                BuyerProperty.buyer_id == buyer_id,
                BuyerProperty.property_id == property_id
            )
        )
        return result.scalar_one_or_none()

    async def list_for_buyer(self, buyer_id: uuid.UUID) -> List[BuyerProperty]:
        """
        List a buyer's offered and saved properties, newest first.

        Args:
            buyer_id: UUID of the buyer

        Returns:
            List of rows with the property loaded
        """
        try:
            result = await self.db.execute(
                select(BuyerProperty)
                .where(BuyerProperty.buyer_id == buyer_id)
                .order_by(desc(BuyerProperty.created_at))
            )
            rows = list(result.scalars().all())
            logger.debug(f"Retrieved {len(rows)} offered properties for buyer {buyer_id}")
            return rows
        except Exception as e:
            logger.error(f"Failed to list offered properties for buyer {buyer_id}: {e}")
            raise

    async def get_property_ids_for_buyer(self, buyer_id: uuid.UUID) -> Set[uuid.UUID]:
        """IDs of properties already linked to the buyer; matching skips them."""
        result = await self.db.execute(
            select(BuyerProperty.property_id).where(BuyerProperty.buyer_id == buyer_id)
        )
        return set(result.scalars().all())
