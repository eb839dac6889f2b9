"""
Neighborhood lookup repository.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from estate_crm.repositories.base import BaseRepository
from estate_crm.models.neighborhood import Neighborhood
from typing import Optional, List


class NeighborhoodRepository(BaseRepository[Neighborhood]):

    def __init__(self, db: AsyncSession):
        super().__init__(Neighborhood, db)

    async def get_by_city_and_name(self, city: str, name: str) -> Optional[Neighborhood]:
        result = await self.db.execute(
            select(Neighborhood).where(Neighborhood.city == city, Neighborhood.name == name)
        )
        return result.scalar_one_or_none()

    async def list_all(self, city: Optional[str] = None) -> List[Neighborhood]:
        query = select(Neighborhood)
        if city:
            query = query.where(Neighborhood.city == city)
        result = await self.db.execute(query.order_by(Neighborhood.city, Neighborhood.name))
        return list(result.scalars().all())
