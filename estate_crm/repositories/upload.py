"""
Buyer upload metadata repository.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from estate_crm.repositories.base import BaseRepository
from estate_crm.models.upload import BuyerUpload
from typing import List
import uuid


class BuyerUploadRepository(BaseRepository[BuyerUpload]):

    def __init__(self, db: AsyncSession):
        super().__init__(BuyerUpload, db)

    async def list_for_buyer(self, buyer_id: uuid.UUID) -> List[BuyerUpload]:
        result = await self.db.execute(
            select(BuyerUpload).where(BuyerUpload.buyer_id == buyer_id).order_by(desc(BuyerUpload.created_at))
        )
        return list(result.scalars().all())
