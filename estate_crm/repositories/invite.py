"""
Invite repository.
Covers invitations, their property lists and the property views they grant.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from estate_crm.repositories.base import BaseRepository
from estate_crm.models.invite import Invite, InviteProperty, PropertyView
from datetime import datetime
from typing import Optional, List
import uuid
import logging

logger = logging.getLogger(__name__)


class InviteRepository(BaseRepository[Invite]):
    """
    Repository for client invitations.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Invite, db)

    async def create_invite(
        self,
        token: str,
        agent_id: uuid.UUID,
        email: str,
        message: Optional[str],
        expires_at: datetime,
        property_ids: List[uuid.UUID]
    ) -> Invite:
        """
        Create an invite together with one row per included property.

        Args:
            token: Unique invite token
            agent_id: Inviting agent
            email: Invitee email or display name
            message: Optional personal message
            expires_at: Expiry timestamp
            property_ids: Properties included in the invite

        Returns:
            Created invite
        """
        try:
            invite = Invite(
                token=token,
                agent_id=agent_id,
                email=email,
                message=message,
                expires_at=expires_at,
                properties=[InviteProperty(property_id=pid) for pid in property_ids]
            )
            self.db.add(invite)
            await self.db.commit()
            await self.db.refresh(invite)
            logger.debug(f"Created invite {invite.id} with {len(property_ids)} properties")
            return invite
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to create invite: {e}")
            raise

    async def get_by_token(self, token: str) -> Optional[Invite]:
        return await self.get_by_field("token", token)

    async def list_for_agent(self, agent_id: uuid.UUID) -> List[Invite]:
        result = await self.db.execute(
            select(Invite).where(Invite.agent_id == agent_id).order_by(desc(Invite.created_at))
        )
        return list(result.scalars().all())

    async def upsert_property_view(self, user_id: uuid.UUID, property_id: uuid.UUID, source: str = "assigned") -> PropertyView:
        """Grant a user a view of a property. Does not commit."""
        result = await self.db.execute(
            select(PropertyView).where(PropertyView.user_id == user_id, PropertyView.property_id == property_id)
        )
        view = result.scalar_one_or_none()
        if view is None:
            view = PropertyView(user_id=user_id, property_id=property_id, source=source)
            self.db.add(view)
        else:
            view.source = source
        await self.db.flush()
        return view

    async def get_views_for_user(self, user_id: uuid.UUID) -> List[PropertyView]:
        result = await self.db.execute(
            select(PropertyView).where(PropertyView.user_id == user_id).order_by(desc(PropertyView.created_at))
        )
        return list(result.scalars().all())
