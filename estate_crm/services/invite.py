"""
Invite service.
Agents share listings with prospective clients through tokenized links; clients claim them after signing in.
"""

from typing import List, Dict, Any
from datetime import datetime, timedelta, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from estate_crm.repositories.invite import InviteRepository
from estate_crm.repositories.property import PropertyRepository
from estate_crm.models.invite import Invite, InviteStatus, PropertyView
from estate_crm.models.user import User, UserRole
from estate_crm.schemas.invite import SendInviteRequest
from estate_crm.utils.exceptions import (
    NotFoundError,
    BadRequestError,
    ForbiddenError,
    InsufficientPermissionsError,
    InviteExpiredError,
    InviteAlreadyAcceptedError
)
from estate_crm.config import settings
import uuid
import logging

logger = logging.getLogger(__name__)

PLACEHOLDER_EMAIL = "pending@invite"


class InviteService:
    """
    Service for sending and claiming client invitations.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.invite_repo = InviteRepository(db_session)
        self.property_repo = PropertyRepository(db_session)

    async def send_invite(self, request: SendInviteRequest, current_user: User) -> Dict[str, Any]:
        """
        Create an invitation for a set of properties.

        Args:
            request: Properties, message and client name
            current_user: Inviting agent

        Returns:
            Dict with invite_id, invite_url and expires_at

        Raises:
            InsufficientPermissionsError: If the user is not staff
            NotFoundError: If a property doesn't exist
        """
        try:
            if not current_user.is_agent:
                raise InsufficientPermissionsError("send invitations")

            property_ids = list(dict.fromkeys(request.property_ids))
            found = {p.id for p in await self.property_repo.get_by_ids(property_ids)}
            missing = [str(pid) for pid in property_ids if pid not in found]
            if missing:
                raise NotFoundError("Property", ", ".join(missing))

            token = str(uuid.uuid4())
            expires_at = datetime.now(timezone.utc) + timedelta(days=settings.invite_expire_days)

            invite = await self.invite_repo.create_invite(
                token=token,
                agent_id=current_user.id,
                email=request.client_name or PLACEHOLDER_EMAIL,
                message=request.message,
                expires_at=expires_at,
                property_ids=property_ids
            )

            logger.info(f"Invite {invite.id} sent by {current_user.email} with {len(property_ids)} properties")
            return {
                "invite_id": str(invite.id),
                "invite_url": f"{settings.public_app_url.rstrip('/')}/invite/{token}",
                "expires_at": expires_at,
            }

        except (NotFoundError, ForbiddenError):
            raise
        except Exception as e:
            logger.error(f"Failed to send invite for user {current_user.id}: {e}")
            raise BadRequestError(f"Failed to send invite: {str(e)}")

    async def claim_invite(self, token: str, current_user: User) -> Dict[str, Any]:
        """
        Claim an invitation for the signed-in user.

        A user without a role becomes a client linked to the inviting agent and
        gets a view of every invited property.

        Args:
            token: Token from the invite link
            current_user: User claiming the invite

        Returns:
            Dict with success and property_count

        Raises:
            NotFoundError: If no invite has this token
            InviteExpiredError: If the invite is past its expiry
            InviteAlreadyAcceptedError: If the invite was claimed before
        """
        token = token.strip()
        invite = await self.invite_repo.get_by_token(token)
        if not invite:
            raise NotFoundError("Invitation")

        if invite.status == InviteStatus.ACCEPTED:
            raise InviteAlreadyAcceptedError()

        if invite.status == InviteStatus.EXPIRED or invite.is_expired:
            if invite.status != InviteStatus.EXPIRED:
                await self.invite_repo.update(invite.id, {"status": InviteStatus.EXPIRED})
            raise InviteExpiredError()

        try:
            if current_user.role is None:
                current_user.role = UserRole.CLIENT
            current_user.agent_id = invite.agent_id

            for item in invite.properties:
                await self.invite_repo.upsert_property_view(current_user.id, item.property_id, source="assigned")

            invite.status = InviteStatus.ACCEPTED
            invite.accepted_at = datetime.now(timezone.utc)
            invite.accepted_by = current_user.id
            await self.db.commit()

            logger.info(f"Invite {invite.id} claimed by {current_user.email}")
            return {"success": True, "property_count": len(invite.properties)}

        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to claim invite {invite.id}: {e}")
            raise BadRequestError(f"Failed to claim invite: {str(e)}")

    async def list_invites(self, current_user: User) -> List[Invite]:
        if not current_user.is_agent:
            raise InsufficientPermissionsError("list invitations")
        return await self.invite_repo.list_for_agent(current_user.id)

    async def get_client_properties(self, current_user: User) -> List[PropertyView]:
        """Properties assigned to a client through claimed invites, newest first."""
        return await self.invite_repo.get_views_for_user(current_user.id)
