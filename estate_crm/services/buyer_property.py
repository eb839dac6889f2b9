"""
Offered property service.
Tracks the properties offered to a buyer together with status and feedback.
"""

from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from estate_crm.repositories.buyer_property import BuyerPropertyRepository
from estate_crm.repositories.property import PropertyRepository
from estate_crm.models.buyer_property import BuyerProperty, BuyerPropertyStatus
from estate_crm.models.activity_log import ActionType
from estate_crm.models.user import User
from estate_crm.schemas.buyer_property import BuyerPropertyUpdate
from estate_crm.services.buyer import BuyerService
from estate_crm.services.activity_log import ActivityLogService
from estate_crm.utils.exceptions import (
    NotFoundError,
    ForbiddenError,
    ValidationError,
    BadRequestError
)
import uuid
import logging

logger = logging.getLogger(__name__)

FEEDBACK_TEXT_FIELDS = ("liked_text", "disliked_text", "not_interested_reason", "price_offered", "visited_at")


class BuyerPropertyService:
    """
    Service for offering properties to buyers and recording their feedback.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.buyer_property_repo = BuyerPropertyRepository(db_session)
        self.property_repo = PropertyRepository(db_session)
        self.buyer_service = BuyerService(db_session)
        self.activity_service = ActivityLogService(db_session)

    async def offer_properties(
        self,
        buyer_id: uuid.UUID,
        property_ids: List[str],
        current_user: User
    ) -> List[BuyerProperty]:
        """
        Offer properties to a buyer. Properties already offered are left as they are.

        Args:
            buyer_id: UUID of the buyer
            property_ids: Properties to offer
            current_user: Agent making the offer

        Returns:
            Newly created offered-property rows

        Raises:
            NotFoundError: If the buyer or a property doesn't exist
            ValidationError: If a property ID is malformed
        """
        try:
            buyer = await self.buyer_service.get_buyer(buyer_id, current_user)

            try:
                ids = list(dict.fromkeys(uuid.UUID(pid) for pid in property_ids))
            except ValueError:
                raise ValidationError("Invalid property ID format")

            properties = {p.id: p for p in await self.property_repo.get_by_ids(ids)}
            missing = [str(pid) for pid in ids if pid not in properties]
            if missing:
                raise NotFoundError("Property", ", ".join(missing))

            created = []
            for property_id in ids:
                if await self.buyer_property_repo.get_pair(buyer.id, property_id):
                    continue

                row = await self.buyer_property_repo.create({
                    "buyer_id": buyer.id,
                    "property_id": property_id,
                    "status": BuyerPropertyStatus.OFFERED,
                    "source": "agent",
                })
                created.append(row)

                prop = properties[property_id]
                await self.activity_service.log(
                    ActionType.PROPERTY_OFFERED,
                    f"הוצע נכס: {prop.address}, {prop.city}",
                    buyer_id=buyer.id,
                    agent_id=current_user.id,
                    property_id=property_id
                )

            logger.info(f"{len(created)} properties offered to buyer {buyer_id} by {current_user.email}")
            return created

        except (NotFoundError, ForbiddenError, ValidationError):
            raise
        except Exception as e:
            logger.error(f"Failed to offer properties to buyer {buyer_id}: {e}")
            raise BadRequestError(f"Failed to offer properties: {str(e)}")

    async def list_offered(self, buyer_id: uuid.UUID, current_user: User) -> List[BuyerProperty]:
        """Offered and saved properties of a buyer, newest first."""
        await self.buyer_service.get_buyer(buyer_id, current_user)
        return await self.buyer_property_repo.list_for_buyer(buyer_id)

    async def update_offered(
        self,
        buyer_id: uuid.UUID,
        buyer_property_id: uuid.UUID,
        update: BuyerPropertyUpdate,
        current_user: User
    ) -> BuyerProperty:
        """
        Update status and feedback of an offered property.

        Each kind of change is written to the buyer's timeline: status changes,
        feedback and notes get their own entries.

        Raises:
            NotFoundError: If the row doesn't exist or belongs to another buyer
        """
        try:
            await self.buyer_service.get_buyer(buyer_id, current_user)

            row = await self.buyer_property_repo.get_by_id(buyer_property_id)
            if not row or row.buyer_id != buyer_id:
                raise NotFoundError("Offered property", str(buyer_property_id))

            changes = update.model_dump(exclude_unset=True)
            if changes.get("status") is None:
                changes.pop("status", None)
            previous_status = row.status

            updated = await self.buyer_property_repo.update(buyer_property_id, changes)
            await self._log_changes(updated, changes, previous_status, current_user)

            logger.info(f"Offered property {buyer_property_id} updated: {sorted(changes)}")
            return updated

        except (NotFoundError, ForbiddenError):
            raise
        except Exception as e:
            logger.error(f"Failed to update offered property {buyer_property_id}: {e}")
            raise BadRequestError(f"Failed to update offered property: {str(e)}")

    async def _log_changes(
        self,
        row: BuyerProperty,
        changes: dict,
        previous_status: BuyerPropertyStatus,
        current_user: User
    ) -> None:
        address = row.property.address if row.property else ""

        if "status" in changes and changes["status"] != previous_status:
            await self.activity_service.log(
                ActionType.STATUS_CHANGED,
                f"סטטוס הנכס {address} שונה ל-{row.status.value}",
                buyer_id=row.buyer_id,
                agent_id=current_user.id,
                property_id=row.property_id,
                metadata={"from": previous_status.value, "to": row.status.value}
            )

        feedback = {k: changes[k] for k in FEEDBACK_TEXT_FIELDS if changes.get(k) is not None}
        if feedback:
            await self.activity_service.log(
                ActionType.FEEDBACK_ADDED,
                f"נוסף משוב על {address}",
                buyer_id=row.buyer_id,
                agent_id=current_user.id,
                property_id=row.property_id,
                metadata={"fields": sorted(feedback)}
            )

        if changes.get("note"):
            await self.activity_service.log(
                ActionType.NOTE_ADDED,
                changes["note"],
                buyer_id=row.buyer_id,
                agent_id=current_user.id,
                property_id=row.property_id
            )
