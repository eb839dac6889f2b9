"""
Public catalog and buyer portal service.
Anonymous visitors browse available listings, register as leads and save properties;
buyers manage their own journal through a link that carries their buyer id.
"""

from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from estate_crm.repositories.buyer import BuyerRepository
from estate_crm.repositories.buyer_property import BuyerPropertyRepository
from estate_crm.repositories.property import PropertyRepository, PropertySearchFilters
from estate_crm.repositories.upload import BuyerUploadRepository
from estate_crm.repositories.user import UserRepository
from estate_crm.models.activity_log import ActionType
from estate_crm.models.buyer import Buyer, BuyerStatus
from estate_crm.models.buyer_property import BuyerProperty, BuyerPropertyStatus
from estate_crm.models.property import Property, PropertyStatus
from estate_crm.models.upload import BuyerUpload
from estate_crm.schemas.catalog import LeadRegistrationRequest, PortalFeedbackUpdate, UploadCreate
from estate_crm.services.activity_log import ActivityLogService
from estate_crm.services.notification import NotificationService
from estate_crm.utils.exceptions import NotFoundError, ValidationError, BadRequestError
from estate_crm.utils.formatting import format_price
import uuid
import logging

logger = logging.getLogger(__name__)

CATALOG_NOTIFICATION_SCORE = 100
LEAD_REGISTERED_MESSAGE = "קונה חדש נרשם מהקטלוג הציבורי"
PROPERTY_SAVED_MESSAGE = "קונה חדש שמר את הנכס מהקטלוג הציבורי"


def _parse_id(value: str, label: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {label} ID format")


def catalog_card(prop: Property) -> Dict[str, Any]:
    """Public representation of a listing."""
    primary = prop.primary_image
    return {
        "id": str(prop.id),
        "address": prop.address,
        "city": prop.city,
        "neighborhood": prop.neighborhood,
        "price": float(prop.price) if prop.price is not None else None,
        "formatted_price": format_price(prop.price),
        "rooms": float(prop.rooms) if prop.rooms is not None else None,
        "size_sqm": prop.size_sqm,
        "floor": prop.floor,
        "has_elevator": prop.has_elevator,
        "has_safe_room": prop.has_safe_room,
        "has_sun_balcony": prop.has_sun_balcony,
        "parking_spots": prop.parking_spots or 0,
        "description": prop.description,
        "image_urls": [image.url for image in prop.images],
        "primary_image_url": primary.url if primary else None,
    }


class CatalogService:
    """
    Service behind the public catalog.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.property_repo = PropertyRepository(db_session)
        self.buyer_repo = BuyerRepository(db_session)
        self.buyer_property_repo = BuyerPropertyRepository(db_session)
        self.user_repo = UserRepository(db_session)
        self.notification_service = NotificationService(db_session)
        self.activity_service = ActivityLogService(db_session)

    async def list_catalog(
        self,
        city: Optional[str] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Tuple[List[Property], int]:
        """Available listings, newest first."""
        filters = PropertySearchFilters(city=city, status=PropertyStatus.AVAILABLE)
        return await self.property_repo.search_properties(
            filters=filters,
            skip=(page - 1) * page_size,
            limit=page_size
        )

    async def get_catalog_property(self, property_id: uuid.UUID) -> Property:
        """
        One available listing.

        Raises:
            NotFoundError: If the listing doesn't exist or is not available
        """
        prop = await self.property_repo.get_property_with_details(property_id)
        if not prop or not prop.is_available:
            raise NotFoundError("Property", str(property_id))
        return prop

    async def register_lead(self, request: LeadRegistrationRequest) -> Tuple[Buyer, bool]:
        """
        Register a catalog visitor as a buyer lead.

        A buyer with the same phone is reused. A new lead is logged and announced
        to the first manager with the top score.

        Returns:
            Tuple of (buyer, is_new)
        """
        try:
            existing = await self.buyer_repo.get_by_phone(request.phone)
            if existing:
                logger.info(f"Catalog registration matched existing buyer {existing.id}")
                return existing, False

            property_id = _parse_id(request.property_id, "property") if request.property_id else None

            buyer = await self.buyer_repo.create({
                "full_name": request.full_name,
                "phone": request.phone,
                "email": request.email,
                "status": BuyerStatus.LEAD,
                "target_cities": [],
                "target_neighborhoods": [],
                "required_features": [],
            })

            await self.activity_service.log(
                ActionType.SELF_REGISTERED,
                f"{buyer.full_name} נרשם דרך הקטלוג הציבורי",
                buyer_id=buyer.id,
                property_id=property_id
            )

            manager = await self.user_repo.get_first_manager()
            if manager:
                await self.notification_service.create_notification(
                    buyer_id=buyer.id,
                    property_id=property_id,
                    agent_id=manager.id,
                    match_score=CATALOG_NOTIFICATION_SCORE,
                    message=LEAD_REGISTERED_MESSAGE,
                    skip_if_exists=False
                )

            logger.info(f"New catalog lead registered: {buyer.id}")
            return buyer, True

        except ValidationError:
            raise
        except Exception as e:
            logger.error(f"Failed to register catalog lead: {e}")
            raise BadRequestError(f"Failed to register: {str(e)}")

    async def save_property(self, buyer_id: str, property_id: str) -> Tuple[BuyerProperty, bool]:
        """
        Save a listing to a buyer's journal. Saving twice is a no-op.

        Returns:
            Tuple of (buyer property row, already_saved)

        Raises:
            NotFoundError: If the buyer or property doesn't exist
        """
        buyer_uuid = _parse_id(buyer_id, "buyer")
        property_uuid = _parse_id(property_id, "property")

        buyer = await self.buyer_repo.get_by_id(buyer_uuid)
        if not buyer:
            raise NotFoundError("Buyer", buyer_id)
        prop = await self.property_repo.get_by_id(property_uuid)
        if not prop:
            raise NotFoundError("Property", property_id)

        existing = await self.buyer_property_repo.get_pair(buyer_uuid, property_uuid)
        if existing:
            return existing, True

        row = await self.buyer_property_repo.create({
            "buyer_id": buyer_uuid,
            "property_id": property_uuid,
            "status": BuyerPropertyStatus.INTERESTED,
            "source": "catalog",
        })

        await self.activity_service.log(
            ActionType.PROPERTY_SAVED,
            f"הנכס {prop.address}, {prop.city} נשמר מהקטלוג",
            buyer_id=buyer_uuid,
            property_id=property_uuid
        )

        if prop.agent_id:
            await self.notification_service.create_notification(
                buyer_id=buyer_uuid,
                property_id=property_uuid,
                agent_id=prop.agent_id,
                match_score=CATALOG_NOTIFICATION_SCORE,
                message=PROPERTY_SAVED_MESSAGE,
                skip_if_exists=False
            )

        logger.info(f"Buyer {buyer_uuid} saved property {property_uuid} from the catalog")
        return row, False


class BuyerPortalService:
    """
    Service behind the buyer's personal journal.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.buyer_repo = BuyerRepository(db_session)
        self.buyer_property_repo = BuyerPropertyRepository(db_session)
        self.upload_repo = BuyerUploadRepository(db_session)
        self.activity_service = ActivityLogService(db_session)

    async def get_buyer(self, buyer_id: uuid.UUID) -> Buyer:
        buyer = await self.buyer_repo.get_by_id(buyer_id)
        if not buyer:
            raise NotFoundError("Buyer", str(buyer_id))
        return buyer

    async def _get_own_row(self, buyer_id: uuid.UUID, buyer_property_id: uuid.UUID) -> BuyerProperty:
        row = await self.buyer_property_repo.get_by_id(buyer_property_id)
        if not row or row.buyer_id != buyer_id:
            raise NotFoundError("Offered property", str(buyer_property_id))
        return row

    async def list_properties(self, buyer_id: uuid.UUID) -> List[BuyerProperty]:
        await self.get_buyer(buyer_id)
        return await self.buyer_property_repo.list_for_buyer(buyer_id)

    async def view_property(self, buyer_id: uuid.UUID, buyer_property_id: uuid.UUID) -> BuyerProperty:
        """Open one of the buyer's properties and record the view on the timeline."""
        buyer = await self.get_buyer(buyer_id)
        row = await self._get_own_row(buyer_id, buyer_property_id)

        await self.activity_service.log(
            ActionType.LINK_VIEWED,
            f"הקונה צפה בנכס {row.property.address if row.property else ''}",
            buyer_id=buyer_id,
            agent_id=buyer.agent_id,
            property_id=row.property_id
        )
        return row

    async def update_feedback(
        self,
        buyer_id: uuid.UUID,
        buyer_property_id: uuid.UUID,
        update: PortalFeedbackUpdate
    ) -> BuyerProperty:
        """
        Let the buyer edit note, liked and disliked text on their own row.

        Raises:
            NotFoundError: If the row doesn't belong to the buyer
            ValidationError: If nothing was provided
        """
        await self.get_buyer(buyer_id)
        await self._get_own_row(buyer_id, buyer_property_id)

        changes = update.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No valid fields provided for update")

        row = await self.buyer_property_repo.update(buyer_property_id, changes)
        action = ActionType.NOTE_ADDED if set(changes) == {"note"} else ActionType.FEEDBACK_ADDED
        await self.activity_service.log(
            action,
            changes.get("note") or "הקונה עדכן משוב",
            buyer_id=buyer_id,
            property_id=row.property_id,
            metadata={"fields": sorted(changes), "source": "portal"}
        )
        return row

    async def add_upload(self, buyer_id: uuid.UUID, upload: UploadCreate) -> BuyerUpload:
        """Register metadata of a file the buyer uploaded."""
        buyer = await self.get_buyer(buyer_id)
        row = await self.upload_repo.create({"buyer_id": buyer_id, **upload.model_dump()})

        await self.activity_service.log(
            ActionType.FILE_UPLOADED,
            f"הועלה קובץ: {row.file_name}",
            buyer_id=buyer_id,
            agent_id=buyer.agent_id,
            metadata={"file_url": row.file_url, "file_type": row.file_type}
        )
        logger.info(f"Upload {row.id} registered for buyer {buyer_id}")
        return row

    async def list_uploads(self, buyer_id: uuid.UUID) -> List[BuyerUpload]:
        await self.get_buyer(buyer_id)
        return await self.upload_repo.list_for_buyer(buyer_id)
