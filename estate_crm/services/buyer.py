"""
Buyer service for CRM lead management.
Handles agent-scoped CRUD, assignment rules and filter-change detection for rematching.
"""

from typing import Optional, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from estate_crm.repositories.buyer import BuyerRepository
from estate_crm.repositories.user import UserRepository
from estate_crm.models.buyer import Buyer, BuyerStatus
from estate_crm.models.activity_log import ActionType
from estate_crm.models.user import User
from estate_crm.schemas.buyer import BuyerCreate, BuyerUpdate
from estate_crm.services.activity_log import ActivityLogService
from estate_crm.utils.exceptions import (
    NotFoundError,
    ForbiddenError,
    ValidationError,
    BadRequestError,
    InsufficientPermissionsError
)
import uuid
import logging

logger = logging.getLogger(__name__)

# Columns that hold JSON lists and may not be stored as NULL
LIST_FIELDS = ("target_cities", "target_neighborhoods", "required_features")


class BuyerService:
    """
    Service for buyer business logic.
    Agents see their own buyers; managers and admins see everyone.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.buyer_repo = BuyerRepository(db_session)
        self.user_repo = UserRepository(db_session)
        self.activity_service = ActivityLogService(db_session)

    async def _resolve_agent(self, requested_agent_id: Optional[str], current_user: User) -> uuid.UUID:
        """Agents always own what they create; managers may assign to another agent."""
        if not requested_agent_id:
            return current_user.id

        try:
            agent_id = uuid.UUID(requested_agent_id)
        except ValueError:
            raise ValidationError("Invalid agent ID format")

        if agent_id == current_user.id:
            return agent_id

        if not current_user.is_manager:
            raise InsufficientPermissionsError("assign buyers to other agents")

        agent = await self.user_repo.get_by_id(agent_id)
        if not agent or not agent.is_agent:
            raise NotFoundError("Agent", str(agent_id))
        return agent_id

    async def create_buyer(self, buyer_data: BuyerCreate, current_user: User) -> Buyer:
        """
        Create a buyer owned by the current agent.

        Args:
            buyer_data: Buyer creation data
            current_user: Agent creating the buyer

        Returns:
            Created buyer

        Raises:
            InsufficientPermissionsError: If the user is not staff
            ValidationError: If the data is invalid
        """
        try:
            if not current_user.is_agent:
                raise InsufficientPermissionsError("create buyers")

            create_data = buyer_data.model_dump(exclude={"agent_id"})
            for field in LIST_FIELDS:
                if create_data.get(field) is None:
                    create_data[field] = []
            create_data["agent_id"] = await self._resolve_agent(buyer_data.agent_id, current_user)

            buyer = await self.buyer_repo.create(create_data)

            await self.activity_service.log(
                ActionType.BUYER_CREATED,
                f"קונה חדש נוצר: {buyer.full_name}",
                buyer_id=buyer.id,
                agent_id=current_user.id
            )

            logger.info(f"Buyer created by {current_user.email}: {buyer.full_name} (ID: {buyer.id})")
            return buyer

        except (ValidationError, ForbiddenError, NotFoundError):
            raise
        except Exception as e:
            logger.error(f"Failed to create buyer for user {current_user.id}: {e}")
            raise BadRequestError(f"Failed to create buyer: {str(e)}")

    async def get_buyer(self, buyer_id: uuid.UUID, current_user: User) -> Buyer:
        """
        Get a buyer the current user may manage.

        Raises:
            NotFoundError: If the buyer doesn't exist
            ForbiddenError: If the buyer belongs to another agent
        """
        buyer = await self.buyer_repo.get_by_id(buyer_id)
        if not buyer:
            raise NotFoundError("Buyer", str(buyer_id))

        if not current_user.can_manage(buyer.agent_id):
            raise ForbiddenError("You can only access your own buyers")

        return buyer

    async def list_buyers(
        self,
        current_user: User,
        status: Optional[BuyerStatus] = None,
        city: Optional[str] = None,
        search_text: Optional[str] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Tuple[List[Buyer], int]:
        """
        List buyers visible to the current user.

        Returns:
            Tuple of (buyers, total count)
        """
        try:
            agent_id = None if current_user.is_manager else current_user.id
            return await self.buyer_repo.search_buyers(
                agent_id=agent_id,
                status=status,
                city=city,
                search_text=search_text,
                skip=(page - 1) * page_size,
                limit=page_size
            )
        except Exception as e:
            logger.error(f"Failed to list buyers for user {current_user.id}: {e}")
            raise BadRequestError(f"Failed to list buyers: {str(e)}")

    async def update_buyer(
        self,
        buyer_id: uuid.UUID,
        buyer_data: BuyerUpdate,
        current_user: User
    ) -> Tuple[Buyer, bool]:
        """
        Update a buyer.

        Args:
            buyer_id: UUID of the buyer
            buyer_data: Fields to change
            current_user: User performing the update

        Returns:
            Tuple of (updated buyer, whether matching filters changed)

        Raises:
            NotFoundError: If the buyer doesn't exist
            ForbiddenError: If the buyer belongs to another agent
            ValidationError: If the merged preferences are inconsistent
        """
        try:
            buyer = await self.get_buyer(buyer_id, current_user)

            update_data = buyer_data.model_dump(exclude_unset=True)
            if not update_data:
                raise ValidationError("No valid fields provided for update")

            if "full_name" in update_data and not (update_data["full_name"] or "").strip():
                raise ValidationError("Full name cannot be empty")

            for field in LIST_FIELDS:
                if field in update_data and update_data[field] is None:
                    update_data[field] = []

            if "agent_id" in update_data:
                update_data["agent_id"] = await self._resolve_agent(update_data["agent_id"], current_user)

            self._validate_merged_ranges(buyer, update_data)

            previous_status = buyer.status
            updated = await self.buyer_repo.update(buyer_id, update_data)

            if "status" in update_data and update_data["status"] != previous_status:
                await self.activity_service.log(
                    ActionType.STATUS_CHANGED,
                    f"סטטוס הקונה שונה ל-{updated.status.value}",
                    buyer_id=buyer_id,
                    agent_id=current_user.id,
                    metadata={"from": previous_status.value, "to": updated.status.value}
                )

            filters_changed = buyer_data.changes_matching_filters()
            logger.info(f"Buyer {buyer_id} updated by {current_user.email} (filters changed: {filters_changed})")
            return updated, filters_changed

        except (NotFoundError, ForbiddenError, ValidationError):
            raise
        except Exception as e:
            logger.error(f"Failed to update buyer {buyer_id}: {e}")
            raise BadRequestError(f"Failed to update buyer: {str(e)}")

    @staticmethod
    def _validate_merged_ranges(buyer: Buyer, update_data: dict) -> None:
        """A partial update may break a range together with the stored value."""
        budget_min = update_data.get("budget_min", buyer.budget_min)
        budget_max = update_data.get("budget_max", buyer.budget_max)
        if budget_min is not None and budget_max is not None and budget_min > budget_max:
            raise ValidationError("Minimum budget cannot be greater than maximum budget")

        floor_min = update_data.get("floor_min", buyer.floor_min)
        floor_max = update_data.get("floor_max", buyer.floor_max)
        if floor_min is not None and floor_max is not None and floor_min > floor_max:
            raise ValidationError("Minimum floor cannot be greater than maximum floor")

    async def delete_buyer(self, buyer_id: uuid.UUID, current_user: User) -> bool:
        """
        Delete a buyer with its matches, offers and timeline.

        Raises:
            NotFoundError: If the buyer doesn't exist
            ForbiddenError: If the buyer belongs to another agent
        """
        try:
            await self.get_buyer(buyer_id, current_user)
            deleted = await self.buyer_repo.delete(buyer_id)
            if deleted:
                logger.info(f"Buyer deleted by {current_user.email}: {buyer_id}")
            return deleted

        except (NotFoundError, ForbiddenError):
            raise
        except Exception as e:
            logger.error(f"Failed to delete buyer {buyer_id}: {e}")
            raise BadRequestError(f"Failed to delete buyer: {str(e)}")
