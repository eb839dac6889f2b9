"""
Property service for managing listings with business logic validation.
Handles CRUD operations, ownership validation, search, image URLs and extended details.
"""

from typing import List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from estate_crm.repositories.property import PropertyRepository, PropertySearchFilters
from estate_crm.models.property import Property
from estate_crm.models.image import PropertyImage
from estate_crm.models.property_details import PropertyExtendedDetails
from estate_crm.models.user import User
from estate_crm.schemas.property import (
    PropertyCreate,
    PropertyUpdate,
    PropertySearchParams,
    PropertyImageCreate,
    PropertyExtendedDetailsSchema
)
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


class PropertyService:
    """
    Property service for managing listings.
    Agents manage their own listings; managers and admins manage all of them.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.property_repo = PropertyRepository(db_session)

    async def create_property(self, property_data: PropertyCreate, current_user: User) -> Property:
        """
        Create a new listing owned by the current user.

        Args:
            property_data: Property creation data
            current_user: Agent creating the property

        Returns:
            Created property with images loaded

        Raises:
            InsufficientPermissionsError: If the user is not staff
            ValidationError: If property data is invalid
        """
        try:
            if not current_user.is_agent:
                raise InsufficientPermissionsError("create properties")

            create_data = property_data.model_dump(exclude={"image_urls"})
            create_data["agent_id"] = current_user.id

            try:
                property_obj = await self.property_repo.create_property(create_data)
            except ValueError as e:
                raise ValidationError(str(e))

            for url in property_data.image_urls:
                await self.property_repo.add_image(property_obj.id, url)

            property_obj = await self.property_repo.get_property_with_details(property_obj.id)
            logger.info(f"Property created by {current_user.email}: {property_obj.address} (ID: {property_obj.id})")
            return property_obj

        except (ValidationError, ForbiddenError):
            raise
        except Exception as e:
            logger.error(f"Failed to create property for user {current_user.id}: {e}")
            raise BadRequestError(f"Failed to create property: {str(e)}")

    async def get_property(self, property_id: uuid.UUID) -> Property:
        """
        Get a property with agent, images and extended details.

        Raises:
            NotFoundError: If property doesn't exist
        """
        try:
            property_obj = await self.property_repo.get_property_with_details(property_id)

            if not property_obj:
                raise NotFoundError("Property", str(property_id))

            return property_obj

        except NotFoundError:
            raise
        except Exception as e:
            logger.error(f"Failed to get property {property_id}: {e}")
            raise BadRequestError(f"Failed to retrieve property: {str(e)}")

    async def _get_managed_property(self, property_id: uuid.UUID, current_user: User, action: str) -> Property:
        property_obj = await self.get_property(property_id)
        if not current_user.can_manage(property_obj.agent_id):
            raise InsufficientPermissionsError(action)
        return property_obj

    async def update_property(
        self,
        property_id: uuid.UUID,
        property_data: PropertyUpdate,
        current_user: User
    ) -> Property:
        """
        Update a listing with ownership validation.

        Args:
            property_id: UUID of the property to update
            property_data: Fields to change
            current_user: User updating the property

        Returns:
            Updated property

        Raises:
            NotFoundError: If property doesn't exist
            InsufficientPermissionsError: If the user does not own the property
            ValidationError: If the resulting listing is invalid
        """
        try:
            existing = await self._get_managed_property(property_id, current_user, "update this property")

            update_data = property_data.model_dump(exclude_unset=True)
            if not update_data:
                raise ValidationError("No valid fields provided for update")

            for field in ("address", "city"):
                if field in update_data and update_data[field] is None:
                    raise ValidationError(f"{field} cannot be empty")

            candidate = {
                column: getattr(existing, column)
                for column in ("price", "rooms", "floor", "total_floors", "size_sqm")
            }
            candidate.update({k: v for k, v in update_data.items() if k in candidate})
            try:
                Property(**candidate).validate_all()
            except ValueError as e:
                raise ValidationError(str(e))

            await self.property_repo.update(property_id, update_data)
            updated = await self.property_repo.get_property_with_details(property_id)

            logger.info(f"Property updated by {current_user.email}: {property_id} ({sorted(update_data)})")
            return updated

        except (NotFoundError, ForbiddenError, ValidationError):
            raise
        except Exception as e:
            logger.error(f"Failed to update property {property_id}: {e}")
            raise BadRequestError(f"Failed to update property: {str(e)}")

    async def delete_property(self, property_id: uuid.UUID, current_user: User) -> bool:
        """
        Delete a listing with ownership validation.

        Raises:
            NotFoundError: If property doesn't exist
            InsufficientPermissionsError: If the user does not own the property
        """
        try:
            await self._get_managed_property(property_id, current_user, "delete this property")

            deleted = await self.property_repo.delete(property_id)
            if deleted:
                logger.info(f"Property deleted by {current_user.email}: {property_id}")
            return deleted

        except (NotFoundError, ForbiddenError):
            raise
        except Exception as e:
            logger.error(f"Failed to delete property {property_id}: {e}")
            raise BadRequestError(f"Failed to delete property: {str(e)}")

    async def search_properties(self, search_params: PropertySearchParams) -> Tuple[List[Property], int]:
        """
        Search listings with filtering and pagination.

        Args:
            search_params: Filters, paging and sorting

        Returns:
            Tuple of (properties, total count)
        """
        try:
            agent_id = None
            if search_params.agent_id:
                try:
                    agent_id = uuid.UUID(search_params.agent_id)
                except ValueError:
                    raise ValidationError("Invalid agent ID format")

            filters = PropertySearchFilters(
                city=search_params.city,
                neighborhood=search_params.neighborhood,
                min_price=search_params.min_price,
                max_price=search_params.max_price,
                min_rooms=search_params.min_rooms,
                status=search_params.status,
                agent_id=agent_id,
                search_text=search_params.query
            )

            skip = (search_params.page - 1) * search_params.page_size
            properties, total = await self.property_repo.search_properties(
                filters=filters,
                skip=skip,
                limit=search_params.page_size,
                order_by=search_params.sort_by,
                order_direction=search_params.sort_order
            )

            logger.debug(f"Property search returned {len(properties)} of {total} results")
            return properties, total

        except ValidationError:
            raise
        except Exception as e:
            logger.error(f"Failed to search properties: {e}")
            raise BadRequestError(f"Failed to search properties: {str(e)}")

    # Images

    async def add_image(self, property_id: uuid.UUID, image_data: PropertyImageCreate, current_user: User) -> PropertyImage:
        await self._get_managed_property(property_id, current_user, "add images to this property")
        image = await self.property_repo.add_image(property_id, image_data.url, image_data.is_primary)
        logger.info(f"Image {image.id} added to property {property_id}")
        return image

    async def _get_property_image(self, property_id: uuid.UUID, image_id: uuid.UUID) -> PropertyImage:
        image = await self.property_repo.get_image(image_id)
        if not image or image.property_id != property_id:
            raise NotFoundError("Image", str(image_id))
        return image

    async def set_primary_image(self, property_id: uuid.UUID, image_id: uuid.UUID, current_user: User) -> PropertyImage:
        """
        Make one image the primary image of its property.

        Raises:
            NotFoundError: If the property or image doesn't exist
            InsufficientPermissionsError: If the user does not own the property
        """
        await self._get_managed_property(property_id, current_user, "change images of this property")
        image = await self._get_property_image(property_id, image_id)
        return await self.property_repo.set_primary_image(image)

    async def delete_image(self, property_id: uuid.UUID, image_id: uuid.UUID, current_user: User) -> None:
        await self._get_managed_property(property_id, current_user, "delete images of this property")
        image = await self._get_property_image(property_id, image_id)
        await self.property_repo.delete_image(image)
        logger.info(f"Image {image_id} deleted from property {property_id}")

    # Extended details

    async def upsert_extended_details(
        self,
        property_id: uuid.UUID,
        details: PropertyExtendedDetailsSchema,
        current_user: User
    ) -> PropertyExtendedDetails:
        """
        Create or update the extended details of a property.

        Only fields present in the request are written.
        """
        await self._get_managed_property(property_id, current_user, "edit details of this property")
        row = await self.property_repo.upsert_extended_details(property_id, details.model_dump(exclude_unset=True))
        logger.info(f"Extended details saved for property {property_id}")
        return row
