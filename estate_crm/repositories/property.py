"""
Property repository for managing listings with search and filtering.
Also owns listing images and extended details, which only exist alongside a property.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func, desc, asc, update
from sqlalchemy.orm import selectinload
from estate_crm.repositories.base import BaseRepository
from estate_crm.models.property import Property, PropertyStatus
from estate_crm.models.image import PropertyImage
from estate_crm.models.property_details import PropertyExtendedDetails
from typing import Optional, List, Dict, Any, Tuple, Iterable
from decimal import Decimal
import uuid
import logging

logger = logging.getLogger(__name__)


class PropertySearchFilters:
    """Data class for property search filters."""

    def __init__(
        self,
        city: Optional[str] = None,
        neighborhood: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        min_rooms: Optional[Decimal] = None,
        status: Optional[PropertyStatus] = None,
        agent_id: Optional[uuid.UUID] = None,
        search_text: Optional[str] = None
    ):
        self.city = city
        self.neighborhood = neighborhood
        self.min_price = min_price
        self.max_price = max_price
        self.min_rooms = min_rooms
        self.status = status
        self.agent_id = agent_id
        self.search_text = search_text


class PropertyRepository(BaseRepository[Property]):
    """
    Repository for property management with search and filtering capabilities.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Property, db)

    def _details_query(self):
        return select(Property).options(
            selectinload(Property.agent),
            selectinload(Property.images),
            selectinload(Property.extended_details)
        ).execution_options(populate_existing=True)

    async def create_property(self, property_data: Dict[str, Any]) -> Property:
        """
        Create a new property with validation.

        Args:
            property_data: Dictionary containing property information

        Returns:
            Created property instance

        Raises:
            ValueError: If validation fails
        """
        Property(**property_data).validate_all()

        created_property = await self.create(property_data)
        logger.info(f"Created property: {created_property.address}, {created_property.city} (ID: {created_property.id})")
        return await self.get_property_with_details(created_property.id)

    async def get_property_with_details(self, property_id: uuid.UUID) -> Optional[Property]:
        """
        Get property with agent, images and extended details loaded.

        Args:
            property_id: UUID of the property

        Returns:
            Property with loaded relationships or None if not found
        """
        try:
            result = await self.db.execute(self._details_query().where(Property.id == property_id))
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to get property with details {property_id}: {e}")
            raise

    async def get_by_external_id(self, external_id: str) -> Optional[Property]:
        result = await self.db.execute(self._details_query().where(Property.external_id == external_id))
        return result.scalar_one_or_none()

    async def get_by_ids(self, property_ids: Iterable[uuid.UUID]) -> List[Property]:
        ids = list(property_ids)
        if not ids:
            return []
        result = await self.db.execute(self._details_query().where(Property.id.in_(ids)))
        return list(result.scalars().all())

    async def search_properties(
        self,
        filters: PropertySearchFilters,
        skip: int = 0,
        limit: int = 20,
        order_by: str = "created_at",
        order_direction: str = "desc"
    ) -> Tuple[List[Property], int]:
        """
        Search properties with filtering and pagination.

        Args:
            filters: PropertySearchFilters instance with search criteria
            skip: Number of records to skip for pagination
            limit: Maximum number of records to return
            order_by: Field to order by
            order_direction: 'asc' or 'desc'

        Returns:
            Tuple of (properties list, total count)
        """
        try:
            query = self._details_query()
            count_query = select(func.count(Property.id))

            conditions = self._build_filter_conditions(filters)
            if conditions:
                query = query.where(and_(*conditions))
                count_query = count_query.where(and_(*conditions))

            total_count = (await self.db.execute(count_query)).scalar()

            if hasattr(Property, order_by):
                order_field = getattr(Property, order_by)
                query = query.order_by(desc(order_field) if order_direction.lower() == "desc" else asc(order_field))
            else:
                query = query.order_by(desc(Property.created_at))

            result = await self.db.execute(query.offset(skip).limit(limit))
            properties = result.scalars().all()

            logger.debug(f"Property search returned {len(properties)} of {total_count} total results")
            return list(properties), total_count
        except Exception as e:
            logger.error(f"Failed to search properties: {e}")
            raise

    def _build_filter_conditions(self, filters: PropertySearchFilters) -> List:
        """
        Build SQLAlchemy filter conditions from search filters.

        Args:
            filters: PropertySearchFilters instance

        Returns:
            List of SQLAlchemy conditions
        """
        conditions = []

        if filters.status is not None:
            conditions.append(Property.status == filters.status)

        if filters.city:
            conditions.append(Property.city == filters.city)

        if filters.neighborhood:
            conditions.append(Property.neighborhood == filters.neighborhood)

        if filters.min_price is not None:
            conditions.append(Property.price >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(Property.price <= filters.max_price)

        if filters.min_rooms is not None:
            conditions.append(Property.rooms >= filters.min_rooms)

        if filters.agent_id:
            conditions.append(Property.agent_id == filters.agent_id)

        if filters.search_text:
            search_term = f"%{filters.search_text}%"
            conditions.append(
                or_(
                    Property.address.ilike(search_term),
                    Property.city.ilike(search_term),
                    Property.neighborhood.ilike(search_term),
                    Property.description.ilike(search_term)
                )
            )

        return conditions

    async def get_available_properties(self, exclude_ids: Optional[Iterable[uuid.UUID]] = None) -> List[Property]:
        """
        Get every available property, optionally skipping some.

        Args:
            exclude_ids: Property IDs to leave out (e.g. already offered to a buyer)

        Returns:
            List of available properties with images loaded
        """
        try:
            query = self._details_query().where(Property.status == PropertyStatus.AVAILABLE)
            excluded = list(exclude_ids or [])
            if excluded:
                query = query.where(Property.id.notin_(excluded))

            result = await self.db.execute(query.order_by(desc(Property.created_at)))
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"Failed to get available properties: {e}")
            raise

    # Images

    async def add_image(self, property_id: uuid.UUID, url: str, is_primary: bool = False) -> PropertyImage:
        """
        Attach an image URL to a property.
        The first image of a property becomes primary automatically.
        """
        try:
            count_result = await self.db.execute(
                select(func.count(PropertyImage.id)).where(PropertyImage.property_id == property_id)
            )
            existing = count_result.scalar()

            if is_primary and existing:
                await self.db.execute(
                    update(PropertyImage)
                    .where(PropertyImage.property_id == property_id)
                    .values(is_primary=False)
                )

            image = PropertyImage(
                property_id=property_id,
                url=url,
                is_primary=is_primary or existing == 0,
                display_order=existing
            )
            self.db.add(image)
            await self.db.commit()
            await self.db.refresh(image)
            logger.debug(f"Added image {image.id} to property {property_id}")
            return image
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to add image to property {property_id}: {e}")
            raise

    async def get_image(self, image_id: uuid.UUID) -> Optional[PropertyImage]:
        result = await self.db.execute(select(PropertyImage).where(PropertyImage.id == image_id))
        return result.scalar_one_or_none()

    async def set_primary_image(self, image: PropertyImage) -> PropertyImage:
        """Make the given image the only primary image of its property."""
        try:
            await self.db.execute(
                update(PropertyImage)
                .where(PropertyImage.property_id == image.property_id)
                .values(is_primary=False)
            )
            image.is_primary = True
            await self.db.commit()
            await self.db.refresh(image)
            return image
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to set primary image {image.id}: {e}")
            raise

    async def delete_image(self, image: PropertyImage) -> None:
        """Delete an image, promoting the next one when the primary image is removed."""
        try:
            property_id = image.property_id
            was_primary = image.is_primary
            await self.db.delete(image)
            await self.db.flush()

            if was_primary:
                result = await self.db.execute(
                    select(PropertyImage)
                    .where(PropertyImage.property_id == property_id)
                    .order_by(PropertyImage.display_order)
                    .limit(1)
                )
                next_image = result.scalar_one_or_none()
                if next_image:
                    next_image.is_primary = True

            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to delete image {image.id}: {e}")
            raise

    async def replace_images(self, property_obj: Property, urls: List[str]) -> None:
        """Replace all images of a property; the first URL becomes primary. Does not commit."""
        property_obj.images.clear()
        await self.db.flush()
        for index, url in enumerate(urls):
            property_obj.images.append(
                PropertyImage(url=url, is_primary=index == 0, display_order=index)
            )

    # Extended details

    async def upsert_extended_details(self, property_id: uuid.UUID, details: Dict[str, Any]) -> PropertyExtendedDetails:
        """
        Create or update the extended details row of a property.

        Args:
            property_id: UUID of the property
            details: Field values to set

        Returns:
            Extended details instance
        """
        try:
            result = await self.db.execute(
                select(PropertyExtendedDetails).where(PropertyExtendedDetails.property_id == property_id)
            )
            row = result.scalar_one_or_none()

            if row is None:
                row = PropertyExtendedDetails(property_id=property_id, **details)
                self.db.add(row)
            else:
                for field, value in details.items():
                    setattr(row, field, value)

            await self.db.commit()
            await self.db.refresh(row)
            return row
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to upsert extended details for property {property_id}: {e}")
            raise
