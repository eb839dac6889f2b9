"""
Generic async repository shared by every CRM table.

Writes commit immediately and roll back on failure; the session is created
with ``expire_on_commit=False`` so returned rows stay usable.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from estate_crm.database import Base
from typing import TypeVar, Generic, Optional, Dict, Any, Type
import uuid
import logging

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Lookup, write and count helpers for one model class."""

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    @property
    def _name(self) -> str:
        return self.model.__name__

    def _apply_filters(self, query, filters: Optional[Dict[str, Any]]):
        """Equality filters on known columns; a list value becomes IN."""
        for field, value in (filters or {}).items():
            column = getattr(self.model, field, None)
            if column is None:
                continue
            query = query.where(column.in_(value) if isinstance(value, list) else column == value)
        return query

    async def _commit(self, action: str, obj: Optional[ModelType] = None) -> None:
        try:
            await self.db.commit()
            if obj is not None:
                await self.db.refresh(obj)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to {action} {self._name}: {e}")
            raise

    async def create(self, obj_in: Dict[str, Any]) -> ModelType:
        db_obj = self.model(**obj_in)
        self.db.add(db_obj)
        await self._commit("create", db_obj)
        logger.debug(f"Created {self._name} {db_obj.id}")
        return db_obj

    async def get_by_id(self, id: uuid.UUID) -> Optional[ModelType]:
        result = await self.db.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def update(self, id: uuid.UUID, obj_in: Dict[str, Any]) -> Optional[ModelType]:
        """
        Apply ``obj_in`` to the row and commit.

        None values are written as given, so callers pass only the fields they
        mean to change (``model_dump(exclude_unset=True)``). Returns None when
        the row does not exist.
        """
        db_obj = await self.get_by_id(id)
        if db_obj is None:
            return None

        for field, value in obj_in.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        await self._commit("update", db_obj)
        logger.debug(f"Updated {self._name} {id}: {sorted(obj_in)}")
        return db_obj

    async def delete(self, id: uuid.UUID) -> bool:
        db_obj = await self.get_by_id(id)
        if db_obj is None:
            return False

        await self.db.delete(db_obj)
        await self._commit("delete")
        logger.debug(f"Deleted {self._name} {id}")
        return True

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        query = self._apply_filters(select(func.count(self.model.id)), filters)
        return (await self.db.execute(query)).scalar() or 0

    async def get_by_field(self, field: str, value: Any) -> Optional[ModelType]:
        """First row whose ``field`` equals ``value``."""
        if not hasattr(self.model, field):
            raise ValueError(f"Field '{field}' does not exist on {self._name}")

        result = await self.db.execute(select(self.model).where(getattr(self.model, field) == value).limit(1))
        return result.scalars().first()
