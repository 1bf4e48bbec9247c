"""
Base repository pattern implementation with async support

Repositories never commit: the caller owns the transaction boundary
(see DatabaseSessionManager.transaction) and writes are flushed so that
constraint violations surface inside it.
"""
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar
from datetime import datetime, timezone

from sqlmodel import SQLModel, select, func, and_
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy import asc, desc

from benderscore.core.logging import log
from benderscore.core.exceptions import ConflictError, DatabaseError


ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository for data access with async support.
    Implements common CRUD operations.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def create(self, **values: Any) -> ModelType:
        """Create a new record"""
        db_obj = self.model(**values)
        await self.add(db_obj)
        log.debug(f"Created {self.model.__name__}", id=str(db_obj.id))
        return db_obj

    async def add(self, db_obj: ModelType) -> ModelType:
        """Stage an instance and flush it"""
        try:
            self.session.add(db_obj)
            await self.session.flush()
            return db_obj
        except IntegrityError as e:
            log.warning(f"Integrity error writing {self.model.__name__}", error=str(e.orig))
            raise ConflictError(f"Conflict writing {self.model.__name__}") from e
        except SQLAlchemyError as e:
            log.error(f"Database error writing {self.model.__name__}", error=str(e))
            raise DatabaseError(f"Error writing {self.model.__name__}") from e

    def _filtered(self, statement, filters: Optional[Dict[str, Any]]):
        if filters:
            conditions = []
            for field, value in filters.items():
                if hasattr(self.model, field):
                    if isinstance(value, list):
                        conditions.append(getattr(self.model, field).in_(value))
                    else:
                        conditions.append(getattr(self.model, field) == value)
            if conditions:
                statement = statement.where(and_(*conditions))
        return statement

    async def get_multi(
        self,
        *,
        skip: int = 0,
        limit: Optional[int] = 20,
        order_by: Optional[str] = None,
        order_desc: bool = False,
        filters: Optional[Dict[str, Any]] = None
    ) -> List[ModelType]:
        """Get multiple records with pagination and filtering"""
        statement = self._filtered(select(self.model), filters)

        # Apply ordering
        if order_by and hasattr(self.model, order_by):
            order_column = getattr(self.model, order_by)
            statement = statement.order_by(desc(order_column) if order_desc else asc(order_column))

        statement = statement.offset(skip)
        if limit is not None:
            statement = statement.limit(limit)

        result = await self.session.exec(statement)
        return list(result.all())

    async def count(self, *, filters: Optional[Dict[str, Any]] = None) -> int:
        """Count records with optional filtering"""
        statement = self._filtered(select(func.count()).select_from(self.model), filters)
        result = await self.session.exec(statement)
        return result.one()

    async def update(self, db_obj: ModelType, values: Dict[str, Any]) -> ModelType:
        """Update fields on a loaded record"""
        for field, value in values.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        # Update timestamp if model has it
        if hasattr(db_obj, "updated_at"):
            db_obj.updated_at = datetime.now(timezone.utc)

        return await self.add(db_obj)
