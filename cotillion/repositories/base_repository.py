from typing import Any, Generic, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from cotillion.database import Base

ModelType = TypeVar("ModelType", bound=Base)
PydanticType = TypeVar("PydanticType", bound=BaseModel)


class BaseRepository(Generic[ModelType, PydanticType]):
    """Generic base repository with common CRUD operations.

    Repositories flush but never commit; the calling service owns the
    transaction boundary.
    """

    def __init__(self, db: AsyncSession, model_class: Any):
        self.db = db
        self.model_class = model_class

    async def get_model(self, id: Any) -> Optional[ModelType]:
        """Get a single ORM row by primary key."""
        query = (
            select(self.model_class)
            .where(self.model_class.id == id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_id(self, id: Any) -> Optional[PydanticType]:
        """Get a single record by ID."""
        db_model = await self.get_model(id)
        return self._to_pydantic(db_model) if db_model else None

    async def create(self, pydantic_model: PydanticType) -> PydanticType:
        """Create a new record inside the current transaction."""
        db_model = self._from_pydantic(pydantic_model)
        self.db.add(db_model)
        await self.db.flush()
        await self.db.refresh(db_model)
        return self._to_pydantic(db_model)

    async def delete(self, id: Any) -> bool:
        """Delete a record by ID."""
        db_model = await self.get_model(id)
        if not db_model:
            return False

        await self.db.delete(db_model)
        await self.db.flush()
        return True

    def _to_pydantic(self, db_model: ModelType) -> PydanticType:
        """Convert SQLAlchemy model to Pydantic model.

        This should be overridden in subclasses for specific conversion logic.
        """
        raise NotImplementedError

    def _from_pydantic(self, pydantic_model: PydanticType) -> ModelType:
        """Convert Pydantic model to SQLAlchemy model.

        This should be overridden in subclasses for specific conversion logic.
        """
        raise NotImplementedError


def as_uuid(value: Any) -> UUID:
    """Accept a UUID or its string form."""
    return value if isinstance(value, UUID) else UUID(str(value))
