"""
Base repository with common CRUD operations.

Provides a generic base class for all repositories to reduce code duplication.
Repositories flush but never commit: transaction boundaries belong to the
use case that drives them.
"""
from typing import TypeVar, Generic, Optional, List, Type
from abc import ABC

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from database.base import Base

# Type variable for model classes
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(ABC, Generic[ModelType]):
    """
    Abstract base repository with common read operations.

    Provides:
    - get_by_id: Get single entity by ID
    - get_all: Get all entities with optional limit
    - count: Count all entities
    - exists: Check if entity exists by ID

    Usage:
        class ClinicRepository(BaseRepository[Clinic]):
            model_class = Clinic

            async def get_by_name(self, name: str):
                # Custom method
                ...
    """

    model_class: Type[ModelType]

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get_by_id(self, entity_id: int) -> Optional[ModelType]:
        """
        Get entity by its primary key ID.

        Args:
            entity_id: Primary key ID

        Returns:
            Entity or None if not found
        """
        result = await self.session.execute(
            select(self.model_class).where(self.model_class.id == entity_id)
        )
        return result.scalar_one_or_none()

    async def get_all(self, limit: Optional[int] = None) -> List[ModelType]:
        """
        Get all entities.

        Args:
            limit: Optional maximum number of results

        Returns:
            List of entities
        """
        query = select(self.model_class).order_by(self.model_class.id)
        if limit:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count(self) -> int:
        """Count all entities."""
        result = await self.session.execute(
            select(func.count(self.model_class.id))
        )
        return result.scalar() or 0

    async def exists(self, entity_id: int) -> bool:
        """Check if entity exists by ID."""
        result = await self.session.execute(
            select(func.count(self.model_class.id)).where(
                self.model_class.id == entity_id
            )
        )
        return (result.scalar() or 0) > 0

    async def _add(self, entity: ModelType) -> ModelType:
        """Add entity to session, flush and refresh server defaults."""
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity
