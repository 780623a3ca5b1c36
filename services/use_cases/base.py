"""
Base use case class with common functionality.
"""
from abc import ABC, abstractmethod
from typing import TypeVar, Generic

from sqlalchemy.ext.asyncio import AsyncSession


ResultType = TypeVar("ResultType")


class BaseUseCase(ABC, Generic[ResultType]):
    """
    Abstract base class for use cases.

    A use case encapsulates a single business operation, orchestrates
    repositories and services, and owns the transaction boundary:
    repositories only flush.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize use case with database session.

        Args:
            session: Async SQLAlchemy session for database operations
        """
        self.session = session

    @abstractmethod
    async def execute(self, *args, **kwargs) -> ResultType:
        """
        Execute the use case.

        Subclasses must implement this method with their specific logic.
        """
        pass

    async def _commit(self) -> None:
        """Commit, rolling back if the commit itself fails."""
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
