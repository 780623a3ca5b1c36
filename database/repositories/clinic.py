"""Clinic repository for database operations."""
from typing import Optional

from sqlalchemy import select

from database.models import Clinic
from database.repositories.base import BaseRepository


class ClinicRepository(BaseRepository[Clinic]):
    """Repository for Clinic model operations."""

    model_class = Clinic

    async def create(self, name: str, commission_rate: Optional[int] = None) -> Clinic:
        """Create new clinic."""
        return await self._add(Clinic(name=name, commission_rate=commission_rate))

    async def get_by_name(self, name: str) -> Optional[Clinic]:
        """
        Get clinic by name, ignoring case and surrounding spaces.

        Case folding is done in Python: SQLite's lower() leaves Cyrillic as is.
        """
        wanted = name.strip()
        result = await self.session.execute(select(Clinic).where(Clinic.name == wanted))
        clinic = result.scalars().first()
        if clinic:
            return clinic

        wanted = wanted.casefold()
        for candidate in await self.get_all():
            if candidate.name.strip().casefold() == wanted:
                return candidate
        return None
