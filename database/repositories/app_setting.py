"""Repository for global key/value settings."""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import AppSetting


class AppSettingRepository:
    """Repository for AppSetting model operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_value(self, key: str) -> Optional[str]:
        """Get raw setting value or None if not set."""
        result = await self.session.execute(
            select(AppSetting.value).where(AppSetting.key == key)
        )
        return result.scalar_one_or_none()

    async def set_value(self, key: str, value: str) -> None:
        """Insert or replace a setting."""
        setting = await self.session.get(AppSetting, key)
        if setting:
            setting.value = value
        else:
            self.session.add(AppSetting(key=key, value=value))
        await self.session.flush()
