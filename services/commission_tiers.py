"""Global commission tiers: storage, validation and rate resolution."""
import json
import logging
from typing import List, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from core.dto.commission import CommissionTier, CommissionTierTable
from core.exceptions import TierConfigError
from database.repositories import AppSettingRepository, ReferralRepository

logger = logging.getLogger(__name__)

TIERS_SETTING_KEY = "agentCommissionTiers"


def select_tier_rate(table: Optional[CommissionTierTable], monthly_revenue: int) -> Optional[float]:
    """
    Pick the commission rate for a monthly revenue.

    The tier with the largest threshold not exceeding the revenue wins.
    Revenue below every threshold still gets the lowest tier: tiers are a
    floor, not an eligibility gate. No tiers -> None.
    """
    if table is None or table.is_empty:
        return None

    for tier in sorted(table.tiers, key=lambda t: t.min_monthly_revenue, reverse=True):
        if monthly_revenue >= tier.min_monthly_revenue:
            return tier.commission_rate

    return min(table.tiers, key=lambda t: t.min_monthly_revenue).commission_rate


class TierConfigService:
    """Load and save the global tier table stored in app settings."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.settings_repo = AppSettingRepository(session)

    async def load_tiers(self) -> Optional[CommissionTierTable]:
        """
        Load the tier table.

        Missing, empty or malformed configuration yields None so commission
        assignment falls back to clinic rates instead of failing.
        """
        raw = await self.settings_repo.get_value(TIERS_SETTING_KEY)
        if not raw:
            return None

        try:
            table = CommissionTierTable.from_json(raw)
        except (json.JSONDecodeError, PydanticValidationError) as e:
            logger.warning(f"Ignoring malformed commission tiers: {e}")
            return None

        return None if table.is_empty else table

    async def save_tiers(
        self,
        tiers: List[Union[CommissionTier, dict]],
    ) -> CommissionTierTable:
        """
        Validate and replace the tier table wholesale.

        Raises:
            TierConfigError: If thresholds repeat or values are out of range
        """
        try:
            table = CommissionTierTable(tiers=tiers)
        except PydanticValidationError as e:
            errors = "; ".join(err["msg"] for err in e.errors())
            raise TierConfigError(errors) from e

        await self.settings_repo.set_value(TIERS_SETTING_KEY, table.to_json())
        logger.info(f"Commission tiers replaced: {len(table.tiers)} tier(s)")
        return table


class CommissionTierResolver:
    """Resolve an agent's effective commission rate for a treatment month."""

    def __init__(self, session: AsyncSession, tiers: Optional[CommissionTierTable]):
        self.session = session
        self.tiers = tiers
        self.referral_repo = ReferralRepository(session)

    @classmethod
    async def from_store(cls, session: AsyncSession) -> "CommissionTierResolver":
        """Build resolver with the tier table loaded once from app settings."""
        return cls(session, await TierConfigService(session).load_tiers())

    async def resolve(self, agent_id: int, treatment_month: str) -> Optional[float]:
        """
        Effective rate for the agent's month, or None to use the clinic rate.

        Revenue is the sum of treatment amounts already recorded for the
        month, so callers must set treatment_month on the referral first.
        """
        if self.tiers is None or self.tiers.is_empty:
            return None

        revenue = await self.referral_repo.get_monthly_revenue(agent_id, treatment_month)
        rate = select_tier_rate(self.tiers, revenue)

        logger.debug(
            f"Agent {agent_id} revenue for {treatment_month}: {revenue}, rate {rate}%",
            extra={"agent_id": agent_id, "treatment_month": treatment_month}
        )
        return rate
