"""Monthly commission recalculation for an agent."""
import asyncio
import logging
from contextlib import asynccontextmanager
from decimal import Decimal, ROUND_HALF_UP
from typing import AsyncIterator, Dict, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from database.repositories import ReferralRepository
from services.commission_tiers import CommissionTierResolver

logger = logging.getLogger(__name__)


def calculate_commission(treatment_amount: int, commission_rate: float) -> int:
    """
    Commission in kopecks, rounded half up.

    Example:
        100000 × 15% = 15000
    """
    value = Decimal(treatment_amount) * Decimal(str(commission_rate)) / Decimal(100)
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


class AgentMonthLocks:
    """
    Registry of asyncio locks keyed by (agent_id, treatment_month).

    Inject one instance per process into everything that writes an agent's
    monthly amounts. Locks nobody waits on are dropped on release.
    """

    def __init__(self):
        self._locks: Dict[Tuple[int, str], asyncio.Lock] = {}
        self._waiters: Dict[Tuple[int, str], int] = {}

    @asynccontextmanager
    async def hold(self, agent_id: int, treatment_month: str) -> AsyncIterator[None]:
        key = (agent_id, treatment_month)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)


class MonthlyRecalculationEngine:
    """
    Bring every referral of an agent's month to the currently effective rate.

    New revenue in a month can move the agent into another tier, which
    changes the commission of all referrals in that month, not just the one
    just approved. Commission changes are pushed to the agent aggregate as
    deltas only; running twice without new data changes nothing.
    """

    def __init__(self, session: AsyncSession, resolver: CommissionTierResolver):
        self.session = session
        self.resolver = resolver
        self.referral_repo = ReferralRepository(session)

    async def recalculate(self, agent_id: int, treatment_month: str) -> None:
        """
        Recalculate commissions for the agent's treatment month.

        Must run under AgentMonthLocks for the same key and inside the
        caller's transaction.
        """
        effective_rate = await self.resolver.resolve(agent_id, treatment_month)
        if effective_rate is None:
            # No global tiers: per-clinic rates stay authoritative
            return

        referrals = await self.referral_repo.get_by_agent_and_month(
            agent_id, treatment_month, for_update=True
        )

        changed = 0
        for referral in referrals:
            treatment_amount = referral.treatment_amount or 0
            new_commission = calculate_commission(treatment_amount, effective_rate)
            if new_commission == (referral.commission_amount or 0):
                continue

            delta = await self.referral_repo.update_amounts(
                referral.id, treatment_amount, new_commission
            )
            changed += 1
            logger.info(
                f"Recalculated referral {referral.id} at {effective_rate}%: delta {delta:+d}",
                extra={
                    "agent_id": agent_id,
                    "referral_id": referral.id,
                    "treatment_month": treatment_month,
                    "delta": delta,
                }
            )

        if changed:
            logger.info(
                f"Agent {agent_id} {treatment_month}: {changed} of {len(referrals)} "
                f"referral(s) moved to {effective_rate}%",
                extra={"agent_id": agent_id, "treatment_month": treatment_month}
            )
