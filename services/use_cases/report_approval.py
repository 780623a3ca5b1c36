"""
Approval of a clinic visit report for a referral.
"""
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass
from datetime import date
from typing import Any, AsyncIterator, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.dto.reports import parse_treatment_month
from core.exceptions import ReferralNotFoundError
from database.models import Referral, ReferralStatus
from database.repositories import AgentRepository, ClinicRepository, ReferralRepository
from services.commission_recalc import (
    AgentMonthLocks,
    MonthlyRecalculationEngine,
    calculate_commission,
)
from services.commission_tiers import CommissionTierResolver
from services.use_cases.base import BaseUseCase

logger = logging.getLogger(__name__)


@dataclass
class ApprovalResult:
    """Referral amounts after approval and recalculation."""
    referral_id: int
    agent_id: int
    treatment_month: str
    commission_rate: float
    commission_amount: int
    total_earnings: int


class ApproveReportUseCase(BaseUseCase[ApprovalResult]):
    """
    Fix the treatment amount of a referral from an approved clinic report.

    The referral is attributed to the visit month, priced at the clinic's
    rate or the global tier rate, marked as visited, and then the whole
    agent month is recalculated because the new revenue may have moved
    the agent into another tier.
    """

    def __init__(self, session: AsyncSession, locks: AgentMonthLocks):
        super().__init__(session)
        self.locks = locks
        self.referral_repo = ReferralRepository(session)
        self.clinic_repo = ClinicRepository(session)
        self.agent_repo = AgentRepository(session)

    async def execute(
        self,
        referral_id: int,
        treatment_amount: int,
        visit_date: Optional[Any] = None,
        today: Optional[date] = None,
    ) -> ApprovalResult:
        """
        Approve the report amounts for a referral.

        Args:
            referral_id: Referral the report was matched to
            treatment_amount: Treatment amount in kopecks
            visit_date: Visit date from the report (date or string)
            today: Date used when the visit date is unknown

        Raises:
            ReferralNotFoundError: If referral not found
            NegativeAmountError: If treatment amount is negative
        """
        treatment_month = parse_treatment_month(visit_date)
        if not treatment_month:
            fallback = today or date.today()
            treatment_month = f"{fallback.year:04d}-{fallback.month:02d}"

        async with self._hold_months(referral_id, treatment_month) as (referral, months):
            agent_id = referral.agent_id
            try:
                rate = await self._apply(referral_id, agent_id, referral.clinic,
                                         treatment_amount, treatment_month, months)
                referral = await self.referral_repo.get_by_id(referral_id)
                total = await self.agent_repo.get_total_earnings(agent_id)
            except Exception:
                await self.session.rollback()
                raise
            # Commit while still holding the agent-month lock
            await self._commit()

        logger.info(
            f"Approved referral {referral_id} for {treatment_month}: "
            f"amount={treatment_amount}, rate={rate}%, commission={referral.commission_amount}",
            extra={"agent_id": agent_id, "referral_id": referral_id, "treatment_month": treatment_month}
        )

        return ApprovalResult(
            referral_id=referral_id,
            agent_id=agent_id,
            treatment_month=treatment_month,
            commission_rate=rate,
            commission_amount=referral.commission_amount or 0,
            total_earnings=total,
        )

    @staticmethod
    def _months_to_lock(treatment_month: str, current_month: Optional[str]) -> list[str]:
        return sorted({m for m in (treatment_month, current_month) if m})

    @asynccontextmanager
    async def _hold_months(
        self,
        referral_id: int,
        treatment_month: str,
    ) -> AsyncIterator[Tuple[Referral, list[str]]]:
        """
        Lock the target month and the month the referral currently sits in.

        The current month is re-read under the locks. If another approval
        moved the referral meanwhile, all locks are released and taken
        again for the new pair of months.
        """
        referral = await self.referral_repo.get_by_id(referral_id)
        if not referral:
            raise ReferralNotFoundError(referral_id)

        agent_id = referral.agent_id
        months = self._months_to_lock(treatment_month, referral.treatment_month)
        while True:
            async with AsyncExitStack() as stack:
                # Sorted order keeps two-month approvals deadlock-free
                for month in months:
                    await stack.enter_async_context(self.locks.hold(agent_id, month))

                referral = await self.referral_repo.get_for_update(referral_id)
                if not referral:
                    raise ReferralNotFoundError(referral_id)

                locked = months
                months = self._months_to_lock(treatment_month, referral.treatment_month)
                if set(months) <= set(locked):
                    yield referral, months
                    return

                logger.info(
                    f"Referral {referral_id} moved to {referral.treatment_month} "
                    f"while waiting for locks, relocking",
                    extra={"agent_id": agent_id, "referral_id": referral_id}
                )
                # Release the row lock before waiting on other months
                await self.session.rollback()

    async def _clinic_rate(self, clinic_name: Optional[str]) -> float:
        """Clinic's own rate, or the platform default."""
        if clinic_name:
            clinic = await self.clinic_repo.get_by_name(clinic_name)
            if clinic and clinic.commission_rate:
                return clinic.commission_rate
        return settings.default_clinic_commission_rate

    async def _apply(
        self,
        referral_id: int,
        agent_id: int,
        clinic_name: Optional[str],
        treatment_amount: int,
        treatment_month: str,
        months: list[str],
    ) -> float:
        """Write month, amounts and status, then recalculate. Returns rate used."""
        await self.referral_repo.set_treatment_month(referral_id, treatment_month)

        resolver = await CommissionTierResolver.from_store(self.session)
        rate = await self._clinic_rate(clinic_name)
        tier_rate = await resolver.resolve(agent_id, treatment_month)
        if tier_rate is not None:
            rate = tier_rate

        commission = calculate_commission(treatment_amount, rate)
        await self.referral_repo.update_amounts(referral_id, treatment_amount, commission)
        await self.referral_repo.update_status(referral_id, ReferralStatus.VISITED)

        engine = MonthlyRecalculationEngine(self.session, resolver)
        for month in months:
            await engine.recalculate(agent_id, month)

        # The new amount may have moved the month into another tier
        final_rate = await resolver.resolve(agent_id, treatment_month)
        return rate if final_rate is None else final_rate
