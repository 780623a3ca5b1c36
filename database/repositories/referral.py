"""Referral repository for database operations."""
import logging
from typing import Optional, List
from datetime import datetime

from sqlalchemy import select, func, and_

from database.models import Referral, ReferralStatus, OPEN_STATUSES
from database.repositories.base import BaseRepository
from database.repositories.agent import AgentRepository
from core.exceptions import ReferralNotFoundError, NegativeAmountError

logger = logging.getLogger(__name__)


class ReferralRepository(BaseRepository[Referral]):
    """Repository for Referral model operations."""

    model_class = Referral

    async def create(
        self,
        agent_id: int,
        patient_full_name: str,
        clinic: Optional[str] = None,
        status: ReferralStatus = ReferralStatus.NEW,
        created_at: Optional[datetime] = None,
    ) -> Referral:
        """Create new referral record."""
        referral = Referral(
            agent_id=agent_id,
            patient_full_name=patient_full_name,
            clinic=clinic,
            status=status.value,
        )
        if created_at is not None:
            referral.created_at = created_at
        return await self._add(referral)

    async def get_for_update(self, referral_id: int) -> Optional[Referral]:
        """Get referral by ID, locking the row where the backend supports it."""
        result = await self.session.execute(
            select(Referral)
            .where(Referral.id == referral_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_open_referrals(self, agent_id: Optional[int] = None) -> List[Referral]:
        """Get referrals a clinic report may still match, newest first."""
        query = select(Referral).where(
            Referral.status.in_([s.value for s in OPEN_STATUSES])
        )
        if agent_id is not None:
            query = query.where(Referral.agent_id == agent_id)

        query = query.order_by(Referral.created_at.desc(), Referral.id.desc())

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_by_agent_and_month(
        self,
        agent_id: int,
        treatment_month: str,
        for_update: bool = False
    ) -> List[Referral]:
        """Get all of the agent's referrals attributed to a treatment month."""
        query = select(Referral).where(
            and_(
                Referral.agent_id == agent_id,
                Referral.treatment_month == treatment_month
            )
        ).order_by(Referral.id)
        if for_update:
            query = query.with_for_update()

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_monthly_revenue(self, agent_id: int, treatment_month: str) -> int:
        """Sum of treatment amounts for the agent's month, regardless of status."""
        result = await self.session.execute(
            select(func.coalesce(func.sum(Referral.treatment_amount), 0)).where(
                and_(
                    Referral.agent_id == agent_id,
                    Referral.treatment_month == treatment_month
                )
            )
        )
        return int(result.scalar() or 0)

    async def count_by_agent(
        self,
        agent_id: int,
        status: Optional[ReferralStatus] = None
    ) -> int:
        """Count agent's referrals, optionally filtered by status."""
        query = select(func.count(Referral.id)).where(Referral.agent_id == agent_id)
        if status:
            query = query.where(Referral.status == status.value)
        result = await self.session.execute(query)
        return result.scalar() or 0

    async def set_treatment_month(self, referral_id: int, treatment_month: str) -> Referral:
        """Attribute referral to a treatment month."""
        referral = await self.get_for_update(referral_id)
        if not referral:
            raise ReferralNotFoundError(referral_id)
        referral.treatment_month = treatment_month
        await self.session.flush()
        return referral

    async def update_status(self, referral_id: int, status: ReferralStatus) -> Referral:
        """Move referral to a new status."""
        referral = await self.get_by_id(referral_id)
        if not referral:
            raise ReferralNotFoundError(referral_id)
        referral.status = status.value
        await self.session.flush()
        return referral

    async def update_amounts(
        self,
        referral_id: int,
        treatment_amount: int,
        commission_amount: int
    ) -> int:
        """
        Set referral amounts and push the commission change to the agent.

        The agent's total earnings receive only the difference between the
        new and the previously stored commission, never a recomputed sum.

        Args:
            referral_id: Referral ID
            treatment_amount: Treatment amount in kopecks
            commission_amount: Commission amount in kopecks

        Returns:
            Applied commission delta

        Raises:
            NegativeAmountError: If either amount is negative
            ReferralNotFoundError: If referral does not exist
        """
        if treatment_amount < 0:
            raise NegativeAmountError("treatment_amount", treatment_amount)
        if commission_amount < 0:
            raise NegativeAmountError("commission_amount", commission_amount)

        referral = await self.get_for_update(referral_id)
        if not referral:
            raise ReferralNotFoundError(referral_id)

        delta = commission_amount - (referral.commission_amount or 0)

        referral.treatment_amount = treatment_amount
        referral.commission_amount = commission_amount
        await self.session.flush()

        if delta != 0:
            await AgentRepository(self.session).apply_delta(referral.agent_id, delta)
            logger.info(
                f"Referral {referral_id} commission changed by {delta:+d}",
                extra={"referral_id": referral_id, "agent_id": referral.agent_id, "delta": delta}
            )

        return delta
