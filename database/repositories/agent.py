"""Agent repository for database operations."""
import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm.util import identity_key

from database.models import Agent, SelfEmployedStatus
from database.repositories.base import BaseRepository
from core.exceptions import AgentNotFoundError, NegativeEarningsError

logger = logging.getLogger(__name__)


class AgentRepository(BaseRepository[Agent]):
    """
    Repository for Agent model operations.

    total_earnings has no setter here on purpose: the only way to change it
    is apply_delta, a single atomic increment in the database.
    """

    model_class = Agent

    async def create(
        self,
        full_name: str,
        telegram_id: Optional[int] = None,
        is_self_employed: SelfEmployedStatus = SelfEmployedStatus.UNKNOWN,
        bonus_points: int = 0,
    ) -> Agent:
        """Create new agent with zero earnings."""
        agent = Agent(
            full_name=full_name,
            telegram_id=telegram_id,
            is_self_employed=is_self_employed.value,
            bonus_points=bonus_points,
            total_earnings=0,
        )
        return await self._add(agent)

    async def get_by_telegram_id(self, telegram_id: int) -> Optional[Agent]:
        """Get agent by Telegram ID."""
        result = await self.session.execute(
            select(Agent).where(Agent.telegram_id == telegram_id)
        )
        return result.scalar_one_or_none()

    async def get_total_earnings(self, agent_id: int) -> int:
        """Read the current aggregate straight from the database."""
        result = await self.session.execute(
            select(Agent.total_earnings).where(Agent.id == agent_id)
        )
        total = result.scalar_one_or_none()
        if total is None:
            raise AgentNotFoundError(agent_id)
        return total

    async def apply_delta(self, agent_id: int, delta: int) -> int:
        """
        Atomically add a signed delta to the agent's total earnings.

        The increment is computed by the database, so concurrent writers
        never overwrite each other's changes.

        Args:
            agent_id: Agent ID
            delta: Signed amount in kopecks

        Returns:
            New total earnings

        Raises:
            AgentNotFoundError: If agent does not exist
            NegativeEarningsError: If the result would be below zero
        """
        if delta == 0:
            return await self.get_total_earnings(agent_id)

        result = await self.session.execute(
            update(Agent)
            .where(Agent.id == agent_id, Agent.total_earnings + delta >= 0)
            .values(total_earnings=Agent.total_earnings + delta)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            if not await self.exists(agent_id):
                raise AgentNotFoundError(agent_id)
            raise NegativeEarningsError(agent_id, delta)

        # Loaded instance now holds a stale total
        cached = self.session.identity_map.get(identity_key(Agent, agent_id))
        if cached is not None:
            self.session.expire(cached, ["total_earnings"])

        logger.debug(
            f"Applied earnings delta {delta:+d} to agent {agent_id}",
            extra={"agent_id": agent_id, "delta": delta}
        )
        return await self.get_total_earnings(agent_id)
