"""Tests for referral, agent, clinic and settings repositories."""
from datetime import datetime, timezone

import pytest

from core.exceptions import (
    AgentNotFoundError,
    NegativeAmountError,
    NegativeEarningsError,
    ReferralNotFoundError,
)
from database.models import ReferralStatus
from database.repositories import (
    AgentRepository,
    AppSettingRepository,
    ClinicRepository,
    ReferralRepository,
)


class TestUpdateAmounts:

    @pytest.mark.asyncio
    async def test_first_commission_applied_as_delta(self, db_session, sample_agent, sample_referral):
        repo = ReferralRepository(db_session)

        delta = await repo.update_amounts(sample_referral.id, 100000, 10000)

        assert delta == 10000
        assert await AgentRepository(db_session).get_total_earnings(sample_agent.id) == 10000

    @pytest.mark.asyncio
    async def test_only_difference_applied(self, db_session, sample_agent, sample_referral):
        repo = ReferralRepository(db_session)
        await repo.update_amounts(sample_referral.id, 100000, 10000)

        delta = await repo.update_amounts(sample_referral.id, 100000, 15000)

        assert delta == 5000
        assert await AgentRepository(db_session).get_total_earnings(sample_agent.id) == 15000

    @pytest.mark.asyncio
    async def test_same_commission_is_noop(self, db_session, sample_agent, sample_referral):
        repo = ReferralRepository(db_session)
        await repo.update_amounts(sample_referral.id, 100000, 10000)

        assert await repo.update_amounts(sample_referral.id, 100000, 10000) == 0
        assert await AgentRepository(db_session).get_total_earnings(sample_agent.id) == 10000

    @pytest.mark.asyncio
    @pytest.mark.parametrize("treatment,commission", [(-1, 0), (100, -5)])
    async def test_negative_amount_rejected(self, db_session, sample_agent, sample_referral, treatment, commission):
        repo = ReferralRepository(db_session)

        with pytest.raises(NegativeAmountError):
            await repo.update_amounts(sample_referral.id, treatment, commission)

        assert await AgentRepository(db_session).get_total_earnings(sample_agent.id) == 0

    @pytest.mark.asyncio
    async def test_referral_not_found(self, db_session):
        with pytest.raises(ReferralNotFoundError):
            await ReferralRepository(db_session).update_amounts(999, 100, 10)


class TestApplyDelta:

    @pytest.mark.asyncio
    async def test_increment_and_decrement(self, db_session, sample_agent):
        repo = AgentRepository(db_session)

        assert await repo.apply_delta(sample_agent.id, 5000) == 5000
        assert await repo.apply_delta(sample_agent.id, -2000) == 3000
        assert await repo.apply_delta(sample_agent.id, 0) == 3000

    @pytest.mark.asyncio
    async def test_loaded_instance_refreshed(self, db_session, sample_agent):
        await AgentRepository(db_session).apply_delta(sample_agent.id, 700)

        agent = await AgentRepository(db_session).get_by_id(sample_agent.id)
        assert agent.total_earnings == 700

    @pytest.mark.asyncio
    async def test_total_never_negative(self, db_session, sample_agent):
        repo = AgentRepository(db_session)
        await repo.apply_delta(sample_agent.id, 1000)

        with pytest.raises(NegativeEarningsError) as exc_info:
            await repo.apply_delta(sample_agent.id, -1001)

        assert exc_info.value.agent_id == sample_agent.id
        assert await repo.get_total_earnings(sample_agent.id) == 1000

    @pytest.mark.asyncio
    async def test_agent_not_found(self, db_session):
        repo = AgentRepository(db_session)

        with pytest.raises(AgentNotFoundError):
            await repo.apply_delta(999, 100)
        with pytest.raises(AgentNotFoundError):
            await repo.get_total_earnings(999)


class TestReferralQueries:

    @pytest.mark.asyncio
    async def test_monthly_revenue(self, db_session, sample_agent):
        repo = ReferralRepository(db_session)
        amounts = [("2024-03", 100000), ("2024-03", 50000), ("2024-04", 70000)]
        for month, amount in amounts:
            referral = await repo.create(sample_agent.id, "Пациент Тестовый")
            await repo.set_treatment_month(referral.id, month)
            await repo.update_amounts(referral.id, amount, 0)
        await repo.create(sample_agent.id, "Без визита")

        assert await repo.get_monthly_revenue(sample_agent.id, "2024-03") == 150000
        assert await repo.get_monthly_revenue(sample_agent.id, "2024-04") == 70000
        assert await repo.get_monthly_revenue(sample_agent.id, "2024-05") == 0

    @pytest.mark.asyncio
    async def test_get_by_agent_and_month(self, db_session, sample_agent):
        repo = ReferralRepository(db_session)
        first = await repo.create(sample_agent.id, "Первый Пациент")
        second = await repo.create(sample_agent.id, "Второй Пациент")
        await repo.set_treatment_month(first.id, "2024-03")
        await repo.set_treatment_month(second.id, "2024-04")

        referrals = await repo.get_by_agent_and_month(sample_agent.id, "2024-03")

        assert [r.id for r in referrals] == [first.id]

    @pytest.mark.asyncio
    async def test_open_referrals_newest_first(self, db_session, sample_agent):
        repo = ReferralRepository(db_session)
        older = await repo.create(
            sample_agent.id, "Старый", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc)
        )
        newer = await repo.create(
            sample_agent.id, "Новый", status=ReferralStatus.SCHEDULED,
            created_at=datetime(2024, 2, 1, tzinfo=timezone.utc)
        )
        await repo.create(
            sample_agent.id, "Дубль", status=ReferralStatus.DUPLICATE,
            created_at=datetime(2024, 3, 1, tzinfo=timezone.utc)
        )
        await repo.create(
            sample_agent.id, "Не дозвонились", status=ReferralStatus.NO_ANSWER,
            created_at=datetime(2024, 3, 2, tzinfo=timezone.utc)
        )

        referrals = await repo.get_open_referrals()

        assert [r.id for r in referrals] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_open_referrals_by_agent(self, db_session, sample_agent, sample_referral):
        other = await AgentRepository(db_session).create(full_name="Другой Агент")
        repo = ReferralRepository(db_session)
        await repo.create(other.id, "Чужой Пациент")

        referrals = await repo.get_open_referrals(agent_id=sample_agent.id)

        assert [r.id for r in referrals] == [sample_referral.id]

    @pytest.mark.asyncio
    async def test_count_by_agent(self, db_session, sample_agent, sample_referral):
        repo = ReferralRepository(db_session)
        await repo.create(sample_agent.id, "Второй", status=ReferralStatus.VISITED)

        assert await repo.count_by_agent(sample_agent.id) == 2
        assert await repo.count_by_agent(sample_agent.id, ReferralStatus.VISITED) == 1

    @pytest.mark.asyncio
    async def test_update_status(self, db_session, sample_referral):
        repo = ReferralRepository(db_session)

        referral = await repo.update_status(sample_referral.id, ReferralStatus.CONTACTED)

        assert referral.status == ReferralStatus.CONTACTED.value

    @pytest.mark.asyncio
    async def test_set_month_not_found(self, db_session):
        with pytest.raises(ReferralNotFoundError):
            await ReferralRepository(db_session).set_treatment_month(999, "2024-03")


class TestClinicRepository:

    @pytest.mark.asyncio
    async def test_get_by_name_ignores_case(self, db_session, sample_clinic):
        repo = ClinicRepository(db_session)

        assert (await repo.get_by_name("Мечта")).id == sample_clinic.id
        assert (await repo.get_by_name("  мечта ")).id == sample_clinic.id
        assert await repo.get_by_name("Альфа") is None


class TestAppSettingRepository:

    @pytest.mark.asyncio
    async def test_set_and_get(self, db_session):
        repo = AppSettingRepository(db_session)

        assert await repo.get_value("missing") is None

        await repo.set_value("key", "one")
        await repo.set_value("key", "two")

        assert await repo.get_value("key") == "two"
