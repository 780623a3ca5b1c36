"""Tests for clinic report ingestion."""
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from core.dto.reports import IncomingReportDTO
from database.models import ReferralStatus
from database.repositories import ReferralRepository
from services.report_dedup import InMemoryDedupStore
from services.report_ingestion import ReportIngestionService


@pytest.fixture
def dedup_store():
    return InMemoryDedupStore()


@pytest.mark.asyncio
async def test_match_report(db_session, sample_referral, sample_clinic, dedup_store):
    service = ReportIngestionService(db_session, dedup_store)
    report = IncomingReportDTO(
        patient_name="Иванов Иван Иванович",
        clinic_name="Клиника «Мечта»",
        visit_date="10.03.2024",
        treatment_amount=100000,
        message_id="chat-1:42",
    )

    result = await service.match_report(report)

    assert result.referral_id == sample_referral.id
    assert result.clinic_id == sample_clinic.id
    assert result.confidence == 100
    assert result.matched is True


@pytest.mark.asyncio
async def test_duplicate_message_skipped(db_session, sample_referral, dedup_store):
    service = ReportIngestionService(db_session, dedup_store)
    report = IncomingReportDTO(patient_name="Иванов Иван Иванович", message_id="chat-1:42")

    assert await service.match_report(report) is not None
    assert await service.match_report(report) is None


@pytest.mark.asyncio
async def test_reports_without_message_id_never_deduplicated(db_session, sample_referral, dedup_store):
    service = ReportIngestionService(db_session, dedup_store)
    report = IncomingReportDTO(patient_name="Иванов Иван Иванович")

    assert await service.match_report(report) is not None
    assert await service.match_report(report) is not None
    assert len(dedup_store) == 0


@pytest.mark.asyncio
async def test_cancelled_referrals_not_matched(db_session, sample_agent, sample_referral, dedup_store):
    repo = ReferralRepository(db_session)
    cancelled = await repo.create(
        agent_id=sample_agent.id,
        patient_full_name="Иванов Иван Иванович",
        status=ReferralStatus.CANCELLED,
        created_at=datetime(2024, 3, 5, tzinfo=timezone.utc),
    )
    await db_session.commit()

    service = ReportIngestionService(db_session, dedup_store)
    result = await service.match_report(
        IncomingReportDTO(patient_name="Иванов Иван Иванович", visit_date=date(2024, 3, 10))
    )

    assert result.referral_id == sample_referral.id
    assert result.referral_id != cancelled.id


@pytest.mark.asyncio
async def test_unknown_patient(db_session, sample_referral, dedup_store):
    service = ReportIngestionService(db_session, dedup_store)
    result = await service.match_report(IncomingReportDTO(patient_name="Петрова Мария"))

    assert result.confidence < 60


@pytest.mark.asyncio
async def test_custom_ttl_passed_to_store(db_session, sample_referral):
    class RecordingStore(InMemoryDedupStore):
        def __init__(self):
            super().__init__()
            self.ttls = []

        async def mark_if_new(self, key, ttl_seconds):
            self.ttls.append(ttl_seconds)
            return await super().mark_if_new(key, ttl_seconds)

    store = RecordingStore()
    service = ReportIngestionService(db_session, store, dedup_ttl_seconds=60)
    await service.match_report(IncomingReportDTO(patient_name="Иванов Иван", message_id="m-1"))

    assert store.ttls == [60]


@pytest.mark.asyncio
async def test_failed_match_can_be_retried(db_session, sample_referral, dedup_store):
    service = ReportIngestionService(db_session, dedup_store)
    report = IncomingReportDTO(patient_name="Иванов Иван Иванович", message_id="m-1")

    with patch.object(service.clinic_repo, "get_all", AsyncMock(side_effect=RuntimeError("db down"))):
        with pytest.raises(RuntimeError):
            await service.match_report(report)

    assert len(dedup_store) == 0
    retry = await service.match_report(report)
    assert retry is not None
    assert retry.referral_id == sample_referral.id
