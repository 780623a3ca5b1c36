"""Clinic report ingestion: dedup and matching against open referrals."""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.dto.reports import IncomingReportDTO, MatchResult
from database.repositories import ClinicRepository, ReferralRepository
from services.referral_matcher import ReferralMatcher
from services.report_dedup import DedupStore

logger = logging.getLogger(__name__)


class ReportIngestionService:
    """Match incoming clinic reports to referrals for admin review."""

    def __init__(
        self,
        session: AsyncSession,
        dedup_store: DedupStore,
        matcher: Optional[ReferralMatcher] = None,
        dedup_ttl_seconds: Optional[int] = None,
    ):
        self.session = session
        self.dedup_store = dedup_store
        self.matcher = matcher or ReferralMatcher()
        self.dedup_ttl_seconds = dedup_ttl_seconds or settings.report_dedup_ttl_seconds
        self.referral_repo = ReferralRepository(session)
        self.clinic_repo = ClinicRepository(session)

    async def match_report(self, report: IncomingReportDTO) -> Optional[MatchResult]:
        """
        Match one report.

        Returns:
            MatchResult (possibly with confidence 0), or None if a report
            with the same message id was already processed
        """
        if report.message_id:
            is_new = await self.dedup_store.mark_if_new(report.message_id, self.dedup_ttl_seconds)
            if not is_new:
                logger.info(f"Skipping duplicate report: {report.message_id}")
                return None

        try:
            candidates = await self.referral_repo.get_open_referrals()
            clinics = await self.clinic_repo.get_all()

            result = self.matcher.match(
                patient_name=report.patient_name,
                clinic_name=report.clinic_name,
                visit_date=report.visit_date,
                candidate_referrals=candidates,
                candidate_clinics=clinics,
            )
        except Exception:
            # Unprocessed report must stay retryable
            if report.message_id:
                await self.dedup_store.forget(report.message_id)
            raise

        logger.info(
            f"Report {report.message_id or '-'}: referral={result.referral_id}, "
            f"clinic={result.clinic_id}, confidence={result.confidence}",
            extra={
                "referral_id": result.referral_id,
                "clinic_id": result.clinic_id,
                "confidence": result.confidence,
            }
        )
        return result
