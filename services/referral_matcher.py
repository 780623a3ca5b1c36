"""Referral matcher: binds a clinic visit report to an open referral."""
import logging
from datetime import date, datetime
from typing import Iterable, Optional, Sequence, Tuple

from core.dto.reports import MatchResult
from database.models import Clinic, Referral
from services.name_matching import clinic_similarity, name_similarity

logger = logging.getLogger(__name__)


def find_clinic_by_name(
    clinic_name: Optional[str],
    clinics: Iterable[Clinic],
    min_score: int = 50,
) -> Tuple[Optional[int], int]:
    """
    Pick the known clinic closest to a free-text clinic name.

    Returns:
        (clinic_id, score); clinic_id is None when the best score is below
        min_score or there is nothing to compare
    """
    if not clinic_name:
        return None, 0

    best_id: Optional[int] = None
    best_score = 0
    for clinic in clinics:
        score = clinic_similarity(clinic_name, clinic.name)
        if score > best_score:
            best_score = score
            best_id = clinic.id

    if best_score < min_score:
        return None, best_score
    return best_id, best_score


class ReferralMatcher:
    """
    Match a patient name from a clinic report to the best referral.

    The candidate pool is trusted as given: the caller is expected to pass
    referrals in open statuses only. The matcher is read-only and never
    raises; weak or missing data yields confidence 0 and the decision is
    left to the admin reviewing the report.
    """

    CLINIC_BINDING_MIN_SCORE = 50  # below this the clinic is left unbound
    CLINIC_BOOST_MIN_SCORE = 60  # referral clinic must beat this to get the boost
    CLINIC_BOOST = 10
    DATE_WINDOW_DAYS = 90  # visit within this many days after referral
    DATE_BOOST = 5
    DATE_PENALTY = 20  # visit dated before the referral was created

    def match(
        self,
        patient_name: Optional[str],
        clinic_name: Optional[str] = None,
        visit_date: Optional[date] = None,
        candidate_referrals: Sequence[Referral] = (),
        candidate_clinics: Sequence[Clinic] = (),
    ) -> MatchResult:
        """
        Find the referral that most likely describes this visit.

        Args:
            patient_name: Patient name from the report
            clinic_name: Clinic name from the report, if any
            visit_date: Visit date from the report, if any
            candidate_referrals: Open referrals, newest first
            candidate_clinics: Known clinics

        Returns:
            MatchResult with best referral id, bound clinic id and confidence
        """
        result = MatchResult()
        if not patient_name or not patient_name.strip():
            return result

        result.clinic_id, _ = find_clinic_by_name(
            clinic_name, candidate_clinics, self.CLINIC_BINDING_MIN_SCORE
        )

        best_score = 0
        best_referral_id: Optional[int] = None
        for referral in candidate_referrals:
            score = self.score_referral(patient_name, clinic_name, visit_date, referral)
            if score > best_score:
                best_score = score
                best_referral_id = referral.id

        result.referral_id = best_referral_id
        result.confidence = best_score

        logger.debug(
            f"Matched '{patient_name}' -> referral {best_referral_id} "
            f"(confidence {best_score}, clinic {result.clinic_id})",
            extra={"referral_id": best_referral_id, "confidence": best_score}
        )
        return result

    def score_referral(
        self,
        patient_name: str,
        clinic_name: Optional[str],
        visit_date: Optional[date],
        referral: Referral,
    ) -> int:
        """Name similarity adjusted by clinic and date consistency."""
        score = name_similarity(patient_name, referral.patient_full_name or "")

        if clinic_name and referral.clinic:
            if clinic_similarity(clinic_name, referral.clinic) > self.CLINIC_BOOST_MIN_SCORE:
                score = min(100, score + self.CLINIC_BOOST)

        days = self._days_since_referral(visit_date, referral.created_at)
        if days is not None:
            if 0 <= days <= self.DATE_WINDOW_DAYS:
                score = min(100, score + self.DATE_BOOST)
            elif days < 0:
                score = max(0, score - self.DATE_PENALTY)

        return score

    @staticmethod
    def _days_since_referral(
        visit_date: Optional[date],
        created_at: Optional[datetime],
    ) -> Optional[int]:
        """Calendar days from referral creation to visit."""
        if visit_date is None or created_at is None:
            return None
        if isinstance(visit_date, datetime):
            visit_date = visit_date.date()
        created = created_at.date() if isinstance(created_at, datetime) else created_at
        return (visit_date - created).days
