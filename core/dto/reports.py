"""Clinic report DTOs."""
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


_RU_DATE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$")


def parse_visit_date(value: Any) -> Optional[date]:
    """
    Parse a visit date as it comes from a clinic report.

    Accepts date/datetime objects, "DD.MM.YYYY" and ISO strings.
    Anything else yields None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    ru_match = _RU_DATE.match(text)
    try:
        if ru_match:
            day, month, year = (int(g) for g in ru_match.groups())
            return date(year, month, day)
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


class IncomingReportDTO(BaseModel):
    """A single patient visit extracted from a clinic report. Never persisted."""

    patient_name: Optional[str] = Field(None, description="Patient full name as written by the clinic")
    clinic_name: Optional[str] = Field(None, description="Clinic name as written by the clinic")
    visit_date: Optional[date] = Field(None, description="Visit date")
    treatment_amount: int = Field(0, ge=0, description="Treatment amount in kopecks")
    message_id: Optional[str] = Field(None, description="Source message id used for dedup")

    @field_validator('visit_date', mode='before')
    @classmethod
    def validate_visit_date(cls, v: Any) -> Optional[date]:
        """Unparsable dates from untrusted reports become None."""
        return parse_visit_date(v)


@dataclass
class MatchResult:
    """Outcome of matching a report against open referrals."""
    referral_id: Optional[int] = None
    clinic_id: Optional[int] = None
    confidence: int = 0

    @property
    def matched(self) -> bool:
        return self.referral_id is not None and self.confidence > 0


_MONTH = re.compile(r"^(\d{4})-(\d{2})$")


def parse_treatment_month(value: Any) -> Optional[str]:
    """
    Turn a visit date into a "YYYY-MM" treatment month.

    A ready "YYYY-MM" token is passed through. Returns None when the value
    cannot be understood.
    """
    if isinstance(value, str):
        month_match = _MONTH.match(value.strip())
        if month_match and 1 <= int(month_match.group(2)) <= 12:
            return value.strip()

    visit = parse_visit_date(value)
    if visit is None:
        return None
    return f"{visit.year:04d}-{visit.month:02d}"
