"""
Data Transfer Objects (DTOs) for data validation.

This package contains Pydantic models for validating input data.
"""

from core.dto.reports import (
    IncomingReportDTO,
    MatchResult,
    parse_visit_date,
    parse_treatment_month,
)
from core.dto.commission import (
    CommissionTier,
    CommissionTierTable,
)
from core.dto.payouts import (
    PayoutCalculationInput,
    PayoutCalculationResult,
    WithdrawalTaxBreakdown,
    PayoutEligibility,
)

__all__ = [
    'IncomingReportDTO',
    'MatchResult',
    'parse_visit_date',
    'parse_treatment_month',
    'CommissionTier',
    'CommissionTierTable',
    'PayoutCalculationInput',
    'PayoutCalculationResult',
    'WithdrawalTaxBreakdown',
    'PayoutEligibility',
]
