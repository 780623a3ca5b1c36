"""Payout calculation DTOs."""
from typing import Optional

from pydantic import BaseModel, Field


class PayoutCalculationInput(BaseModel):
    """Input for computing an agent's payout for one treatment."""

    treatment_amount: int = Field(..., description="Treatment amount in kopecks")
    is_self_employed: bool = Field(..., description="Payee pays own simplified tax")
    commission_rate: float = Field(..., description="Commission percent")


class PayoutCalculationResult(BaseModel):
    """Payout breakdown, all amounts in kopecks."""

    gross_amount: int
    net_amount: int
    commission_rate: float
    tax_amount: int
    social_contributions: int
    details: str = Field(..., description="Human-readable breakdown, informational only")


class WithdrawalTaxBreakdown(BaseModel):
    """Tax breakdown for a withdrawal request, all amounts in kopecks."""

    gross_amount: int = Field(..., description="Amount debited from the agent balance")
    net_amount: int = Field(..., description="Amount actually paid out")
    tax_amount: int
    social_contributions: int
    npd_estimate: int = Field(0, description="Informational 6% NPD estimate for self-employed")
    is_self_employed: bool


class PayoutEligibility(BaseModel):
    """Whether the agent may request a withdrawal."""

    can_withdraw: bool
    reason: Optional[str] = None
