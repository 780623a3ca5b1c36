"""
Payout calculation for agent commissions.

All amounts are integer kopecks. Inputs are validated by the caller:
a negative treatment amount or an out-of-range rate is a caller error and
is not handled here.
"""
import logging
import math
from decimal import Decimal

from core.config import settings
from core.dto.payouts import (
    PayoutCalculationInput,
    PayoutCalculationResult,
    PayoutEligibility,
    WithdrawalTaxBreakdown,
)

logger = logging.getLogger(__name__)

INCOME_TAX_RATE = Decimal("0.13")  # НДФЛ, withheld for individuals
SOCIAL_CONTRIBUTIONS_RATE = Decimal("0.30")  # paid on top for individuals
NPD_RATE = Decimal("0.06")  # self-employed pay it themselves, shown for information


def _rub(kopecks: int) -> str:
    """Format kopecks as rubles: 123456 -> '1 234,56'."""
    rubles, kop = divmod(abs(kopecks), 100)
    sign = "-" if kopecks < 0 else ""
    return f"{sign}{rubles:,}".replace(",", " ") + f",{kop:02d}"


def _floor_share(amount: int, share: Decimal) -> int:
    """Whole kopecks of amount × share, rounded down."""
    return math.floor(Decimal(amount) * share)


def _withholding(gross_amount: int) -> tuple[int, int]:
    """Income tax and social contributions for an individual."""
    tax = _floor_share(gross_amount, INCOME_TAX_RATE)
    social = _floor_share(gross_amount, SOCIAL_CONTRIBUTIONS_RATE)
    return tax, social


def calculate_payout(data: PayoutCalculationInput) -> PayoutCalculationResult:
    """
    Calculate agent payout for a treatment.

    Self-employed agents receive the gross commission and pay their own
    simplified tax. For everyone else income tax and social contributions
    are withheld.

    Example:
        100000 kopecks × 10% = 10000 gross;
        individual: tax 1300, social 3000, net 5700
    """
    rate = data.commission_rate
    gross = _floor_share(data.treatment_amount, Decimal(str(rate)) / 100)

    if data.is_self_employed:
        npd = _floor_share(gross, NPD_RATE)
        return PayoutCalculationResult(
            gross_amount=gross,
            net_amount=gross,
            commission_rate=rate,
            tax_amount=0,
            social_contributions=0,
            details=(
                f"Самозанятый: {rate:g}% от {_rub(data.treatment_amount)} ₽ = {_rub(gross)} ₽. "
                f"Налог 6% НПД ({_rub(npd)} ₽) агент платит самостоятельно."
            ),
        )

    tax, social = _withholding(gross)
    net = gross - tax - social
    return PayoutCalculationResult(
        gross_amount=gross,
        net_amount=net,
        commission_rate=rate,
        tax_amount=tax,
        social_contributions=social,
        details=(
            f"Физлицо: {rate:g}% от {_rub(data.treatment_amount)} ₽ = {_rub(gross)} ₽. "
            f"Минус НДФЛ 13% ({_rub(tax)} ₽) и соц. отчисления 30% ({_rub(social)} ₽) "
            f"= {_rub(net)} ₽ к выплате."
        ),
    )


def calculate_withdrawal_tax(gross_amount: int, is_self_employed: bool) -> WithdrawalTaxBreakdown:
    """
    Tax breakdown for a withdrawal request.

    gross_amount is the requested amount, i.e. what is debited from the
    agent's balance.
    """
    if is_self_employed:
        return WithdrawalTaxBreakdown(
            gross_amount=gross_amount,
            net_amount=gross_amount,
            tax_amount=0,
            social_contributions=0,
            npd_estimate=_floor_share(gross_amount, NPD_RATE),
            is_self_employed=True,
        )

    tax, social = _withholding(gross_amount)
    return WithdrawalTaxBreakdown(
        gross_amount=gross_amount,
        net_amount=gross_amount - tax - social,
        tax_amount=tax,
        social_contributions=social,
        npd_estimate=0,
        is_self_employed=False,
    )


def can_request_payout(
    total_referrals: int,
    bonus_points: int,
    bonus_unlock_threshold: int | None = None,
) -> PayoutEligibility:
    """Bonus points can only be withdrawn after enough own referrals."""
    threshold = settings.bonus_unlock_threshold if bonus_unlock_threshold is None else bonus_unlock_threshold

    if bonus_points > 0 and total_referrals < threshold:
        return PayoutEligibility(
            can_withdraw=False,
            reason=(
                f"Для вывода бонусных баллов необходимо минимум {threshold} "
                f"собственных рекомендаций. У вас: {total_referrals}"
            ),
        )

    return PayoutEligibility(can_withdraw=True)
