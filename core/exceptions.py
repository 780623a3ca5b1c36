"""
Custom application exceptions.

These exceptions represent business rule violations raised at the boundary
of the referral core. Matching and tier resolution never raise: absence of
data is reported as a null/zero result instead.
"""
from typing import Optional


class ReferralCoreError(Exception):
    """Base exception for all application errors."""

    message: str = "Произошла ошибка"

    def __init__(self, message: Optional[str] = None, **kwargs):
        self.message = message or self.message
        self.details = kwargs
        super().__init__(self.message)


# ============== Lookups ==============

class NotFoundError(ReferralCoreError):
    """Entity not found."""
    message = "Объект не найден"


class ReferralNotFoundError(NotFoundError):
    """Referral not found."""
    message = "Рекомендация не найдена"

    def __init__(self, referral_id: Optional[int] = None):
        self.referral_id = referral_id
        super().__init__(
            f"Рекомендация #{referral_id} не найдена" if referral_id else self.message
        )


class AgentNotFoundError(NotFoundError):
    """Agent not found."""
    message = "Агент не найден"

    def __init__(self, agent_id: Optional[int] = None):
        self.agent_id = agent_id
        super().__init__(f"Агент #{agent_id} не найден" if agent_id else self.message)


# ============== Validation ==============

class ValidationError(ReferralCoreError):
    """Data validation error."""
    message = "Ошибка валидации"

    def __init__(self, field: str, error: str):
        self.field = field
        self.error = error
        super().__init__(f"Ошибка в поле '{field}': {error}")


class NegativeAmountError(ValidationError):
    """Treatment or commission amount below zero."""

    def __init__(self, field: str, value: int):
        self.value = value
        super().__init__(field, f"Сумма не может быть отрицательной: {value}")


class TierConfigError(ValidationError):
    """Commission tier table failed validation."""

    def __init__(self, error: str):
        super().__init__("agentCommissionTiers", error)


# ============== Earnings ==============

class EarningsError(ReferralCoreError):
    """Base earnings error."""
    message = "Ошибка начисления"


class NegativeEarningsError(EarningsError):
    """Delta would drive the agent's total earnings below zero."""
    message = "Баланс агента не может стать отрицательным"

    def __init__(self, agent_id: int, delta: int):
        self.agent_id = agent_id
        self.delta = delta
        super().__init__(
            f"Изменение {delta} сделает баланс агента #{agent_id} отрицательным"
        )
