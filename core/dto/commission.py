"""Commission tier configuration DTOs."""
import json
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


TIER_CONFIG_VERSION = 1


class CommissionTier(BaseModel):
    """Commission rate applied from a monthly revenue threshold upwards."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    min_monthly_revenue: int = Field(..., ge=0, alias="minMonthlyRevenue", description="Threshold in kopecks")
    commission_rate: float = Field(..., ge=0, le=100, alias="commissionRate", description="Percent")


class CommissionTierTable(BaseModel):
    """Validated, versioned global tier table."""

    model_config = ConfigDict(frozen=True)

    version: int = Field(TIER_CONFIG_VERSION, ge=1)
    tiers: List[CommissionTier] = Field(default_factory=list)

    @field_validator('tiers')
    @classmethod
    def validate_thresholds(cls, v: List[CommissionTier]) -> List[CommissionTier]:
        """Thresholds must be pairwise distinct; tiers kept in ascending order."""
        thresholds = [t.min_monthly_revenue for t in v]
        if len(set(thresholds)) != len(thresholds):
            raise ValueError("Дублирующиеся пороги недопустимы")
        return sorted(v, key=lambda t: t.min_monthly_revenue)

    @classmethod
    def from_json(cls, raw: str) -> "CommissionTierTable":
        """
        Parse stored JSON.

        Both the versioned object form and the legacy bare list of tiers
        are accepted.
        """
        data: Any = json.loads(raw)
        if isinstance(data, list):
            data = {"version": TIER_CONFIG_VERSION, "tiers": data}
        return cls.model_validate(data)

    def to_json(self) -> str:
        return json.dumps(
            {
                "version": self.version,
                "tiers": [t.model_dump(by_alias=True) for t in self.tiers],
            },
            ensure_ascii=False,
        )

    @property
    def is_empty(self) -> bool:
        return not self.tiers
