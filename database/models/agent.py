"""Agent model - represents a referring agent."""
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, String, Integer, TIMESTAMP, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from database.base import Base, BigIntPK

if TYPE_CHECKING:
    from database.models.referral import Referral


class SelfEmployedStatus(str, Enum):
    """Employment-tax status of an agent."""
    YES = "yes"  # Self-employed, pays simplified tax on their own
    NO = "no"  # Individual, platform withholds tax and contributions
    UNKNOWN = "unknown"  # Not declared yet, treated as NO for payouts


class Agent(Base):
    """Agent (referrer) model."""

    __tablename__ = "agents"
    __table_args__ = (
        CheckConstraint("total_earnings >= 0", name="ck_agents_total_earnings_non_negative"),
    )

    # Primary key
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    # Personal info
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    telegram_id: Mapped[int | None] = mapped_column(BigInteger, unique=True, nullable=True, index=True)

    # Earnings (minor currency units). Only ever changed by delta.
    total_earnings: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        server_default="0",
        comment="Running aggregate of commissions in kopecks"
    )
    bonus_points: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0"
    )
    is_self_employed: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=SelfEmployedStatus.UNKNOWN.value,
        server_default=SelfEmployedStatus.UNKNOWN.value,
        comment="yes/no/unknown"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    # Relationships
    referrals: Mapped[list["Referral"]] = relationship(
        "Referral",
        back_populates="agent",
        cascade="all, delete-orphan"
    )

    @property
    def self_employed(self) -> bool:
        """Whether payouts are made gross (no withholding)."""
        return self.is_self_employed == SelfEmployedStatus.YES.value

    def __repr__(self) -> str:
        return f"<Agent(id={self.id}, name='{self.full_name}', total_earnings={self.total_earnings})>"
