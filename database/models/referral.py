"""Referral model for patients sent by agents to clinics."""
from datetime import datetime
from typing import TYPE_CHECKING
from enum import Enum

from sqlalchemy import BigInteger, String, Integer, ForeignKey, TIMESTAMP, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from database.base import Base, BigIntPK

if TYPE_CHECKING:
    from database.models.agent import Agent


class ReferralStatus(str, Enum):
    """Referral lifecycle status, in lifecycle order."""
    NEW = "new"  # Created by agent, nobody has looked at it yet
    IN_PROGRESS = "in_progress"  # Taken by a coordinator
    CONTACTED = "contacted"  # Patient reached
    SCHEDULED = "scheduled"  # Visit booked
    VISITED = "visited"  # Visit confirmed by clinic report, amounts fixed
    DUPLICATE = "duplicate"  # Same patient already referred
    NO_ANSWER = "no_answer"  # Patient could not be reached
    CANCELLED = "cancelled"  # Cancelled


# Statuses a clinic report may still be matched against
OPEN_STATUSES = (
    ReferralStatus.NEW,
    ReferralStatus.IN_PROGRESS,
    ReferralStatus.CONTACTED,
    ReferralStatus.SCHEDULED,
    ReferralStatus.VISITED,
)


class Referral(Base):
    """Patient referral model."""

    __tablename__ = "referrals"
    __table_args__ = (
        Index("ix_referrals_agent_month", "agent_id", "treatment_month"),
    )

    # Primary key
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    agent_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("agents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Agent who referred the patient"
    )

    # Free text as entered by the agent
    patient_full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    clinic: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ReferralStatus.NEW.value,
        server_default=ReferralStatus.NEW.value,
        index=True
    )

    # Amounts in kopecks, null until a visit is approved
    treatment_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    commission_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    treatment_month: Mapped[str | None] = mapped_column(
        String(7),
        nullable=True,
        comment="YYYY-MM the visit is attributed to"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    agent: Mapped["Agent"] = relationship("Agent", back_populates="referrals")

    def __repr__(self) -> str:
        return (
            f"<Referral(id={self.id}, agent={self.agent_id}, "
            f"patient='{self.patient_full_name}', status='{self.status}')>"
        )
