"""Clinic model - partner clinic receiving referred patients."""
from sqlalchemy import String, Integer
from sqlalchemy.orm import Mapped, mapped_column

from database.base import Base, BigIntPK


class Clinic(Base):
    """Partner clinic model."""

    __tablename__ = "clinics"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    commission_rate: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Fallback commission percent when no global tier applies"
    )

    def __repr__(self) -> str:
        return f"<Clinic(id={self.id}, name='{self.name}', commission_rate={self.commission_rate})>"
