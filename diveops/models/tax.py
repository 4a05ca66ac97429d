"""
Tax model - named percentages (T-GST, Service Charge).
"""

from decimal import Decimal

from sqlalchemy import String, DECIMAL
from sqlalchemy.orm import Mapped, mapped_column

from diveops.models.base import Base, BigIntPK, TimestampMixin


class Tax(Base, TimestampMixin):
    """A tax or charge percentage shared by every dive center."""

    __tablename__ = "taxes"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    percentage: Mapped[Decimal] = mapped_column(DECIMAL(5, 2), default=Decimal("0.00"))

    def __repr__(self) -> str:
        return f"<Tax(id={self.id}, name='{self.name}', percentage={self.percentage})>"
