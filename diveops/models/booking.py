"""
Booking models.
Only the columns read by agent reporting are declared here.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import BigInteger, String, Date, DECIMAL, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from diveops.models.base import Base, BigIntPK, DiveCenterBase, TimestampMixin


class Booking(DiveCenterBase):
    """A customer booking, optionally referred by an agent."""

    __tablename__ = "bookings"

    customer_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    agent_id: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        ForeignKey("agents.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    booking_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="Pending")

    dives: Mapped[List["BookingDive"]] = relationship(
        "BookingDive",
        back_populates="booking",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, customer={self.customer_id}, agent={self.agent_id})>"


class BookingDive(Base, TimestampMixin):
    """A single dive within a booking."""

    __tablename__ = "booking_dives"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    dive_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    price: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(10, 2), nullable=True)

    booking: Mapped["Booking"] = relationship("Booking", back_populates="dives")
