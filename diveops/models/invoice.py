"""
Invoice models - invoices and their line items.
Line items may point at the booking element they bill (dive, equipment
rental, excursion) or be entered manually.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, List, TYPE_CHECKING

from sqlalchemy import BigInteger, String, Date, Integer, DECIMAL, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from diveops.models.base import Base, BigIntPK, DiveCenterBase, TimestampMixin

if TYPE_CHECKING:
    from diveops.models.agent import Agent


class Invoice(DiveCenterBase):
    """An invoice issued by a dive center, optionally attributed to an agent."""

    __tablename__ = "invoices"

    # References
    agent_id: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        ForeignKey("agents.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    booking_id: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        ForeignKey("bookings.id", ondelete="SET NULL"),
        nullable=True,
    )

    invoice_no: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Amounts
    subtotal: Mapped[Decimal] = mapped_column(DECIMAL(12, 2), default=Decimal("0.00"))
    discount: Mapped[Decimal] = mapped_column(DECIMAL(12, 2), default=Decimal("0.00"))
    service_charge: Mapped[Decimal] = mapped_column(DECIMAL(12, 2), default=Decimal("0.00"))
    tax: Mapped[Decimal] = mapped_column(DECIMAL(12, 2), default=Decimal("0.00"))
    total: Mapped[Decimal] = mapped_column(DECIMAL(12, 2), default=Decimal("0.00"))
    currency: Mapped[str] = mapped_column(String(3), default="USD")

    status: Mapped[str] = mapped_column(String(20), default="Draft")  # Draft, Partially Paid, Paid, Refunded
    invoice_type: Mapped[str] = mapped_column(String(20), default="Full")  # Advance, Final, Full

    # Relationships
    agent: Mapped[Optional["Agent"]] = relationship("Agent")
    items: Mapped[List["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, no='{self.invoice_no}', total={self.total})>"


class InvoiceItem(Base, TimestampMixin):
    """A line of an invoice."""

    __tablename__ = "invoice_items"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    invoice_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Booking references (all null = manual line)
    booking_dive_id: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        ForeignKey("booking_dives.id", ondelete="SET NULL"),
        nullable=True,
    )
    booking_equipment_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True, index=True)
    booking_excursion_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    unit_price: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(10, 2), nullable=True)
    total: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(10, 2), nullable=True)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")

    def __repr__(self) -> str:
        return f"<InvoiceItem(id={self.id}, description='{self.description}', total={self.total})>"

    @property
    def is_equipment(self) -> bool:
        return self.booking_equipment_id is not None

    @property
    def is_manual(self) -> bool:
        return (
            self.booking_dive_id is None
            and self.booking_equipment_id is None
            and self.booking_excursion_id is None
        )
