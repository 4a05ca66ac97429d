"""
Agent models - referral partners, their commercial terms and commissions.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List, TYPE_CHECKING

from sqlalchemy import (
    BigInteger, String, Date, DateTime, Boolean, DECIMAL, Text, ForeignKey,
    Enum as SQLEnum, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from diveops.models.base import Base, BigIntPK, DiveCenterBase, TimestampMixin

if TYPE_CHECKING:
    from diveops.models.invoice import Invoice


COMMISSION_TYPES = ("Percentage", "Fixed Amount")
COMMISSION_STATUSES = ("Pending", "Paid", "Cancelled")


class Agent(DiveCenterBase):
    """A travel agent, resort or freelancer referring customers."""

    __tablename__ = "agents"

    agent_name: Mapped[str] = mapped_column(String(255), nullable=False)
    agent_type: Mapped[str] = mapped_column(
        SQLEnum("Travel Agent", "Resort / Guest House", "Tour Operator", "Freelancer", name="agent_type_enum"),
        default="Travel Agent",
    )
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(
        SQLEnum("Active", "Suspended", name="agent_status_enum"),
        default="Active",
        index=True,
    )
    brand_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    commercial_terms: Mapped[Optional["AgentCommercialTerms"]] = relationship(
        "AgentCommercialTerms",
        back_populates="agent",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    contract: Mapped[Optional["AgentContract"]] = relationship(
        "AgentContract",
        back_populates="agent",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    commissions: Mapped[List["AgentCommission"]] = relationship(
        "AgentCommission",
        back_populates="agent",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Agent(id={self.id}, name='{self.agent_name}')>"


class AgentCommercialTerms(Base, TimestampMixin):
    """Commission configuration for an agent."""

    __tablename__ = "agent_commercial_terms"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    agent_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("agents.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    commission_type: Mapped[str] = mapped_column(
        SQLEnum(*COMMISSION_TYPES, name="commission_type_enum"),
        default="Percentage",
    )
    commission_rate: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=Decimal("0.00"))
    vat_applicable: Mapped[bool] = mapped_column(Boolean, default=False)
    credit_limit: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(12, 2), nullable=True)

    # Line item filters for the commissionable amount
    exclude_equipment_from_commission: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="0"
    )
    include_manual_items_in_commission: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="1"
    )

    agent: Mapped["Agent"] = relationship("Agent", back_populates="commercial_terms")

    def __repr__(self) -> str:
        return f"<AgentCommercialTerms(agent={self.agent_id}, {self.commission_type} {self.commission_rate})>"


class AgentContract(Base, TimestampMixin):
    """Contract dates, including the window in which invoices earn commission."""

    __tablename__ = "agent_contracts"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    agent_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("agents.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    contract_start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    contract_end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    commission_valid_from: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    commission_valid_until: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    agent: Mapped["Agent"] = relationship("Agent", back_populates="contract")


class AgentCommission(Base, TimestampMixin):
    """
    Commission earned by an agent on one invoice.
    Lifecycle: Pending -> Paid, Pending/Paid -> Cancelled -> Pending (recalculation).
    """

    __tablename__ = "agent_commissions"
    __table_args__ = (
        UniqueConstraint("agent_id", "invoice_id", name="uq_agent_commission_agent_invoice"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    agent_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("agents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    invoice_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    commissionable_amount: Mapped[Decimal] = mapped_column(DECIMAL(12, 2), default=Decimal("0.00"))
    commission_amount: Mapped[Decimal] = mapped_column(DECIMAL(12, 2), default=Decimal("0.00"))
    status: Mapped[str] = mapped_column(
        SQLEnum(*COMMISSION_STATUSES, name="commission_status_enum"),
        default="Pending",
        index=True,
    )
    calculated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    agent: Mapped["Agent"] = relationship("Agent", back_populates="commissions")
    invoice: Mapped["Invoice"] = relationship("Invoice")

    def __repr__(self) -> str:
        return (
            f"<AgentCommission(id={self.id}, agent={self.agent_id}, invoice={self.invoice_id}, "
            f"amount={self.commission_amount}, status='{self.status}')>"
        )
