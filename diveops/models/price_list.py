"""
Price list models - sellable services and their dive-count pricing.

Pricing models:
- SINGLE: one price for a fixed dive count (min_dives == max_dives)
- RANGE: one price for any dive count within [min_dives, max_dives]
- TIERED: price computed from PriceListItemTier rows
"""

from datetime import date
from decimal import Decimal
from typing import Optional, List, TYPE_CHECKING

from sqlalchemy import (
    BigInteger, String, Date, Integer, Boolean, DECIMAL, Text, ForeignKey,
    CheckConstraint, Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from diveops.models.base import Base, BigIntPK, DiveCenterBase, TimestampMixin

if TYPE_CHECKING:
    from diveops.models.dive_center import DiveCenter


PRICING_MODELS = ("SINGLE", "RANGE", "TIERED")
CUSTOMER_TYPES = ("ALL", "MEMBER", "NON_MEMBER", "GROUP", "CORPORATE")


class PriceList(DiveCenterBase):
    """A dive center's price list."""

    __tablename__ = "price_lists"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    dive_center: Mapped["DiveCenter"] = relationship("DiveCenter")
    items: Mapped[List["PriceListItem"]] = relationship(
        "PriceListItem",
        back_populates="price_list",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<PriceList(id={self.id}, name='{self.name}')>"


class PriceListItem(Base, TimestampMixin):
    """
    A sellable service row.
    Immutable once referenced by historical invoices (convention, not enforced).
    """

    __tablename__ = "price_list_items"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    price_list_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("price_lists.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Identity
    service_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Pricing
    price: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(10, 2), nullable=True)
    base_price: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(10, 2), nullable=True)
    pricing_model: Mapped[str] = mapped_column(
        SQLEnum(*PRICING_MODELS, name="pricing_model_enum"),
        default="SINGLE",
    )
    min_dives: Mapped[int] = mapped_column(Integer, default=1)
    max_dives: Mapped[int] = mapped_column(Integer, default=1)
    priority: Mapped[int] = mapped_column(Integer, default=0, index=True)

    # Validity window (inclusive, open when null)
    valid_from: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    valid_until: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    applicable_to: Mapped[str] = mapped_column(
        SQLEnum(*CUSTOMER_TYPES, name="applicable_to_enum"),
        default="ALL",
    )

    unit: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    tax_percentage: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(5, 2), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    # Relationships
    price_list: Mapped["PriceList"] = relationship("PriceList", back_populates="items")
    price_tiers: Mapped[List["PriceListItemTier"]] = relationship(
        "PriceListItemTier",
        back_populates="item",
        cascade="all, delete-orphan",
        order_by="PriceListItemTier.from_dives",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<PriceListItem(id={self.id}, name='{self.name}', model={self.pricing_model}, "
            f"dives={self.min_dives}-{self.max_dives})>"
        )

    def get_effective_price(self) -> Optional[Decimal]:
        """base_price when set, otherwise price."""
        if self.base_price is not None:
            return self.base_price
        return self.price

    def is_valid_for(self, check_date: date) -> bool:
        if self.valid_from and check_date < self.valid_from:
            return False
        if self.valid_until and check_date > self.valid_until:
            return False
        return True

    def is_applicable_to(self, customer_type: Optional[str]) -> bool:
        if not customer_type:
            return True
        return self.applicable_to in ("ALL", customer_type)

    def covers_dive_count(self, dive_count: int) -> bool:
        return self.min_dives <= dive_count <= self.max_dives


class PriceListItemTier(Base, TimestampMixin):
    """
    A tier of a TIERED item: dives [from_dives, to_dives] priced per dive,
    or at total_price when the whole tier is consumed.
    """

    __tablename__ = "price_list_item_tiers"
    __table_args__ = (
        CheckConstraint("from_dives <= to_dives", name="ck_tier_dive_range"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    item_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("price_list_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    tier_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    from_dives: Mapped[int] = mapped_column(Integer, nullable=False)
    to_dives: Mapped[int] = mapped_column(Integer, nullable=False)
    price_per_dive: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=Decimal("0.00"))
    total_price: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(10, 2), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    item: Mapped["PriceListItem"] = relationship("PriceListItem", back_populates="price_tiers")

    def __repr__(self) -> str:
        return f"<PriceListItemTier(id={self.id}, dives={self.from_dives}-{self.to_dives})>"

    @property
    def width(self) -> int:
        return self.to_dives - self.from_dives + 1
