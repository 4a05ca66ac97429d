"""
Dive Pricing - resolves the price of a dive count against a price list.

Resolution rules:
- SINGLE / RANGE items match when the dive count is within [min_dives, max_dives]
- Ranking: priority desc, price asc, range width asc, most recent first
- TIERED items are only considered when no SINGLE / RANGE item matches;
  the cheapest computed tier total wins
- Overlap diagnostics report SINGLE / RANGE items whose ranges intersect
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from diveops.models.price_list import PriceList, PriceListItem

if TYPE_CHECKING:
    from diveops.models.price_list import PriceListItemTier

logger = logging.getLogger(__name__)

RANGE_MODELS = ("SINGLE", "RANGE")
TIERED_MODEL = "TIERED"


def _to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value))


def calculate_tiered_price(
    dive_count: int,
    tiers: Iterable["PriceListItemTier"],
) -> Optional[Decimal]:
    """
    Price dive_count dives across ordered tiers.

    A tier consumed in full uses its total_price when one is set; a partially
    consumed tier (or one without total_price) is billed per dive.

    Example:
        Tiers: 1-5 @ 50/dive (total 225), 6-10 @ 45/dive
        7 dives = 225 (tier 1 in full) + 2 x 45 = 315.00

    Returns None when no tier applies (e.g. dive_count below the first tier).
    """
    applicable = sorted(
        (t for t in tiers if getattr(t, "is_active", True) and t.from_dives <= dive_count),
        key=lambda t: t.from_dives,
    )
    if not applicable:
        return None

    total = Decimal("0.00")
    position = 1

    for tier in applicable:
        tier_start = max(position, tier.from_dives)
        tier_end = min(dive_count, tier.to_dives)
        if tier_start > tier_end:
            continue

        tier_dives = tier_end - tier_start + 1
        tier_width = tier.to_dives - tier.from_dives + 1

        if tier.total_price is not None and tier_dives == tier_width:
            total += _to_decimal(tier.total_price)
        else:
            total += _to_decimal(tier.price_per_dive) * tier_dives

        position = tier_end + 1
        if position > dive_count:
            break

    if total <= 0:
        return None
    return total.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


@dataclass
class PriceQuote:
    """The resolved offer for a dive count."""
    item: PriceListItem
    price: Decimal
    pricing_model: str

    def to_dict(self) -> Dict[str, Any]:
        item = self.item
        return {
            "item_id": item.id,
            "name": item.name,
            "service_type": item.service_type,
            "pricing_model": self.pricing_model,
            "min_dives": item.min_dives,
            "max_dives": item.max_dives,
            "priority": item.priority,
            "applicable_to": item.applicable_to,
            "price": self.price,
        }


@dataclass
class PricingOverlap:
    """Two items whose dive ranges intersect."""
    item1: PriceListItem
    item2: PriceListItem
    overlap_start: int
    overlap_end: int
    winner: PriceListItem

    def to_dict(self) -> Dict[str, Any]:
        def _summary(item: PriceListItem) -> dict:
            return {"id": item.id, "name": item.name, "priority": item.priority}

        return {
            "item1": _summary(self.item1),
            "item2": _summary(self.item2),
            "overlap_start": self.overlap_start,
            "overlap_end": self.overlap_end,
            "winner": self.winner.name,
            "winner_id": self.winner.id,
        }


class DivePricingEngine:
    """
    Pure resolution over already loaded items.

    Items only need the PriceListItem attributes, so the engine can run on
    ORM rows or any stand-in object.
    """

    @staticmethod
    def ranking_key(item: PriceListItem) -> Tuple:
        """Sort key: priority desc, price asc, range width asc, created_at desc."""
        price = item.get_effective_price()
        # Items without any price sort after priced ones
        price_key = (0, Decimal(str(price))) if price is not None else (1, Decimal("0"))
        width = (item.max_dives or 0) - (item.min_dives or 0)
        created_at = getattr(item, "created_at", None)
        created_key = -created_at.timestamp() if isinstance(created_at, datetime) else float("inf")
        return (-(item.priority or 0), price_key, width, created_key)

    @staticmethod
    def _is_eligible(
        item: PriceListItem,
        customer_type: Optional[str],
        on_date: Optional[date],
    ) -> bool:
        if not item.is_active:
            return False
        if on_date is not None and not item.is_valid_for(on_date):
            return False
        return item.is_applicable_to(customer_type)

    def find_range_matches(
        self,
        items: Sequence[PriceListItem],
        dive_count: int,
        customer_type: Optional[str] = None,
        on_date: Optional[date] = None,
    ) -> List[PriceListItem]:
        """Eligible SINGLE / RANGE items covering dive_count, best first."""
        matches = [
            item for item in items
            if item.pricing_model in RANGE_MODELS
            and self._is_eligible(item, customer_type, on_date)
            and item.covers_dive_count(dive_count)
        ]
        return sorted(matches, key=self.ranking_key)

    def price_tiered_items(
        self,
        items: Sequence[PriceListItem],
        dive_count: int,
        customer_type: Optional[str] = None,
        on_date: Optional[date] = None,
    ) -> List[Tuple[PriceListItem, Decimal]]:
        """Eligible TIERED items with their computed price (items without one are dropped)."""
        priced = []
        for item in items:
            if item.pricing_model != TIERED_MODEL:
                continue
            if not self._is_eligible(item, customer_type, on_date):
                continue
            price = calculate_tiered_price(dive_count, item.price_tiers or [])
            if price is not None:
                priced.append((item, price))
        return priced

    def calculate_item_price(self, item: PriceListItem, dive_count: int) -> Optional[Decimal]:
        """Tiered price for a TIERED item; None for any other model."""
        if item.pricing_model != TIERED_MODEL:
            return None
        return calculate_tiered_price(dive_count, item.price_tiers or [])

    def find_best_price(
        self,
        items: Sequence[PriceListItem],
        dive_count: int,
        customer_type: Optional[str] = None,
        on_date: Optional[date] = None,
    ) -> Optional[PriceQuote]:
        """
        Select the single best offer for dive_count.

        items must already be restricted to one service type.
        """
        if dive_count < 1:
            raise ValueError("dive_count must be at least 1")
        if on_date is None:
            on_date = date.today()

        matches = self.find_range_matches(items, dive_count, customer_type, on_date)
        if matches:
            best = matches[0]
            return PriceQuote(
                item=best,
                price=_to_decimal(best.get_effective_price()),
                pricing_model=best.pricing_model,
            )

        best_tiered: Optional[Tuple[PriceListItem, Decimal]] = None
        for item, price in self.price_tiered_items(items, dive_count, customer_type, on_date):
            if best_tiered is None or price < best_tiered[1]:
                best_tiered = (item, price)

        if best_tiered:
            return PriceQuote(item=best_tiered[0], price=best_tiered[1], pricing_model=TIERED_MODEL)
        return None

    def get_price_suggestions(
        self,
        items: Sequence[PriceListItem],
        dive_count: int,
        customer_type: Optional[str] = None,
        on_date: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        """All eligible offers for dive_count: ranked range matches, then priced tiered items."""
        if on_date is None:
            on_date = date.today()

        offers: List[Tuple[PriceListItem, Decimal]] = [
            (item, _to_decimal(item.get_effective_price()))
            for item in self.find_range_matches(items, dive_count, customer_type, on_date)
        ]
        offers.extend(self.price_tiered_items(items, dive_count, customer_type, on_date))

        return [
            {
                "id": item.id,
                "name": item.name,
                "description": item.description,
                "pricing_model": item.pricing_model,
                "min_dives": item.min_dives,
                "max_dives": item.max_dives,
                "priority": item.priority,
                "price": price,
                "base_price": item.get_effective_price(),
                "applicable_to": item.applicable_to,
            }
            for item, price in offers
        ]

    def check_overlaps(
        self,
        items: Sequence[PriceListItem],
        dive_count: int,
    ) -> List[PricingOverlap]:
        """Pairwise range intersections among active items covering dive_count."""
        candidates = [
            item for item in items
            if item.is_active
            and item.pricing_model in RANGE_MODELS
            and item.covers_dive_count(dive_count)
        ]

        overlaps = []
        for i, item1 in enumerate(candidates):
            for item2 in candidates[i + 1:]:
                overlap_start = max(item1.min_dives, item2.min_dives)
                overlap_end = min(item1.max_dives, item2.max_dives)
                if overlap_start <= overlap_end:
                    winner = min((item1, item2), key=self.ranking_key)
                    overlaps.append(PricingOverlap(
                        item1=item1,
                        item2=item2,
                        overlap_start=overlap_start,
                        overlap_end=overlap_end,
                        winner=winner,
                    ))
        return overlaps


class DivePricingService:
    """Loads price list items and runs the pricing engine on them."""

    engine = DivePricingEngine()

    @staticmethod
    async def load_items(
        db: AsyncSession,
        service_type: str,
        dive_center_id: Optional[int] = None,
    ) -> List[PriceListItem]:
        query = select(PriceListItem).where(PriceListItem.service_type == service_type)
        if dive_center_id is not None:
            query = query.join(PriceList).where(PriceList.dive_center_id == dive_center_id)
        query = query.order_by(PriceListItem.id)

        result = await db.execute(query)
        return list(result.scalars().all())

    @classmethod
    async def get_best_price(
        cls,
        db: AsyncSession,
        dive_count: int,
        service_type: str,
        customer_type: Optional[str] = None,
        on_date: Optional[date] = None,
        dive_center_id: Optional[int] = None,
    ) -> Optional[PriceQuote]:
        items = await cls.load_items(db, service_type, dive_center_id)
        quote = cls.engine.find_best_price(items, dive_count, customer_type, on_date)
        if quote is None:
            logger.info(f"No price found for {dive_count} dive(s) of '{service_type}' (customer type: {customer_type})")
        return quote

    @classmethod
    async def get_price_suggestions(
        cls,
        db: AsyncSession,
        dive_count: int,
        service_type: str,
        customer_type: Optional[str] = None,
        dive_center_id: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        items = await cls.load_items(db, service_type, dive_center_id)
        return cls.engine.get_price_suggestions(items, dive_count, customer_type)

    @classmethod
    async def check_overlaps(
        cls,
        db: AsyncSession,
        dive_count: int,
        service_type: str,
        dive_center_id: Optional[int] = None,
    ) -> List[PricingOverlap]:
        items = await cls.load_items(db, service_type, dive_center_id)
        overlaps = cls.engine.check_overlaps(items, dive_count)
        if overlaps:
            logger.warning(f"{len(overlaps)} overlapping price range(s) for {dive_count} dive(s) of '{service_type}'")
        return overlaps

    @classmethod
    async def get_item_tiered_price(
        cls,
        db: AsyncSession,
        item_id: int,
        dive_count: int,
        dive_center_id: Optional[int] = None,
    ) -> Tuple[Optional[PriceListItem], Optional[Decimal]]:
        """Load one item and price it; (None, None) when the item does not exist."""
        query = select(PriceListItem).where(PriceListItem.id == item_id)
        if dive_center_id is not None:
            query = query.join(PriceList).where(PriceList.dive_center_id == dive_center_id)
        result = await db.execute(query)
        item = result.scalar_one_or_none()
        if item is None:
            return None, None
        return item, cls.engine.calculate_item_price(item, dive_count)
