"""
Dive pricing endpoints.
Best price resolution, price suggestions and overlap diagnostics.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel

from diveops.api.deps import CurrentDiveCenter, DbSession
from diveops.models.price_list import CUSTOMER_TYPES
from diveops.services.dive_pricing import DivePricingService

router = APIRouter()


# ============================================================================
# Schemas
# ============================================================================

class PriceQuoteResponse(BaseModel):
    item_id: int
    name: str
    service_type: str
    pricing_model: str
    min_dives: int
    max_dives: int
    priority: int
    applicable_to: str
    price: Decimal


class PriceSuggestion(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    pricing_model: str
    min_dives: int
    max_dives: int
    priority: int
    price: Decimal
    base_price: Optional[Decimal] = None
    applicable_to: str


class OverlapItem(BaseModel):
    id: int
    name: str
    priority: int


class OverlapResponse(BaseModel):
    item1: OverlapItem
    item2: OverlapItem
    overlap_start: int
    overlap_end: int
    winner: str
    winner_id: int


class TieredPriceResponse(BaseModel):
    item_id: int
    dive_count: int
    pricing_model: str
    price: Optional[Decimal] = None


def _check_customer_type(customer_type: Optional[str]) -> None:
    if customer_type and customer_type not in CUSTOMER_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid customer_type. Must be one of: {', '.join(CUSTOMER_TYPES)}",
        )


# ============================================================================
# Endpoints
# ============================================================================

@router.get("/best-price", response_model=Optional[PriceQuoteResponse])
async def get_best_price(
    db: DbSession,
    dive_center: CurrentDiveCenter,
    dive_count: int = Query(..., ge=1),
    service_type: str = Query(..., min_length=1),
    customer_type: Optional[str] = Query(None),
    on_date: Optional[date] = Query(None, alias="date"),
):
    """
    Best matching offer for a dive count, or null when nothing matches.
    """
    _check_customer_type(customer_type)
    quote = await DivePricingService.get_best_price(
        db, dive_count, service_type, customer_type, on_date, dive_center_id=dive_center.id
    )
    if quote is None:
        return None
    return PriceQuoteResponse(**quote.to_dict())


@router.get("/suggestions", response_model=List[PriceSuggestion])
async def get_price_suggestions(
    db: DbSession,
    dive_center: CurrentDiveCenter,
    dive_count: int = Query(..., ge=1),
    service_type: str = Query(..., min_length=1),
    customer_type: Optional[str] = Query(None),
):
    """All offers matching a dive count, best first."""
    _check_customer_type(customer_type)
    suggestions = await DivePricingService.get_price_suggestions(
        db, dive_count, service_type, customer_type, dive_center_id=dive_center.id
    )
    return [PriceSuggestion(**s) for s in suggestions]


@router.get("/overlaps", response_model=List[OverlapResponse])
async def check_overlaps(
    db: DbSession,
    dive_center: CurrentDiveCenter,
    dive_count: int = Query(..., ge=1),
    service_type: str = Query(..., min_length=1),
):
    """Price list items whose dive ranges overlap (data quality check)."""
    overlaps = await DivePricingService.check_overlaps(
        db, dive_count, service_type, dive_center_id=dive_center.id
    )
    return [OverlapResponse(**o.to_dict()) for o in overlaps]


@router.get("/items/{item_id}/tiered-price", response_model=TieredPriceResponse)
async def get_tiered_price(
    item_id: int,
    db: DbSession,
    dive_center: CurrentDiveCenter,
    dive_count: int = Query(..., ge=1),
):
    """Tiered price of one item (null for non-TIERED items or when no tier applies)."""
    item, price = await DivePricingService.get_item_tiered_price(
        db, item_id, dive_count, dive_center_id=dive_center.id
    )
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Price list item not found")

    return TieredPriceResponse(
        item_id=item.id,
        dive_count=dive_count,
        pricing_model=item.pricing_model,
        price=price,
    )
