"""
Currency endpoints.
Exchange rates are stored on the dive center, relative to its base currency.
"""

from decimal import Decimal
from typing import Dict, List

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from diveops.api.deps import CurrentDiveCenter, DbSession
from diveops.services.currency_service import CurrencyConversionService, get_rate
from diveops.services.exceptions import MissingExchangeRateError

router = APIRouter()


# Schemas
class ConvertRequest(BaseModel):
    price: Decimal = Field(..., ge=0)
    from_currency: str = Field(..., min_length=3, max_length=3)
    to_currency: str = Field(..., min_length=3, max_length=3)


class ConvertResponse(BaseModel):
    price: Decimal
    from_currency: str
    to_currency: str
    converted_price: Decimal


class SetRatesRequest(BaseModel):
    """1 base currency = rate target currency."""
    rates: Dict[str, float] = Field(..., description="Currency codes to rates mapping")


class RatesResponse(BaseModel):
    base_currency: str
    rates: Dict[str, float]
    available_currencies: List[str]


def _rates_response(dive_center) -> RatesResponse:
    stored = dive_center.get_currency_rates()
    rates = {}
    for code in stored:
        rate = get_rate(stored, code)
        if rate is not None:
            rates[code] = float(rate)
    return RatesResponse(
        base_currency=dive_center.currency,
        rates=rates,
        available_currencies=CurrencyConversionService.get_available_currencies(dive_center),
    )


# Endpoints
@router.get("/available", response_model=RatesResponse)
async def get_available_currencies(dive_center: CurrentDiveCenter):
    """Base currency, configured rates and the currencies they make available."""
    return _rates_response(dive_center)


@router.put("/rates", response_model=RatesResponse)
async def set_rates(
    data: SetRatesRequest,
    db: DbSession,
    dive_center: CurrentDiveCenter,
):
    """Replace the dive center's exchange rates."""
    for code, rate in data.rates.items():
        if len(code) != 3 or rate <= 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid rate for '{code}': currency codes have 3 letters and rates must be positive",
            )

    dive_center.set_currency_rates(data.rates)
    await db.commit()
    await db.refresh(dive_center)

    return _rates_response(dive_center)


@router.post("/convert", response_model=ConvertResponse)
async def convert(data: ConvertRequest, dive_center: CurrentDiveCenter):
    """Convert a price with the dive center's rates."""
    try:
        converted = CurrencyConversionService.convert_price(
            data.price, data.from_currency, data.to_currency, dive_center
        )
    except MissingExchangeRateError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.message)

    return ConvertResponse(
        price=data.price,
        from_currency=data.from_currency.upper(),
        to_currency=data.to_currency.upper(),
        converted_price=converted,
    )
