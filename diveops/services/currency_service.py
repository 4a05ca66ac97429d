"""
Currency conversion against a dive center's exchange-rate table.

Rates are expressed relative to the dive center's base currency:
    1 base = rate target   (e.g. base USD, {"EUR": 0.92} -> 1 USD = 0.92 EUR)

Conversions:
- same currency   -> passthrough
- base -> target  -> price x rate
- target -> base  -> price / rate
- cross currency  -> price / rate_from x rate_to (through the base)
"""

import logging
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Dict, List, Optional

from diveops.config import get_settings
from diveops.models.dive_center import DiveCenter
from diveops.services.exceptions import MissingExchangeRateError

logger = logging.getLogger(__name__)


def get_rate(rates: Dict[str, Any], currency: str) -> Optional[Decimal]:
    """
    Read a rate from a rates table.

    Accepts both formats:
        {"EUR": 0.92}
        {"EUR": {"rate": 0.92, "source": "manual"}}

    Missing, malformed and non-positive rates return None.
    """
    rate_data = rates.get(currency)
    if rate_data is None:
        return None

    rate_value = rate_data.get("rate") if isinstance(rate_data, dict) else rate_data
    if rate_value is None:
        return None

    try:
        rate = Decimal(str(rate_value))
    except InvalidOperation:
        return None
    if rate <= 0:
        return None
    return rate


def convert_price(
    price: Any,
    from_currency: str,
    to_currency: str,
    base_currency: str,
    rates: Dict[str, Any],
) -> Decimal:
    """Convert price between two currencies, rounded to 2 decimals."""
    amount = Decimal(str(price))
    from_currency = from_currency.upper()
    to_currency = to_currency.upper()
    base_currency = (base_currency or "").upper()

    if from_currency == to_currency:
        return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    rate_from = get_rate(rates, from_currency)
    rate_to = get_rate(rates, to_currency)

    if from_currency == base_currency and rate_to is not None:
        converted = amount * rate_to
    elif to_currency == base_currency and rate_from is not None:
        converted = amount / rate_from
    elif rate_from is not None and rate_to is not None:
        converted = amount / rate_from * rate_to
    else:
        logger.warning(f"No exchange rate to convert {from_currency} -> {to_currency} (base {base_currency})")
        raise MissingExchangeRateError(from_currency, to_currency)

    return converted.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class CurrencyConversionService:
    """Currency conversion for a dive center."""

    @staticmethod
    def convert_price(
        price: Any,
        from_currency: str,
        to_currency: str,
        dive_center: DiveCenter,
    ) -> Decimal:
        return convert_price(
            price,
            from_currency,
            to_currency,
            dive_center.currency or get_settings().default_currency,
            dive_center.get_currency_rates(),
        )

    @staticmethod
    def get_available_currencies(dive_center: DiveCenter) -> List[str]:
        return dive_center.get_available_currencies()
