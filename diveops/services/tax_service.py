"""
Tax service - T-GST and service charge percentages with a read-through cache.
Cache entries expire after settings.tax_cache_ttl_seconds and are cleared
whenever a tax is updated.
"""

import logging
import time
from decimal import Decimal
from typing import Dict, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from diveops.config import get_settings
from diveops.models.tax import Tax

logger = logging.getLogger(__name__)

TGST_CACHE_KEY = "tax_tgst_percentage"
SERVICE_CHARGE_CACHE_KEY = "tax_service_charge_percentage"

TGST_NAMES = ("t-gst", "tgst")
SERVICE_CHARGE_NAMES = ("service charge",)

# cache key -> (expires_at monotonic seconds, percentage)
_tax_cache: Dict[str, Tuple[float, Decimal]] = {}


class TaxService:
    """Cached lookup of the shared tax percentages."""

    @staticmethod
    async def _lookup_percentage(db: AsyncSession, names: Tuple[str, ...]) -> Decimal:
        result = await db.execute(
            select(Tax).where(func.lower(Tax.name).in_(names)).order_by(Tax.id).limit(1)
        )
        tax = result.scalar_one_or_none()
        return Decimal(str(tax.percentage)) if tax else Decimal("0")

    @staticmethod
    async def _remember(db: AsyncSession, key: str, names: Tuple[str, ...]) -> Decimal:
        now = time.monotonic()
        cached = _tax_cache.get(key)
        if cached and cached[0] > now:
            return cached[1]

        percentage = await TaxService._lookup_percentage(db, names)
        ttl = get_settings().tax_cache_ttl_seconds
        _tax_cache[key] = (now + ttl, percentage)
        logger.info(f"Cached {key}={percentage} for {ttl}s")
        return percentage

    @staticmethod
    async def get_tgst_percentage(db: AsyncSession) -> Decimal:
        """Get T-GST tax percentage (cached)."""
        return await TaxService._remember(db, TGST_CACHE_KEY, TGST_NAMES)

    @staticmethod
    async def get_service_charge_percentage(db: AsyncSession) -> Decimal:
        """Get service charge percentage (cached)."""
        return await TaxService._remember(db, SERVICE_CHARGE_CACHE_KEY, SERVICE_CHARGE_NAMES)

    @staticmethod
    def clear_cache() -> None:
        """Clear tax cache (call when taxes are updated)."""
        _tax_cache.pop(TGST_CACHE_KEY, None)
        _tax_cache.pop(SERVICE_CHARGE_CACHE_KEY, None)
        logger.info("Tax percentage cache cleared")
