"""
Dive center model - the tenant every other row belongs to.
"""

from decimal import Decimal
from typing import Optional, List

from sqlalchemy import String, JSON
from sqlalchemy.orm import Mapped, mapped_column

from diveops.models.base import Base, BigIntPK, TimestampMixin


class DiveCenter(Base, TimestampMixin):
    """
    A dive center.

    settings JSON structure:
    {
        "currency_rates": {"EUR": 0.92, "THB": {"rate": 36.1, "source": "manual"}},
        "tax_calculation_mode": "exclusive",   # or "inclusive"
        "service_charge_percentage": 10
    }

    Rates are expressed relative to the base currency:
    1 base currency = rate target currency.
    """

    __tablename__ = "dive_centers"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    status: Mapped[str] = mapped_column(String(20), default="active")
    settings: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<DiveCenter(id={self.id}, name='{self.name}', currency='{self.currency}')>"

    def get_currency_rates(self) -> dict:
        """Get currency rates from settings."""
        return (self.settings or {}).get("currency_rates", {}) or {}

    def set_currency_rates(self, rates: dict) -> None:
        """Replace currency rates (new dict so the JSON change is detected)."""
        settings = dict(self.settings or {})
        settings["currency_rates"] = {code.upper(): rate for code, rate in rates.items()}
        self.settings = settings

    def get_available_currencies(self) -> List[str]:
        """Base currency first, then every currency with a configured rate."""
        currencies = list(self.get_currency_rates().keys())
        if self.currency and self.currency not in currencies:
            currencies.insert(0, self.currency)
        return currencies

    @property
    def tax_calculation_mode(self) -> str:
        return (self.settings or {}).get("tax_calculation_mode") or "exclusive"

    @property
    def service_charge_percentage(self) -> Optional[Decimal]:
        value = (self.settings or {}).get("service_charge_percentage")
        if value is None:
            return None
        return Decimal(str(value))
