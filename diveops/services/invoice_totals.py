"""
Invoice totals - discount, service charge and T-GST.

Two modes, chosen per dive center (settings.tax_calculation_mode):
- exclusive: service charge and T-GST are added on top of the discounted amount
- inclusive: the discounted amount already contains them and is split back
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from diveops.models.dive_center import DiveCenter
from diveops.models.invoice import Invoice
from diveops.services.exceptions import RecordNotFoundError
from diveops.services.tax_service import TaxService

ZERO = Decimal("0.00")


def _round(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def calculate_invoice_totals(
    subtotal: Any,
    discount: Any,
    service_charge_pct: Any,
    tax_pct: Any,
    mode: str = "exclusive",
) -> dict:
    """
    Compute invoice amounts.

    Exclusive:
        after_discount = subtotal - discount
        service_charge = after_discount x sc%
        tax = (after_discount + service_charge) x tgst%
        total = after_discount + service_charge + tax

    Inclusive (after_discount is the gross total):
        base = after_discount / ((1 + sc%) x (1 + tgst%))
        service_charge = base x sc%
        tax = (base + service_charge) x tgst%
        rounding drift above 0.01 is absorbed into tax

    Returns:
        {"subtotal", "discount", "amount_after_discount", "service_charge", "tax", "total"}
    """
    subtotal = _round(Decimal(str(subtotal or 0)))
    discount = Decimal(str(discount or 0))
    discount = _round(max(ZERO, min(discount, subtotal)))
    amount_after_discount = max(ZERO, _round(subtotal - discount))

    sc_rate = Decimal(str(service_charge_pct or 0)) / Decimal("100")
    tax_rate = Decimal(str(tax_pct or 0)) / Decimal("100")
    if sc_rate < 0:
        sc_rate = ZERO
    if tax_rate < 0:
        tax_rate = ZERO

    service_charge = ZERO
    tax = ZERO
    total = amount_after_discount

    if mode == "inclusive":
        denominator = (Decimal("1") + sc_rate) * (Decimal("1") + tax_rate)
        if amount_after_discount > 0 and denominator != 1:
            base_amount = _round(amount_after_discount / denominator)
            service_charge = _round(base_amount * sc_rate)
            tax = _round((base_amount + service_charge) * tax_rate)
            total = _round(base_amount + service_charge + tax)

            rounding_diff = amount_after_discount - total
            if abs(rounding_diff) > Decimal("0.01"):
                tax = _round(tax + rounding_diff)
                total = _round(base_amount + service_charge + tax)
    else:
        if sc_rate > 0:
            service_charge = _round(amount_after_discount * sc_rate)
        if tax_rate > 0:
            tax = _round((amount_after_discount + service_charge) * tax_rate)
        total = _round(amount_after_discount + service_charge + tax)

    return {
        "subtotal": subtotal,
        "discount": discount,
        "amount_after_discount": amount_after_discount,
        "service_charge": max(ZERO, service_charge),
        "tax": max(ZERO, tax),
        "total": max(ZERO, total),
    }


class InvoiceTotalsService:
    """Recalculates and stores invoice totals."""

    @staticmethod
    async def resolve_percentages(db: AsyncSession, dive_center: Optional[DiveCenter]) -> dict:
        """
        Service charge: dive center setting when positive, else the shared tax.
        T-GST: the shared tax.
        """
        service_charge_pct = dive_center.service_charge_percentage if dive_center else None
        if not service_charge_pct or service_charge_pct <= 0:
            service_charge_pct = await TaxService.get_service_charge_percentage(db)

        return {
            "service_charge_pct": service_charge_pct,
            "tax_pct": await TaxService.get_tgst_percentage(db),
            "mode": dive_center.tax_calculation_mode if dive_center else "exclusive",
        }

    @staticmethod
    async def recalculate(
        db: AsyncSession,
        invoice_id: int,
        dive_center_id: Optional[int] = None,
    ) -> Invoice:
        """Recompute subtotal from the line items, then discount, service charge and tax."""
        invoice = await db.get(Invoice, invoice_id, populate_existing=True)
        if invoice is None or (dive_center_id is not None and invoice.dive_center_id != dive_center_id):
            raise RecordNotFoundError("Invoice", invoice_id)

        dive_center = await db.get(DiveCenter, invoice.dive_center_id)
        percentages = await InvoiceTotalsService.resolve_percentages(db, dive_center)

        subtotal = sum((Decimal(str(item.total or 0)) for item in invoice.items), ZERO)
        totals = calculate_invoice_totals(
            subtotal,
            invoice.discount,
            percentages["service_charge_pct"],
            percentages["tax_pct"],
            percentages["mode"],
        )

        invoice.subtotal = totals["subtotal"]
        invoice.discount = totals["discount"]
        invoice.service_charge = totals["service_charge"]
        invoice.tax = totals["tax"]
        invoice.total = totals["total"]

        await db.commit()
        await db.refresh(invoice)
        return invoice
