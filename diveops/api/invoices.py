"""
Invoice endpoints.
Only totals recalculation lives here; invoice CRUD is handled elsewhere.
"""

from decimal import Decimal

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict

from diveops.api.deps import CurrentDiveCenter, DbSession
from diveops.services.exceptions import RecordNotFoundError
from diveops.services.invoice_totals import InvoiceTotalsService

router = APIRouter()


class InvoiceTotalsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    subtotal: Decimal
    discount: Decimal
    service_charge: Decimal
    tax: Decimal
    total: Decimal
    currency: str


@router.post("/{invoice_id}/recalculate-totals", response_model=InvoiceTotalsResponse)
async def recalculate_totals(
    invoice_id: int,
    db: DbSession,
    dive_center: CurrentDiveCenter,
):
    """
    Recompute subtotal from the line items, then apply the discount,
    service charge and T-GST of the dive center.
    """
    try:
        invoice = await InvoiceTotalsService.recalculate(db, invoice_id, dive_center_id=dive_center.id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return InvoiceTotalsResponse.model_validate(invoice)
