"""
Tax endpoints. Updating a tax clears the cached percentages.
"""

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select

from diveops.api.deps import CurrentDiveCenter, DbSession
from diveops.models.tax import Tax
from diveops.services.tax_service import TaxService

router = APIRouter()


class TaxResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    percentage: Decimal


class TaxUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    percentage: Optional[Decimal] = Field(None, ge=0, le=100)


@router.get("", response_model=List[TaxResponse])
async def list_taxes(db: DbSession, dive_center: CurrentDiveCenter):
    result = await db.execute(select(Tax).order_by(Tax.name))
    return [TaxResponse.model_validate(t) for t in result.scalars().all()]


@router.put("/{tax_id}", response_model=TaxResponse)
async def update_tax(
    tax_id: int,
    data: TaxUpdate,
    db: DbSession,
    dive_center: CurrentDiveCenter,
):
    tax = await db.get(Tax, tax_id)
    if not tax:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tax not found")

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(tax, field, value)

    await db.commit()
    await db.refresh(tax)
    TaxService.clear_cache()

    return TaxResponse.model_validate(tax)
