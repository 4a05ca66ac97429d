"""
Agent commission endpoints.
Handles commission calculation, listing, status updates and the agent
performance summary.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict

from diveops.api.deps import CurrentDiveCenter, DbSession
from diveops.services.agent_performance import AgentPerformanceService
from diveops.services.commission_service import AgentCommissionService
from diveops.services.exceptions import CommissionError, RecordNotFoundError

router = APIRouter()


# ============================================================================
# Schemas
# ============================================================================

class CommissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    agent_id: int
    invoice_id: int
    commissionable_amount: Decimal
    commission_amount: Decimal
    status: str
    calculated_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None


class CalculateCommissionsRequest(BaseModel):
    invoice_ids: Optional[List[int]] = None


class CalculateCommissionsResponse(BaseModel):
    message: str
    commissions: List[CommissionResponse]
    count: int


class CommissionUpdate(BaseModel):
    status: Optional[str] = None
    notes: Optional[str] = None


class AgentPerformanceResponse(BaseModel):
    agent_id: int
    total_clients_referred: int
    total_dives_booked: int
    total_revenue_generated: Decimal
    total_commission_earned: Decimal
    average_revenue_per_client: Decimal
    last_booking_date: Optional[date] = None
    active_clients: int


def _raise_http(e: Exception):
    if isinstance(e, RecordNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# ============================================================================
# Endpoints
# ============================================================================

@router.get("/agents/{agent_id}/commissions", response_model=List[CommissionResponse])
async def list_commissions(
    agent_id: int,
    db: DbSession,
    dive_center: CurrentDiveCenter,
    status_filter: Optional[str] = Query(None, alias="status"),
):
    """List commissions for an agent, newest first."""
    try:
        commissions = await AgentCommissionService.list_commissions(
            db, agent_id, status_filter, dive_center_id=dive_center.id
        )
    except RecordNotFoundError as e:
        _raise_http(e)
    return [CommissionResponse.model_validate(c) for c in commissions]


@router.post(
    "/agents/{agent_id}/commissions/calculate",
    response_model=CalculateCommissionsResponse,
    status_code=status.HTTP_201_CREATED,
)
async def calculate_commissions(
    agent_id: int,
    data: CalculateCommissionsRequest,
    db: DbSession,
    dive_center: CurrentDiveCenter,
):
    """
    Calculate commissions for the given invoices, or for every invoice of
    the agent that has no active commission yet.
    Invoices that fail validation are skipped.
    """
    try:
        commissions = await AgentCommissionService.calculate_commissions_for_agent(
            db, agent_id, data.invoice_ids, dive_center_id=dive_center.id
        )
    except RecordNotFoundError as e:
        _raise_http(e)

    return CalculateCommissionsResponse(
        message="Commissions calculated successfully",
        commissions=[CommissionResponse.model_validate(c) for c in commissions],
        count=len(commissions),
    )


@router.post(
    "/agents/{agent_id}/invoices/{invoice_id}/commission",
    response_model=CommissionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def calculate_invoice_commission(
    agent_id: int,
    invoice_id: int,
    db: DbSession,
    dive_center: CurrentDiveCenter,
):
    """Calculate the commission of a single invoice; validation errors are returned."""
    try:
        commission = await AgentCommissionService.calculate_commission_for_invoice(
            db, agent_id, invoice_id, dive_center_id=dive_center.id
        )
    except (CommissionError, RecordNotFoundError) as e:
        _raise_http(e)
    return CommissionResponse.model_validate(commission)


@router.patch("/commissions/{commission_id}", response_model=CommissionResponse)
async def update_commission(
    commission_id: int,
    data: CommissionUpdate,
    db: DbSession,
    dive_center: CurrentDiveCenter,
):
    """Update commission status (Pending, Paid, Cancelled) and notes."""
    try:
        commission = await AgentCommissionService.update_commission_status(
            db, commission_id, data.status, data.notes, dive_center_id=dive_center.id
        )
    except (CommissionError, RecordNotFoundError) as e:
        _raise_http(e)
    return CommissionResponse.model_validate(commission)


@router.delete("/commissions/{commission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_commission(
    commission_id: int,
    db: DbSession,
    dive_center: CurrentDiveCenter,
):
    """Cancel a commission. It can be recalculated afterwards."""
    try:
        await AgentCommissionService.cancel_commission(db, commission_id, dive_center_id=dive_center.id)
    except (CommissionError, RecordNotFoundError) as e:
        _raise_http(e)


@router.get("/agents/{agent_id}/performance", response_model=AgentPerformanceResponse)
async def get_agent_performance(
    agent_id: int,
    db: DbSession,
    dive_center: CurrentDiveCenter,
    active_days: int = Query(30, ge=1, le=365),
):
    """Referral, revenue and commission figures for an agent."""
    try:
        summary = await AgentPerformanceService.get_summary(
            db, agent_id, active_days, dive_center_id=dive_center.id
        )
    except RecordNotFoundError as e:
        _raise_http(e)
    return AgentPerformanceResponse(**summary)
