"""
Agent commission service - computes what an agent earns on an invoice.

Handles:
- Validation (ownership, duplicate commission, contract validity window)
- Commissionable amount (equipment / manual line filters, proportional discount)
- Commission formula (percentage or fixed amount, optional 5% VAT)
- Status lifecycle: Pending -> Paid, Pending/Paid -> Cancelled -> Pending (recalculation)
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from diveops.models.agent import Agent, AgentCommercialTerms, AgentCommission, COMMISSION_STATUSES
from diveops.models.invoice import Invoice
from diveops.services.exceptions import CommissionError, RecordNotFoundError

logger = logging.getLogger(__name__)

# VAT added on top of the commission when the agent's terms say so
COMMISSION_VAT_RATE = Decimal("0.05")

# Status changes allowed through update_commission_status.
# Cancelled -> Pending only happens through recalculation.
ALLOWED_STATUS_TRANSITIONS = {
    "Pending": {"Pending", "Paid", "Cancelled"},
    "Paid": {"Paid", "Cancelled"},
    "Cancelled": {"Cancelled"},
}


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def calculate_commissionable_amount(invoice: Invoice, terms: AgentCommercialTerms) -> Decimal:
    """
    Portion of the invoice eligible for commission.

    Formula:
        filtered = sum of kept line totals
        discount_share = filtered / all_lines_subtotal x invoice.discount
        commissionable = max(0, filtered - discount_share)

    Equipment lines are dropped when exclude_equipment_from_commission is set.
    Manual lines (no booking reference) are dropped unless
    include_manual_items_in_commission is set.
    An invoice without line items is commissioned on its total.
    """
    items = list(invoice.items or [])
    if not items:
        return max(Decimal("0.00"), _money(invoice.total))

    all_subtotal = Decimal("0.00")
    filtered_subtotal = Decimal("0.00")
    for item in items:
        line_total = Decimal(str(item.total or 0))
        all_subtotal += line_total

        if item.is_equipment and terms.exclude_equipment_from_commission:
            continue
        if item.is_manual and not terms.include_manual_items_in_commission:
            continue
        filtered_subtotal += line_total

    discount = Decimal(str(invoice.discount or 0))
    discount_share = Decimal("0.00")
    if discount > 0 and all_subtotal > 0:
        discount_share = filtered_subtotal / all_subtotal * discount

    commissionable = filtered_subtotal - discount_share
    if commissionable < 0:
        commissionable = Decimal("0.00")
    return commissionable.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def calculate_commission_amount(terms: AgentCommercialTerms, commissionable_amount: Decimal) -> Decimal:
    """
    Apply the commission formula.

    Example:
        Percentage 10% on 1000.00 with VAT -> 100.00 x 1.05 = 105.00
    """
    rate = Decimal(str(terms.commission_rate or 0))

    if terms.commission_type == "Percentage":
        amount = Decimal(str(commissionable_amount)) * rate / Decimal("100")
    else:
        # Fixed Amount
        amount = rate

    if terms.vat_applicable:
        amount = amount * (Decimal("1") + COMMISSION_VAT_RATE)

    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class AgentCommissionService:
    """Commission calculation and lifecycle for agents."""

    @staticmethod
    async def _get_agent(db: AsyncSession, agent_id: int, dive_center_id: Optional[int] = None) -> Agent:
        agent = await db.get(Agent, agent_id, populate_existing=True)
        if agent is None or (dive_center_id is not None and agent.dive_center_id != dive_center_id):
            raise RecordNotFoundError("Agent", agent_id)
        return agent

    @staticmethod
    async def _get_commission(
        db: AsyncSession,
        commission_id: int,
        dive_center_id: Optional[int] = None,
    ) -> AgentCommission:
        query = select(AgentCommission).where(AgentCommission.id == commission_id)
        if dive_center_id is not None:
            query = query.join(Agent).where(Agent.dive_center_id == dive_center_id)
        result = await db.execute(query)
        commission = result.scalar_one_or_none()
        if commission is None:
            raise RecordNotFoundError("Commission", commission_id)
        return commission

    @staticmethod
    def _check_contract_window(agent: Agent, invoice: Invoice) -> None:
        contract = agent.contract
        if not contract:
            return
        if contract.commission_valid_from and invoice.invoice_date < contract.commission_valid_from:
            raise CommissionError("Invoice date is before commission valid from date")
        if contract.commission_valid_until and invoice.invoice_date > contract.commission_valid_until:
            raise CommissionError("Invoice date is after commission valid until date")

    @staticmethod
    async def calculate_commission_for_invoice(
        db: AsyncSession,
        agent_id: int,
        invoice_id: int,
        dive_center_id: Optional[int] = None,
    ) -> AgentCommission:
        """
        Calculate and persist the commission for one invoice.

        Steps:
        1. Load agent and invoice, check ownership
        2. Reject if an active (non-cancelled) commission exists
        3. Check commercial terms and contract validity window
        4. Compute commissionable amount and commission
        5. Insert, or reuse the cancelled row, with status Pending
        """
        agent = await AgentCommissionService._get_agent(db, agent_id, dive_center_id)

        invoice = await db.get(Invoice, invoice_id, populate_existing=True)
        if invoice is None:
            raise RecordNotFoundError("Invoice", invoice_id)
        if invoice.agent_id != agent_id:
            raise CommissionError("Invoice does not belong to this agent")

        result = await db.execute(
            select(AgentCommission).where(
                AgentCommission.agent_id == agent_id,
                AgentCommission.invoice_id == invoice_id,
            )
        )
        existing = result.scalar_one_or_none()
        if existing and existing.status != "Cancelled":
            raise CommissionError("Commission already calculated for this invoice")

        terms = agent.commercial_terms
        if not terms:
            raise CommissionError("Agent has no commercial terms defined")

        AgentCommissionService._check_contract_window(agent, invoice)

        commissionable = calculate_commissionable_amount(invoice, terms)
        amount = calculate_commission_amount(terms, commissionable)
        now = datetime.now(timezone.utc)

        try:
            if existing:
                existing.commissionable_amount = commissionable
                existing.commission_amount = amount
                existing.status = "Pending"
                existing.calculated_at = now
                existing.paid_at = None
                commission = existing
            else:
                commission = AgentCommission(
                    agent_id=agent_id,
                    invoice_id=invoice_id,
                    commissionable_amount=commissionable,
                    commission_amount=amount,
                    status="Pending",
                    calculated_at=now,
                )
                db.add(commission)
            await db.commit()
            await db.refresh(commission)
        except SQLAlchemyError:
            await db.rollback()
            raise

        logger.info(
            f"Commission {amount} calculated for agent {agent_id} on invoice {invoice_id} "
            f"(commissionable {commissionable})"
        )
        return commission

    @staticmethod
    async def calculate_commissions_for_agent(
        db: AsyncSession,
        agent_id: int,
        invoice_ids: Optional[List[int]] = None,
        dive_center_id: Optional[int] = None,
    ) -> List[AgentCommission]:
        """
        Calculate commissions for several invoices of an agent.

        With invoice_ids, only those invoices (that belong to the agent) are
        processed; otherwise every invoice of the agent without an active
        commission. Failing invoices are logged and skipped.
        """
        await AgentCommissionService._get_agent(db, agent_id, dive_center_id)

        query = select(Invoice.id).where(Invoice.agent_id == agent_id)
        if invoice_ids:
            query = query.where(Invoice.id.in_(invoice_ids))
        else:
            commissioned = select(AgentCommission.invoice_id).where(
                AgentCommission.agent_id == agent_id,
                AgentCommission.status != "Cancelled",
            )
            query = query.where(Invoice.id.not_in(commissioned))

        result = await db.execute(query.order_by(Invoice.id))
        ids_to_process = list(result.scalars().all())

        commissions = []
        rolled_back = False
        for invoice_id in ids_to_process:
            try:
                commission = await AgentCommissionService.calculate_commission_for_invoice(
                    db, agent_id, invoice_id, dive_center_id
                )
            except SQLAlchemyError as e:
                # the rollback expired the commissions already committed
                rolled_back = True
                logger.warning(f"Failed to calculate commission for invoice {invoice_id}: {e}")
                continue
            except (CommissionError, RecordNotFoundError) as e:
                logger.warning(f"Failed to calculate commission for invoice {invoice_id}: {e}")
                continue
            commissions.append(commission)

        if rolled_back:
            for commission in commissions:
                await db.refresh(commission)

        logger.info(f"Calculated {len(commissions)}/{len(ids_to_process)} commission(s) for agent {agent_id}")
        return commissions

    @staticmethod
    async def list_commissions(
        db: AsyncSession,
        agent_id: int,
        status: Optional[str] = None,
        dive_center_id: Optional[int] = None,
    ) -> List[AgentCommission]:
        await AgentCommissionService._get_agent(db, agent_id, dive_center_id)

        query = select(AgentCommission).where(AgentCommission.agent_id == agent_id)
        if status:
            query = query.where(AgentCommission.status == status)
        query = query.order_by(AgentCommission.calculated_at.desc(), AgentCommission.id.desc())

        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def update_commission_status(
        db: AsyncSession,
        commission_id: int,
        status: Optional[str] = None,
        notes: Optional[str] = None,
        dive_center_id: Optional[int] = None,
    ) -> AgentCommission:
        """
        Move a commission through its lifecycle.

        Pending -> Paid stamps paid_at. Cancelled commissions can only come
        back through recalculation.
        """
        commission = await AgentCommissionService._get_commission(db, commission_id, dive_center_id)

        if status is not None:
            if status not in COMMISSION_STATUSES:
                raise CommissionError(f"Unknown commission status: {status}")
            if status not in ALLOWED_STATUS_TRANSITIONS[commission.status]:
                raise CommissionError(f"Cannot change commission status from {commission.status} to {status}")
            if status == "Paid" and not commission.paid_at:
                commission.paid_at = datetime.now(timezone.utc)
            commission.status = status

        if notes is not None:
            commission.notes = notes

        try:
            await db.commit()
            await db.refresh(commission)
        except SQLAlchemyError:
            await db.rollback()
            raise

        logger.info(f"Commission {commission.id} is now {commission.status}")
        return commission

    @staticmethod
    async def cancel_commission(
        db: AsyncSession,
        commission_id: int,
        dive_center_id: Optional[int] = None,
    ) -> AgentCommission:
        return await AgentCommissionService.update_commission_status(
            db, commission_id, status="Cancelled", dive_center_id=dive_center_id
        )
