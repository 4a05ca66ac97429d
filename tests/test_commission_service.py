"""Tests for agent commission calculation and lifecycle."""

import logging
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from diveops.models import AgentCommercialTerms, Invoice, InvoiceItem
from diveops.services.commission_service import (
    AgentCommissionService,
    calculate_commission_amount,
    calculate_commissionable_amount,
)
from diveops.services.exceptions import CommissionError, RecordNotFoundError


def _terms(**kwargs):
    values = {
        "commission_type": "Percentage",
        "commission_rate": Decimal("10.00"),
        "vat_applicable": False,
        "exclude_equipment_from_commission": False,
        "include_manual_items_in_commission": True,
    }
    values.update(kwargs)
    return AgentCommercialTerms(**values)


def _invoice(lines=(), discount="0.00", total="0.00"):
    items = []
    for kind, line_total in lines:
        items.append(InvoiceItem(
            total=Decimal(line_total),
            booking_dive_id=1 if kind == "dive" else None,
            booking_equipment_id=1 if kind == "equipment" else None,
            booking_excursion_id=None,
        ))
    return Invoice(items=items, discount=Decimal(discount), total=Decimal(total))


async def _block_commission_insert(db, invoice_id):
    await db.execute(text(
        "CREATE TRIGGER block_commission_insert BEFORE INSERT ON agent_commissions "
        f"WHEN NEW.invoice_id = {invoice_id} "
        "BEGIN SELECT RAISE(ABORT, 'commission insert blocked'); END"
    ))
    await db.commit()


class TestCommissionableAmount:
    """Tests for calculate_commissionable_amount."""

    def test_all_lines_included_by_default(self):
        """Dive, equipment and manual lines all count."""
        invoice = _invoice([("dive", "600.00"), ("equipment", "150.00"), ("manual", "50.00")])

        assert calculate_commissionable_amount(invoice, _terms()) == Decimal("800.00")

    def test_equipment_excluded(self):
        """Equipment lines are dropped when the terms exclude them."""
        invoice = _invoice([("dive", "800.00"), ("equipment", "200.00")])

        amount = calculate_commissionable_amount(invoice, _terms(exclude_equipment_from_commission=True))

        assert amount == Decimal("800.00")

    def test_manual_lines_excluded(self):
        """Manual lines are dropped unless the terms include them."""
        invoice = _invoice([("dive", "800.00"), ("manual", "200.00")])

        amount = calculate_commissionable_amount(invoice, _terms(include_manual_items_in_commission=False))

        assert amount == Decimal("800.00")

    def test_discount_is_shared_proportionally(self):
        """Kept lines carry their share of the invoice discount."""
        invoice = _invoice([("dive", "800.00"), ("equipment", "200.00")], discount="100.00")

        amount = calculate_commissionable_amount(invoice, _terms(exclude_equipment_from_commission=True))

        assert amount == Decimal("720.00")

    def test_never_negative(self):
        """A discount larger than the lines floors the amount at zero."""
        invoice = _invoice([("dive", "100.00")], discount="300.00")

        assert calculate_commissionable_amount(invoice, _terms()) == Decimal("0.00")

    def test_invoice_without_items_uses_total(self):
        """Invoices without line items are commissioned on their total."""
        invoice = _invoice(total="450.00")

        assert calculate_commissionable_amount(invoice, _terms()) == Decimal("450.00")


class TestCommissionAmount:
    """Tests for calculate_commission_amount."""

    def test_percentage(self):
        """10% of 1000.00."""
        assert calculate_commission_amount(_terms(), Decimal("1000.00")) == Decimal("100.00")

    def test_percentage_with_vat(self):
        """VAT adds 5% on top of the commission."""
        terms = _terms(vat_applicable=True)

        assert calculate_commission_amount(terms, Decimal("1000.00")) == Decimal("105.00")

    def test_fixed_amount_ignores_base(self):
        """A fixed commission does not depend on the invoice."""
        terms = _terms(commission_type="Fixed Amount", commission_rate=Decimal("50.00"))

        assert calculate_commission_amount(terms, Decimal("1000.00")) == Decimal("50.00")
        assert calculate_commission_amount(terms, Decimal("0.00")) == Decimal("50.00")

    def test_fixed_amount_with_vat(self):
        """VAT applies to fixed commissions too."""
        terms = _terms(commission_type="Fixed Amount", commission_rate=Decimal("50.00"), vat_applicable=True)

        assert calculate_commission_amount(terms, Decimal("10.00")) == Decimal("52.50")

    def test_rounded_half_up(self):
        """Amounts are rounded to cents, half up."""
        terms = _terms(commission_rate=Decimal("12.50"))

        assert calculate_commission_amount(terms, Decimal("0.20")) == Decimal("0.03")


class TestCalculateCommissionForInvoice:
    """Tests for AgentCommissionService.calculate_commission_for_invoice."""

    async def test_creates_pending_commission(self, db, make_agent, make_invoice):
        """10% with VAT on a 1000.00 invoice is 105.00."""
        agent = await make_agent(vat_applicable=True)
        invoice = await make_invoice(agent, lines=[("dive", "1000.00")])

        commission = await AgentCommissionService.calculate_commission_for_invoice(db, agent.id, invoice.id)

        assert commission.id is not None
        assert commission.commissionable_amount == Decimal("1000.00")
        assert commission.commission_amount == Decimal("105.00")
        assert commission.status == "Pending"
        assert commission.calculated_at is not None
        assert commission.paid_at is None

    async def test_invoice_of_another_agent_rejected(self, db, make_agent, make_invoice):
        """Invoices are only commissioned for their own agent."""
        agent = await make_agent()
        other = await make_agent()
        invoice = await make_invoice(other, lines=[("dive", "100.00")])

        with pytest.raises(CommissionError, match="Invoice does not belong to this agent"):
            await AgentCommissionService.calculate_commission_for_invoice(db, agent.id, invoice.id)

    async def test_duplicate_rejected(self, db, make_agent, make_invoice):
        """An invoice has at most one active commission per agent."""
        agent = await make_agent()
        invoice = await make_invoice(agent, lines=[("dive", "100.00")])
        await AgentCommissionService.calculate_commission_for_invoice(db, agent.id, invoice.id)

        with pytest.raises(CommissionError, match="Commission already calculated for this invoice"):
            await AgentCommissionService.calculate_commission_for_invoice(db, agent.id, invoice.id)

    async def test_agent_without_terms_rejected(self, db, make_agent, make_invoice):
        """Commercial terms are required."""
        agent = await make_agent(with_terms=False)
        invoice = await make_invoice(agent, lines=[("dive", "100.00")])

        with pytest.raises(CommissionError, match="Agent has no commercial terms defined"):
            await AgentCommissionService.calculate_commission_for_invoice(db, agent.id, invoice.id)

    async def test_invoice_before_window_rejected(self, db, make_agent, make_invoice):
        """Invoices dated before commission_valid_from earn nothing."""
        agent = await make_agent(commission_valid_from=date(2026, 4, 1))
        invoice = await make_invoice(agent, lines=[("dive", "100.00")], invoice_date=date(2026, 3, 31))

        with pytest.raises(CommissionError, match="before commission valid from date"):
            await AgentCommissionService.calculate_commission_for_invoice(db, agent.id, invoice.id)

    async def test_invoice_after_window_rejected(self, db, make_agent, make_invoice):
        """Invoices dated after commission_valid_until earn nothing."""
        agent = await make_agent(commission_valid_until=date(2026, 3, 1))
        invoice = await make_invoice(agent, lines=[("dive", "100.00")], invoice_date=date(2026, 3, 2))

        with pytest.raises(CommissionError, match="after commission valid until date"):
            await AgentCommissionService.calculate_commission_for_invoice(db, agent.id, invoice.id)

    async def test_window_bounds_are_inclusive(self, db, make_agent, make_invoice):
        """An invoice dated on the window edge is commissioned."""
        agent = await make_agent(
            commission_valid_from=date(2026, 3, 15),
            commission_valid_until=date(2026, 3, 15),
        )
        invoice = await make_invoice(agent, lines=[("dive", "100.00")], invoice_date=date(2026, 3, 15))

        commission = await AgentCommissionService.calculate_commission_for_invoice(db, agent.id, invoice.id)

        assert commission.commission_amount == Decimal("10.00")

    async def test_unknown_agent(self, db, make_agent, make_invoice):
        """Missing agents raise RecordNotFoundError."""
        agent = await make_agent()
        invoice = await make_invoice(agent, lines=[("dive", "100.00")])

        with pytest.raises(RecordNotFoundError):
            await AgentCommissionService.calculate_commission_for_invoice(db, 9999, invoice.id)

    async def test_agent_of_another_dive_center(self, db, make_agent, make_invoice, dive_center):
        """Agents are looked up inside the caller's dive center."""
        agent = await make_agent()
        invoice = await make_invoice(agent, lines=[("dive", "100.00")])

        with pytest.raises(RecordNotFoundError):
            await AgentCommissionService.calculate_commission_for_invoice(
                db, agent.id, invoice.id, dive_center_id=dive_center.id + 1
            )

    async def test_recalculate_after_cancel_reuses_row(self, db, make_agent, make_invoice):
        """A cancelled commission is recalculated in place, back to Pending."""
        agent = await make_agent()
        invoice = await make_invoice(agent, lines=[("dive", "300.00")])
        first = await AgentCommissionService.calculate_commission_for_invoice(db, agent.id, invoice.id)
        await AgentCommissionService.update_commission_status(db, first.id, "Paid")
        await AgentCommissionService.cancel_commission(db, first.id)

        again = await AgentCommissionService.calculate_commission_for_invoice(db, agent.id, invoice.id)

        assert again.id == first.id
        assert again.status == "Pending"
        assert again.paid_at is None
        assert again.commission_amount == Decimal("30.00")


class TestCalculateCommissionsForAgent:
    """Tests for the batch calculation."""

    async def test_all_uncommissioned_invoices(self, db, make_agent, make_invoice):
        """Every invoice of the agent without an active commission is processed."""
        agent = await make_agent()
        await make_invoice(agent, lines=[("dive", "100.00")])
        await make_invoice(agent, lines=[("dive", "200.00")])

        commissions = await AgentCommissionService.calculate_commissions_for_agent(db, agent.id)

        assert sorted(c.commission_amount for c in commissions) == [Decimal("10.00"), Decimal("20.00")]
        assert await AgentCommissionService.calculate_commissions_for_agent(db, agent.id) == []

    async def test_failing_invoice_is_skipped_and_logged(self, db, make_agent, make_invoice, caplog):
        """An invoice outside the commission window does not stop the batch."""
        agent = await make_agent(commission_valid_from=date(2026, 3, 1))
        early = await make_invoice(agent, lines=[("dive", "100.00")], invoice_date=date(2026, 2, 1))
        ok = await make_invoice(agent, lines=[("dive", "200.00")], invoice_date=date(2026, 3, 2))

        with caplog.at_level(logging.WARNING, logger="diveops.services.commission_service"):
            commissions = await AgentCommissionService.calculate_commissions_for_agent(db, agent.id)

        assert [c.invoice_id for c in commissions] == [ok.id]
        assert f"invoice {early.id}" in caplog.text

    async def test_explicit_invoice_ids(self, db, make_agent, make_invoice):
        """Only the requested invoices of the agent are processed."""
        agent = await make_agent()
        other = await make_agent()
        wanted = await make_invoice(agent, lines=[("dive", "100.00")])
        await make_invoice(agent, lines=[("dive", "200.00")])
        foreign = await make_invoice(other, lines=[("dive", "300.00")])

        commissions = await AgentCommissionService.calculate_commissions_for_agent(
            db, agent.id, [wanted.id, foreign.id]
        )

        assert [c.invoice_id for c in commissions] == [wanted.id]

    async def test_database_failure_keeps_earlier_commissions_readable(self, db, make_agent, make_invoice):
        """A failed insert rolls back only that invoice; commissions already saved stay usable."""
        agent = await make_agent()
        first = await make_invoice(agent, lines=[("dive", "100.00")])
        blocked = await make_invoice(agent, lines=[("dive", "200.00")])
        third = await make_invoice(agent, lines=[("dive", "300.00")])
        await _block_commission_insert(db, blocked.id)

        commissions = await AgentCommissionService.calculate_commissions_for_agent(db, agent.id)

        assert [c.invoice_id for c in commissions] == [first.id, third.id]
        assert [c.commission_amount for c in commissions] == [Decimal("10.00"), Decimal("30.00")]
        assert all(c.status == "Pending" for c in commissions)


class TestCommissionStatus:
    """Tests for status updates and listing."""

    async def test_mark_paid_sets_paid_at(self, db, make_agent, make_invoice):
        """Pending -> Paid records the payment time."""
        agent = await make_agent()
        invoice = await make_invoice(agent, lines=[("dive", "100.00")])
        commission = await AgentCommissionService.calculate_commission_for_invoice(db, agent.id, invoice.id)

        paid = await AgentCommissionService.update_commission_status(db, commission.id, "Paid", notes="Bank transfer")

        assert paid.status == "Paid"
        assert paid.paid_at is not None
        assert paid.notes == "Bank transfer"

    async def test_paid_cannot_return_to_pending(self, db, make_agent, make_invoice):
        """Paid -> Pending is not allowed."""
        agent = await make_agent()
        invoice = await make_invoice(agent, lines=[("dive", "100.00")])
        commission = await AgentCommissionService.calculate_commission_for_invoice(db, agent.id, invoice.id)
        await AgentCommissionService.update_commission_status(db, commission.id, "Paid")

        with pytest.raises(CommissionError, match="from Paid to Pending"):
            await AgentCommissionService.update_commission_status(db, commission.id, "Pending")

    async def test_cancelled_cannot_be_paid(self, db, make_agent, make_invoice):
        """Cancelled commissions only come back through recalculation."""
        agent = await make_agent()
        invoice = await make_invoice(agent, lines=[("dive", "100.00")])
        commission = await AgentCommissionService.calculate_commission_for_invoice(db, agent.id, invoice.id)
        await AgentCommissionService.cancel_commission(db, commission.id)

        with pytest.raises(CommissionError):
            await AgentCommissionService.update_commission_status(db, commission.id, "Paid")

    async def test_unknown_status_rejected(self, db, make_agent, make_invoice):
        """Only Pending, Paid and Cancelled exist."""
        agent = await make_agent()
        invoice = await make_invoice(agent, lines=[("dive", "100.00")])
        commission = await AgentCommissionService.calculate_commission_for_invoice(db, agent.id, invoice.id)

        with pytest.raises(CommissionError, match="Unknown commission status"):
            await AgentCommissionService.update_commission_status(db, commission.id, "Refunded")

    async def test_unknown_commission(self, db):
        """Missing commissions raise RecordNotFoundError."""
        with pytest.raises(RecordNotFoundError):
            await AgentCommissionService.update_commission_status(db, 9999, "Paid")

    async def test_list_filters_by_status(self, db, make_agent, make_invoice):
        """Listing can be restricted to one status."""
        agent = await make_agent()
        first = await make_invoice(agent, lines=[("dive", "100.00")])
        second = await make_invoice(agent, lines=[("dive", "200.00")])
        paid = await AgentCommissionService.calculate_commission_for_invoice(db, agent.id, first.id)
        await AgentCommissionService.calculate_commission_for_invoice(db, agent.id, second.id)
        await AgentCommissionService.update_commission_status(db, paid.id, "Paid")

        all_commissions = await AgentCommissionService.list_commissions(db, agent.id)
        paid_only = await AgentCommissionService.list_commissions(db, agent.id, "Paid")

        assert len(all_commissions) == 2
        assert [c.id for c in paid_only] == [paid.id]

    async def test_failed_commit_rolls_back(self, db, make_agent, make_invoice):
        """A database error on update is re-raised and the stored status is unchanged."""
        agent = await make_agent()
        invoice = await make_invoice(agent, lines=[("dive", "100.00")])
        commission = await AgentCommissionService.calculate_commission_for_invoice(db, agent.id, invoice.id)
        await db.execute(text(
            "CREATE TRIGGER block_commission_update BEFORE UPDATE ON agent_commissions "
            "BEGIN SELECT RAISE(ABORT, 'commission update blocked'); END"
        ))
        await db.commit()

        with pytest.raises(SQLAlchemyError):
            await AgentCommissionService.update_commission_status(db, commission.id, "Paid")

        (stored,) = await AgentCommissionService.list_commissions(db, agent.id)
        assert stored.status == "Pending"
        assert stored.paid_at is None
