"""
Agent performance - referral and revenue figures for the agent report.
"""

from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from diveops.models.agent import Agent, AgentCommission
from diveops.models.booking import Booking, BookingDive
from diveops.models.invoice import Invoice
from diveops.services.exceptions import RecordNotFoundError


class AgentPerformanceService:
    """Aggregates bookings, invoices and commissions attributed to an agent."""

    @staticmethod
    async def total_clients_referred(db: AsyncSession, agent_id: int) -> int:
        result = await db.execute(
            select(func.count(func.distinct(Booking.customer_id))).where(Booking.agent_id == agent_id)
        )
        return result.scalar_one() or 0

    @staticmethod
    async def total_dives_booked(db: AsyncSession, agent_id: int) -> int:
        result = await db.execute(
            select(func.count(BookingDive.id))
            .join(Booking, BookingDive.booking_id == Booking.id)
            .where(Booking.agent_id == agent_id)
        )
        return result.scalar_one() or 0

    @staticmethod
    async def total_revenue(db: AsyncSession, agent_id: int) -> Decimal:
        result = await db.execute(
            select(func.coalesce(func.sum(Invoice.total), 0)).where(Invoice.agent_id == agent_id)
        )
        return Decimal(str(result.scalar_one())).quantize(Decimal("0.01"))

    @staticmethod
    async def total_commission_earned(db: AsyncSession, agent_id: int) -> Decimal:
        result = await db.execute(
            select(func.coalesce(func.sum(AgentCommission.commission_amount), 0)).where(
                AgentCommission.agent_id == agent_id,
                AgentCommission.status != "Cancelled",
            )
        )
        return Decimal(str(result.scalar_one())).quantize(Decimal("0.01"))

    @staticmethod
    async def last_booking_date(db: AsyncSession, agent_id: int) -> Optional[date]:
        result = await db.execute(
            select(func.max(Booking.booking_date)).where(Booking.agent_id == agent_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def active_clients(db: AsyncSession, agent_id: int, days: int, today: Optional[date] = None) -> int:
        since = (today or date.today()) - timedelta(days=days)
        result = await db.execute(
            select(func.count(func.distinct(Booking.customer_id))).where(
                Booking.agent_id == agent_id,
                Booking.booking_date >= since,
            )
        )
        return result.scalar_one() or 0

    @staticmethod
    async def get_summary(
        db: AsyncSession,
        agent_id: int,
        active_days: int = 30,
        dive_center_id: Optional[int] = None,
        today: Optional[date] = None,
    ) -> dict:
        agent = await db.get(Agent, agent_id)
        if agent is None or (dive_center_id is not None and agent.dive_center_id != dive_center_id):
            raise RecordNotFoundError("Agent", agent_id)

        clients = await AgentPerformanceService.total_clients_referred(db, agent_id)
        revenue = await AgentPerformanceService.total_revenue(db, agent_id)
        average = (
            (revenue / clients).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
            if clients else Decimal("0.00")
        )

        return {
            "agent_id": agent_id,
            "total_clients_referred": clients,
            "total_dives_booked": await AgentPerformanceService.total_dives_booked(db, agent_id),
            "total_revenue_generated": revenue,
            "total_commission_earned": await AgentPerformanceService.total_commission_earned(db, agent_id),
            "average_revenue_per_client": average,
            "last_booking_date": await AgentPerformanceService.last_booking_date(db, agent_id),
            "active_clients": await AgentPerformanceService.active_clients(db, agent_id, active_days, today),
        }
