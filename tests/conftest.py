import os

# Settings are read at import time, point them at an in-memory database first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from datetime import date, datetime
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from diveops.database import get_db
from diveops.main import app
from diveops.models import (
    Agent,
    AgentCommercialTerms,
    AgentContract,
    Base,
    DiveCenter,
    Invoice,
    InvoiceItem,
    PriceList,
    PriceListItem,
    PriceListItemTier,
)
from diveops.services.tax_service import TaxService

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(session_maker):
    """HTTP client on the app, one fresh session per request."""

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def clear_tax_cache():
    TaxService.clear_cache()
    yield
    TaxService.clear_cache()


@pytest.fixture
async def dive_center(db):
    center = DiveCenter(
        name="Blue Lagoon Divers",
        currency="USD",
        status="active",
        settings={"currency_rates": {"EUR": 0.92, "MVR": 15.42}},
    )
    db.add(center)
    await db.commit()
    await db.refresh(center)
    return center


@pytest.fixture
async def price_list(db, dive_center):
    price_list = PriceList(dive_center_id=dive_center.id, name="2026 Rates")
    db.add(price_list)
    await db.commit()
    await db.refresh(price_list)
    return price_list


@pytest.fixture
def make_item():
    """Build an unsaved PriceListItem with every pricing attribute set."""

    def _make(
        name="Fun Dive",
        pricing_model="RANGE",
        min_dives=1,
        max_dives=1,
        price="100.00",
        priority=0,
        applicable_to="ALL",
        is_active=True,
        valid_from=None,
        valid_until=None,
        created_at=datetime(2026, 1, 1, 9, 0, 0),
        tiers=None,
        **kwargs,
    ):
        return PriceListItem(
            service_type=kwargs.pop("service_type", "Dive Package"),
            name=name,
            pricing_model=pricing_model,
            min_dives=min_dives,
            max_dives=max_dives,
            price=Decimal(price) if price is not None else None,
            base_price=kwargs.pop("base_price", None),
            priority=priority,
            applicable_to=applicable_to,
            is_active=is_active,
            valid_from=valid_from,
            valid_until=valid_until,
            created_at=created_at,
            price_tiers=tiers or [],
            **kwargs,
        )

    return _make


@pytest.fixture
def add_items(db, price_list):
    """Persist items on the test price list."""

    async def _add(*items):
        for item in items:
            item.price_list_id = price_list.id
        db.add_all(items)
        await db.commit()
        return items

    return _add


@pytest.fixture
def make_tier():
    def _make(from_dives, to_dives, price_per_dive, total_price=None, is_active=True):
        return PriceListItemTier(
            from_dives=from_dives,
            to_dives=to_dives,
            price_per_dive=Decimal(price_per_dive),
            total_price=Decimal(total_price) if total_price is not None else None,
            is_active=is_active,
        )

    return _make


@pytest.fixture
def make_agent(db, dive_center):
    """Persist an agent with commercial terms and an optional contract."""

    async def _make(
        commission_type="Percentage",
        commission_rate="10.00",
        vat_applicable=False,
        exclude_equipment=False,
        include_manual=True,
        commission_valid_from=None,
        commission_valid_until=None,
        with_terms=True,
        center=None,
    ):
        agent = Agent(
            dive_center_id=(center or dive_center).id,
            agent_name="Atoll Travel",
            agent_type="Travel Agent",
            status="Active",
        )
        if with_terms:
            agent.commercial_terms = AgentCommercialTerms(
                commission_type=commission_type,
                commission_rate=Decimal(commission_rate),
                vat_applicable=vat_applicable,
                exclude_equipment_from_commission=exclude_equipment,
                include_manual_items_in_commission=include_manual,
            )
        if commission_valid_from or commission_valid_until:
            agent.contract = AgentContract(
                commission_valid_from=commission_valid_from,
                commission_valid_until=commission_valid_until,
            )
        db.add(agent)
        await db.commit()
        await db.refresh(agent)
        return agent

    return _make


@pytest.fixture
def make_invoice(db, dive_center):
    """Persist an invoice; lines are (kind, total) pairs with kind dive, equipment, excursion or manual."""

    async def _make(agent=None, lines=(), total="0.00", discount="0.00", invoice_date=date(2026, 3, 15)):
        invoice = Invoice(
            dive_center_id=dive_center.id,
            agent_id=agent.id if agent else None,
            invoice_no=f"INV-{invoice_date:%Y%m%d}",
            invoice_date=invoice_date,
            subtotal=Decimal("0.00"),
            discount=Decimal(discount),
            service_charge=Decimal("0.00"),
            tax=Decimal("0.00"),
            total=Decimal(total),
            currency="USD",
            status="Draft",
            invoice_type="Full",
        )
        for kind, line_total in lines:
            invoice.items.append(InvoiceItem(
                description=f"{kind} line",
                quantity=1,
                unit_price=Decimal(line_total),
                total=Decimal(line_total),
                booking_dive_id=301 if kind == "dive" else None,
                booking_equipment_id=101 if kind == "equipment" else None,
                booking_excursion_id=201 if kind == "excursion" else None,
            ))
        db.add(invoice)
        await db.commit()
        await db.refresh(invoice)
        return invoice

    return _make
