"""
Dive Center Operations API - Main application entry point.

Pricing and commission core of the dive center platform: dive price
resolution, agent commissions, currency conversion and invoice totals.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from diveops.config import get_settings
from diveops.api import (
    agent_commissions,
    currency,
    invoices,
    pricing,
    taxes,
)

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info(f"Starting {settings.app_name}...")
    yield
    logger.info(f"Shutting down {settings.app_name}...")


app = FastAPI(
    title=settings.app_name,
    description="""
    ## Dive Center Operations API

    - **Dive Pricing**: SINGLE, RANGE and TIERED price lists with priority rules
    - **Agent Commissions**: commissionable amounts, VAT, Pending/Paid/Cancelled lifecycle
    - **Currencies**: conversion through the dive center's base currency
    - **Invoices**: discount, service charge and T-GST (inclusive or exclusive)

    ### Dive center
    Every endpoint acts for the dive center given in the `X-Dive-Center-Id` header.
    """,
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(pricing.router, prefix="/pricing", tags=["Dive Pricing"])
app.include_router(agent_commissions.router, tags=["Agent Commissions"])  # /agents/... and /commissions/...
app.include_router(currency.router, prefix="/currency", tags=["Currency"])
app.include_router(taxes.router, prefix="/taxes", tags=["Taxes"])
app.include_router(invoices.router, prefix="/invoices", tags=["Invoices"])


@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": "1.0.0",
    }
