"""
SQLAlchemy models for the dive center platform.
Dive-center-scoped models inherit from DiveCenterBase.
"""

from diveops.models.base import Base, DiveCenterBase, TimestampMixin
from diveops.models.dive_center import DiveCenter
from diveops.models.price_list import PriceList, PriceListItem, PriceListItemTier
from diveops.models.agent import Agent, AgentCommercialTerms, AgentContract, AgentCommission
from diveops.models.booking import Booking, BookingDive
from diveops.models.invoice import Invoice, InvoiceItem
from diveops.models.tax import Tax

__all__ = [
    "Base",
    "DiveCenterBase",
    "TimestampMixin",
    "DiveCenter",
    "PriceList",
    "PriceListItem",
    "PriceListItemTier",
    "Agent",
    "AgentCommercialTerms",
    "AgentContract",
    "AgentCommission",
    "Booking",
    "BookingDive",
    "Invoice",
    "InvoiceItem",
    "Tax",
]
