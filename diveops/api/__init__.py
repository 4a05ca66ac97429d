"""
API routers.
"""

from diveops.api import agent_commissions, currency, invoices, pricing, taxes

__all__ = [
    "agent_commissions",
    "currency",
    "invoices",
    "pricing",
    "taxes",
]
