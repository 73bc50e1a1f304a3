"""
Maestro Billing - order pricing and bill reconciliation engine

Prices in-progress restaurant orders (items, extras, quantities), applies
stacked discounts and service fees, and keeps a payment ledger per bill
that supports split payments and never accepts an overpayment.
"""

__version__ = "0.1.0"

from . import pricing
from . import utils

__all__ = ["pricing", "utils"]
