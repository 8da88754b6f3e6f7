"""
Data models for storage layer.

Defines raw usage records and already-invoiced usage items.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class RawUsage:
    """Immutable metered usage data point, before any invoicing.

    Append-only records forming the consumption ledger that usage
    invoice items are computed from.
    """
    account_id: str
    subscription_id: str
    usage_name: str
    record_date: date
    amount: int
    tracking_id: Optional[str] = None


@dataclass(frozen=True)
class UsageInvoiceItem:
    """Usage charge already generated on an invoice.

    The optimizer only reads usage_name and end_date.
    """
    account_id: str
    subscription_id: str
    usage_name: str
    start_date: date
    end_date: date
    amount: float = 0.0

    def __post_init__(self):
        """Validate the covered period is logical."""
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
