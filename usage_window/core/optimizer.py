"""
Raw usage window optimization.

Decides how far back the raw usage ledger must be re-read when arrears
usage charges are recomputed. Every billing period in use keeps a
high-water mark: the end date of its most recent invoiced usage item.
Re-reading starts a configured number of periods before the earliest
of those marks, and never before the first unbilled event.
"""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum, auto
from typing import Dict, Iterable, List, Optional, Protocol

from .billing_period import BillingPeriod, shift_months
from .catalog import UsageCatalog
from usage_window.config.loader import InvoiceConfig
from usage_window.storage.models import RawUsage, UsageInvoiceItem

logger = logging.getLogger(__name__)


class SlotState(Enum):
    """Search state of one billing period during a scan."""
    INACTIVE = auto()   # Period not used by the catalog, never binds
    UNMATCHED = auto()  # Period in use, no invoiced item found yet
    MATCHED = auto()    # Most recent invoiced end date found


@dataclass(frozen=True)
class PeriodSlot:
    """Per-period entry of the high-water mark table."""
    state: SlotState
    end_date: Optional[date] = None

    @classmethod
    def matched(cls, end_date: date) -> "PeriodSlot":
        return cls(SlotState.MATCHED, end_date)


INACTIVE_SLOT = PeriodSlot(SlotState.INACTIVE)
UNMATCHED_SLOT = PeriodSlot(SlotState.UNMATCHED)


class RawUsageProvider(Protocol):
    """Source of raw usage rows for an account."""

    def get_raw_usage_for_account(
        self,
        account_id: str,
        start_date: date,
        end_date: date
    ) -> List[RawUsage]:
        ...


def build_period_slots(
    existing_usage_items: Iterable[UsageInvoiceItem],
    catalog: UsageCatalog
) -> Dict[BillingPeriod, PeriodSlot]:
    """Compute the most recent invoiced end date for each billing period.

    Args:
        existing_usage_items: Usage items already invoiced, in any order
        catalog: Known usage definitions

    Returns:
        One slot per BillingPeriod

    Raises:
        UnknownUsageError: If an item references a usage absent from the catalog
    """
    active_periods = catalog.billing_periods()
    slots = {
        period: UNMATCHED_SLOT if period in active_periods else INACTIVE_SLOT
        for period in BillingPeriod
    }
    pending = len(active_periods)

    # Latest first, so the first hit per period is its high-water mark
    sorted_items = sorted(existing_usage_items, key=lambda item: item.end_date, reverse=True)
    for scanned, item in enumerate(sorted_items, start=1):
        period = catalog.get_billing_period(item.usage_name)
        if slots[period].state != SlotState.UNMATCHED:
            continue
        slots[period] = PeriodSlot.matched(item.end_date)
        pending -= 1
        if pending == 0:
            logger.debug("All billing periods matched after %d of %d items", scanned, len(sorted_items))
            break

    return slots


def compute_raw_usage_start_date(
    first_event_start_date: date,
    target_date: date,
    existing_usage_items: Iterable[UsageInvoiceItem],
    catalog: UsageCatalog,
    max_lookback_periods: int
) -> date:
    """Compute the earliest date raw usage must be re-read from.

    Args:
        first_event_start_date: Earliest date an unbilled usage event can exist
        target_date: Date up to which usage is invoiced
        existing_usage_items: Usage items already invoiced, in any order
        catalog: Known usage definitions
        max_lookback_periods: Billing periods to re-read before each high-water mark

    Returns:
        Start date, never earlier than first_event_start_date

    Raises:
        UnknownUsageError: If an item references a usage absent from the catalog
    """
    existing_usage_items = list(existing_usage_items)
    if not existing_usage_items:
        return first_event_start_date

    slots = build_period_slots(existing_usage_items, catalog)

    candidates = []
    for period, slot in slots.items():
        if period == BillingPeriod.NO_BILLING_PERIOD or slot.state != SlotState.MATCHED:
            continue
        lookback_months = max_lookback_periods * period.months_per_period
        candidates.append(shift_months(slot.end_date, -lookback_months))

    if not candidates:
        result = first_event_start_date
    else:
        result = max(first_event_start_date, min(min(candidates), target_date))

    logger.info(
        "Raw usage start date = %s, first event start date = %s",
        result,
        first_event_start_date
    )
    return result


class RawUsageOptimizer:
    """Fetches the raw usage needed to recompute arrears usage charges.

    Narrows the read window using already-invoiced items unless the
    lookback is configured to 0.
    """

    def __init__(self, config: InvoiceConfig, usage_api: RawUsageProvider):
        self.config = config
        self.usage_api = usage_api

    def get_raw_usage_start_date(
        self,
        first_event_start_date: date,
        target_date: date,
        existing_usage_items: Iterable[UsageInvoiceItem],
        catalog: UsageCatalog
    ) -> date:
        """Start date of the read window, honoring the disabled fast path."""
        if self.config.max_raw_usage_previous_period == 0:
            return first_event_start_date
        return compute_raw_usage_start_date(
            first_event_start_date,
            target_date,
            existing_usage_items,
            catalog,
            self.config.max_raw_usage_previous_period
        )

    def get_consumable_in_arrear_usage(
        self,
        account_id: str,
        first_event_start_date: date,
        target_date: date,
        existing_usage_items: Iterable[UsageInvoiceItem],
        catalog: UsageCatalog
    ) -> List[RawUsage]:
        """Fetch raw usage between the optimized start date and target_date."""
        start_date = self.get_raw_usage_start_date(
            first_event_start_date, target_date, existing_usage_items, catalog
        )
        return self.usage_api.get_raw_usage_for_account(account_id, start_date, target_date)
