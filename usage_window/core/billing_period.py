"""
Billing periods and month arithmetic.

Defines the cadences usage can be billed on and how dates move by them.
"""

from datetime import date
from enum import Enum

from dateutil.relativedelta import relativedelta


class BillingPeriod(Enum):
    """Recurring billing cadences, each spanning a whole number of months."""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    BIANNUAL = "biannual"
    ANNUAL = "annual"
    BIENNIAL = "biennial"
    NO_BILLING_PERIOD = "no_billing_period"

    @property
    def months_per_period(self) -> int:
        """Number of months covered by one period."""
        return _MONTHS_PER_PERIOD[self]


_MONTHS_PER_PERIOD = {
    BillingPeriod.MONTHLY: 1,
    BillingPeriod.QUARTERLY: 3,
    BillingPeriod.BIANNUAL: 6,
    BillingPeriod.ANNUAL: 12,
    BillingPeriod.BIENNIAL: 24,
    BillingPeriod.NO_BILLING_PERIOD: 0,
}


def shift_months(day: date, months: int) -> date:
    """Move a date by a number of months (negative moves back).

    Days past the end of the target month are clamped to its last day,
    so 2015-03-31 shifted by -1 gives 2015-02-28. Shifts past the
    representable range saturate at date.min or date.max.
    """
    try:
        return day + relativedelta(months=months)
    except (ValueError, OverflowError):
        return date.min if months < 0 else date.max
