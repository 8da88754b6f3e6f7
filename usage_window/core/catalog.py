"""
Usage catalog lookups.

Maps usage names to their catalog definitions and billing periods.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Set

from .billing_period import BillingPeriod


class UnknownUsageError(ValueError):
    """Raised when a usage name does not resolve in the catalog.

    Signals stale or inconsistent catalog state rather than a bug in the
    caller, so it is kept distinct from plain ValueError.
    """
    def __init__(self, usage_name: str):
        super().__init__(f"Unknown usage: {usage_name}")
        self.usage_name = usage_name


@dataclass(frozen=True)
class UsageDefinition:
    """Catalog entry for a metered usage."""
    name: str
    billing_period: BillingPeriod

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("usage name cannot be empty")


@dataclass(frozen=True)
class UsageCatalog:
    """Known usage definitions keyed by usage name, read-only once built."""
    usages: Mapping[str, UsageDefinition] = field(hash=False)

    def __post_init__(self):
        object.__setattr__(self, "usages", MappingProxyType(dict(self.usages)))

    @classmethod
    def from_definitions(cls, definitions: Iterable[UsageDefinition]) -> "UsageCatalog":
        """Build a catalog from definitions, rejecting duplicate names."""
        usages = {}
        for definition in definitions:
            if definition.name in usages:
                raise ValueError(f"Duplicate usage: {definition.name}")
            usages[definition.name] = definition
        return cls(usages)

    def get_usage(self, usage_name: str) -> UsageDefinition:
        """Get the definition for a usage name.

        Raises:
            UnknownUsageError: If the usage is not in the catalog
        """
        if usage_name not in self.usages:
            raise UnknownUsageError(usage_name)
        return self.usages[usage_name]

    def get_billing_period(self, usage_name: str) -> BillingPeriod:
        """Get the billing period for a usage name.

        Raises:
            UnknownUsageError: If the usage is not in the catalog
        """
        return self.get_usage(usage_name).billing_period

    def billing_periods(self) -> Set[BillingPeriod]:
        """Billing periods used by at least one catalog entry."""
        return {usage.billing_period for usage in self.usages.values()}

    def __len__(self) -> int:
        return len(self.usages)
