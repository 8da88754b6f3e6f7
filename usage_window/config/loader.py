"""
Configuration management and loading.

Handles invoice settings and the usage catalog.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict

import yaml

from usage_window.core.billing_period import BillingPeriod
from usage_window.core.catalog import UsageCatalog, UsageDefinition


@dataclass(frozen=True)
class InvoiceConfig:
    """Invoice settings used when reading raw usage."""
    max_raw_usage_previous_period: int = 2

    def __post_init__(self):
        """Validate lookback is a non-negative integer (0 disables the optimization)."""
        if isinstance(self.max_raw_usage_previous_period, bool) or not isinstance(self.max_raw_usage_previous_period, int):
            raise ValueError("max_raw_usage_previous_period must be an integer")
        if self.max_raw_usage_previous_period < 0:
            raise ValueError("max_raw_usage_previous_period must be >= 0")


@dataclass(frozen=True)
class WindowConfig:
    """Complete usage window configuration."""
    invoice: InvoiceConfig
    catalog: UsageCatalog


def load_window_config(path: str) -> WindowConfig:
    """Load and validate usage window configuration from YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated WindowConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Usage window config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {'invoice', 'usage'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    if 'invoice' not in raw_config:
        raise ValueError("Missing required 'invoice' section")

    invoice = _parse_invoice_config(raw_config['invoice'])

    usage_data = raw_config.get('usage') or {}
    if not isinstance(usage_data, dict):
        raise ValueError("'usage' must be a dictionary")

    catalog = _parse_usage_catalog(usage_data)

    return WindowConfig(invoice=invoice, catalog=catalog)


def _parse_invoice_config(data: Dict) -> InvoiceConfig:
    """Parse and validate the invoice section.

    Raises:
        ValueError: If configuration is invalid
    """
    if not isinstance(data, dict):
        raise ValueError("'invoice' must be a dictionary")

    allowed_keys = {'max_raw_usage_previous_period'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown invoice keys: {unknown_keys}")

    if 'max_raw_usage_previous_period' not in data:
        raise ValueError("Missing required 'max_raw_usage_previous_period' in invoice")

    return InvoiceConfig(max_raw_usage_previous_period=data['max_raw_usage_previous_period'])


def _parse_usage_catalog(data: Dict) -> UsageCatalog:
    """Parse usage name -> billing period entries.

    Raises:
        ValueError: If a billing period is not recognized
    """
    definitions = []
    for usage_name, period_str in data.items():
        if not isinstance(period_str, str):
            raise ValueError(f"Billing period for usage '{usage_name}' must be a string")
        try:
            period = BillingPeriod(period_str.lower())
        except ValueError:
            valid_periods = [period.value for period in BillingPeriod]
            raise ValueError(f"Billing period for usage '{usage_name}' must be one of: {valid_periods}")
        definitions.append(UsageDefinition(name=str(usage_name), billing_period=period))

    return UsageCatalog.from_definitions(definitions)
