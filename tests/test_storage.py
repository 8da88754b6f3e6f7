"""
Unit tests for storage layer.

Tests schema creation, ledger insertion, and windowed retrieval.
"""

import os
import sqlite3
import tempfile
from datetime import date
from unittest.mock import patch

import pytest

from usage_window.storage.db import get_connection
from usage_window.storage.models import RawUsage, UsageInvoiceItem
from usage_window.storage.repository import (
    RawUsageRepository,
    initialize_schema,
    insert_raw_usage,
    insert_raw_usages,
    insert_usage_invoice_item
)


def make_usage(record_date, account_id="acct-1", amount=1, tracking_id=None):
    """Create a raw usage record."""
    return RawUsage(
        account_id=account_id,
        subscription_id="sub-1",
        usage_name="api_calls",
        record_date=record_date,
        amount=amount,
        tracking_id=tracking_id
    )


@pytest.fixture
def db_path():
    """Initialized database in a temporary directory."""
    with tempfile.TemporaryDirectory() as temp_dir:
        path = os.path.join(temp_dir, "test.db")
        initialize_schema(path)
        yield path


class TestStorageSchema:
    """Test database schema creation and structure."""

    def test_schema_creation(self, db_path):
        """Verify tables are created correctly."""
        conn = get_connection(db_path)
        try:
            cursor = conn.execute("""
                SELECT name FROM sqlite_master
                WHERE type='table' AND name IN ('raw_usage', 'usage_invoice_item')
                ORDER BY name
            """)
            assert [row[0] for row in cursor.fetchall()] == ['raw_usage', 'usage_invoice_item']

            cursor = conn.execute("PRAGMA table_info(raw_usage)")
            column_names = [col[1] for col in cursor.fetchall()]
            assert column_names == [
                'id', 'account_id', 'subscription_id', 'usage_name',
                'record_date', 'amount', 'tracking_id'
            ]
        finally:
            conn.close()

    def test_connection_rows_addressable_by_name(self, db_path):
        """Ledger rows can be read by column name."""
        insert_raw_usage(make_usage(date(2015, 3, 2), amount=4), db_path)
        conn = get_connection(db_path)
        try:
            row = conn.execute("SELECT usage_name, amount FROM raw_usage").fetchone()
            assert row["usage_name"] == "api_calls"
            assert row["amount"] == 4
        finally:
            conn.close()

    def test_schema_creation_is_idempotent(self, db_path):
        """Running schema creation twice is harmless."""
        initialize_schema(db_path)
        insert_raw_usage(make_usage(date(2015, 1, 1)), db_path)
        initialize_schema(db_path)
        assert len(RawUsageRepository(db_path).get_raw_usage_for_account(
            "acct-1", date(2015, 1, 1), date(2015, 2, 1)
        )) == 1


class TestRawUsage:
    """Test raw usage insertion and windowed reads."""

    def test_insert_single_usage(self, db_path):
        insert_raw_usage(make_usage(date(2015, 3, 2), amount=7, tracking_id="t-1"), db_path)

        rows = RawUsageRepository(db_path).get_raw_usage_for_account(
            "acct-1", date(2015, 3, 1), date(2015, 4, 1)
        )
        assert len(rows) == 1
        assert rows[0].record_date == date(2015, 3, 2)
        assert rows[0].amount == 7
        assert rows[0].tracking_id == "t-1"
        assert rows[0].usage_name == "api_calls"

    def test_window_is_half_open(self, db_path):
        """Start date is included, end date is excluded."""
        insert_raw_usages([
            make_usage(date(2015, 2, 28)),
            make_usage(date(2015, 3, 1)),
            make_usage(date(2015, 3, 31)),
            make_usage(date(2015, 4, 1)),
        ], db_path)

        rows = RawUsageRepository(db_path).get_raw_usage_for_account(
            "acct-1", date(2015, 3, 1), date(2015, 4, 1)
        )
        assert [row.record_date for row in rows] == [date(2015, 3, 1), date(2015, 3, 31)]

    def test_rows_ordered_by_record_date(self, db_path):
        insert_raw_usages([
            make_usage(date(2015, 3, 20)),
            make_usage(date(2015, 3, 5)),
        ], db_path)

        rows = RawUsageRepository(db_path).get_raw_usage_for_account(
            "acct-1", date(2015, 3, 1), date(2015, 4, 1)
        )
        assert [row.record_date for row in rows] == [date(2015, 3, 5), date(2015, 3, 20)]

    def test_other_accounts_excluded(self, db_path):
        insert_raw_usages([
            make_usage(date(2015, 3, 5)),
            make_usage(date(2015, 3, 6), account_id="acct-2"),
        ], db_path)

        rows = RawUsageRepository(db_path).get_raw_usage_for_account(
            "acct-2", date(2015, 3, 1), date(2015, 4, 1)
        )
        assert len(rows) == 1
        assert rows[0].account_id == "acct-2"

    def test_insert_empty_list_is_noop(self, db_path):
        insert_raw_usages([], db_path)
        assert RawUsageRepository(db_path).get_raw_usage_for_account(
            "acct-1", date(2000, 1, 1), date(2100, 1, 1)
        ) == []

    def test_batch_insert_rolls_back_on_error(self, db_path):
        """A failing record leaves no partial batch behind."""
        usages = [make_usage(date(2015, 3, 5)), make_usage(date(2015, 3, 6))]
        with patch(
            'usage_window.storage.repository._raw_usage_params',
            side_effect=[
                ("acct-1", "sub-1", "api_calls", "2015-03-05", 1, None),
                ("acct-1", "sub-1", None, "2015-03-06", 1, None),
            ]
        ):
            with pytest.raises(sqlite3.IntegrityError):
                insert_raw_usages(usages, db_path)

        assert RawUsageRepository(db_path).get_raw_usage_for_account(
            "acct-1", date(2015, 1, 1), date(2016, 1, 1)
        ) == []

    def test_missing_schema_raises(self):
        """Reading before initialization surfaces the sqlite error."""
        with tempfile.TemporaryDirectory() as temp_dir:
            repository = RawUsageRepository(os.path.join(temp_dir, "empty.db"))
            with pytest.raises(sqlite3.OperationalError, match="no such table"):
                repository.get_raw_usage_for_account("acct-1", date(2015, 1, 1), date(2015, 2, 1))


class TestUsageInvoiceItems:
    """Test invoiced usage item storage."""

    def test_insert_and_fetch_items(self, db_path):
        insert_usage_invoice_item(UsageInvoiceItem(
            account_id="acct-1",
            subscription_id="sub-1",
            usage_name="api_calls",
            start_date=date(2015, 2, 1),
            end_date=date(2015, 3, 1),
            amount=12.5
        ), db_path)
        insert_usage_invoice_item(UsageInvoiceItem(
            account_id="acct-1",
            subscription_id="sub-1",
            usage_name="api_calls",
            start_date=date(2015, 1, 1),
            end_date=date(2015, 2, 1)
        ), db_path)
        insert_usage_invoice_item(UsageInvoiceItem(
            account_id="acct-2",
            subscription_id="sub-2",
            usage_name="api_calls",
            start_date=date(2015, 1, 1),
            end_date=date(2015, 2, 1)
        ), db_path)

        items = RawUsageRepository(db_path).get_usage_invoice_items("acct-1")
        assert [item.end_date for item in items] == [date(2015, 2, 1), date(2015, 3, 1)]
        assert items[1].amount == 12.5
        assert items[0].amount == 0.0

    def test_item_period_must_be_logical(self):
        with pytest.raises(ValueError, match="start_date must not be after end_date"):
            UsageInvoiceItem(
                account_id="acct-1",
                subscription_id="sub-1",
                usage_name="api_calls",
                start_date=date(2015, 3, 1),
                end_date=date(2015, 2, 1)
            )

    def test_item_may_start_and_end_on_same_day(self):
        item = UsageInvoiceItem(
            account_id="acct-1",
            subscription_id="sub-1",
            usage_name="api_calls",
            start_date=date(2015, 3, 1),
            end_date=date(2015, 3, 1)
        )
        assert item.start_date == item.end_date
