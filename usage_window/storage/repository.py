"""
Repository pattern for data access.

Reads and appends raw usage and invoiced usage items.
"""

from datetime import date
from typing import List

from .db import DEFAULT_DB_PATH, get_connection
from .models import RawUsage, UsageInvoiceItem

_INSERT_RAW_USAGE = """
    INSERT INTO raw_usage
    (account_id, subscription_id, usage_name, record_date, amount, tracking_id)
    VALUES (?, ?, ?, ?, ?, ?)
"""


class RawUsageRepository:
    """Repository for the raw usage ledger and invoiced usage items.

    Acts as the raw usage provider and existing charges source for the
    optimizer.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def get_raw_usage_for_account(
        self,
        account_id: str,
        start_date: date,
        end_date: date
    ) -> List[RawUsage]:
        """Get raw usage recorded in [start_date, end_date).

        Args:
            account_id: Account to read usage for
            start_date: Inclusive lower bound on record_date
            end_date: Exclusive upper bound on record_date

        Returns:
            Raw usage ordered by record_date (oldest first)
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute("""
                SELECT account_id, subscription_id, usage_name, record_date,
                       amount, tracking_id
                FROM raw_usage
                WHERE account_id = ? AND record_date >= ? AND record_date < ?
                ORDER BY record_date, id
            """, (account_id, start_date.isoformat(), end_date.isoformat()))
            return [
                RawUsage(
                    account_id=row["account_id"],
                    subscription_id=row["subscription_id"],
                    usage_name=row["usage_name"],
                    record_date=date.fromisoformat(row["record_date"]),
                    amount=row["amount"],
                    tracking_id=row["tracking_id"]
                )
                for row in cursor.fetchall()
            ]
        finally:
            conn.close()

    def get_usage_invoice_items(self, account_id: str) -> List[UsageInvoiceItem]:
        """Get all usage items already invoiced for an account.

        Returns:
            Usage invoice items ordered by end_date (oldest first)
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute("""
                SELECT account_id, subscription_id, usage_name, start_date,
                       end_date, amount
                FROM usage_invoice_item
                WHERE account_id = ?
                ORDER BY end_date, id
            """, (account_id,))
            return [
                UsageInvoiceItem(
                    account_id=row["account_id"],
                    subscription_id=row["subscription_id"],
                    usage_name=row["usage_name"],
                    start_date=date.fromisoformat(row["start_date"]),
                    end_date=date.fromisoformat(row["end_date"]),
                    amount=row["amount"]
                )
                for row in cursor.fetchall()
            ]
        finally:
            conn.close()


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the raw_usage and usage_invoice_item tables if they don't exist.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS raw_usage (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                account_id TEXT NOT NULL,
                subscription_id TEXT NOT NULL,
                usage_name TEXT NOT NULL,
                record_date TEXT NOT NULL,
                amount INTEGER NOT NULL,
                tracking_id TEXT
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS raw_usage_account_date
            ON raw_usage (account_id, record_date)
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS usage_invoice_item (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                account_id TEXT NOT NULL,
                subscription_id TEXT NOT NULL,
                usage_name TEXT NOT NULL,
                start_date TEXT NOT NULL,
                end_date TEXT NOT NULL,
                amount REAL NOT NULL DEFAULT 0
            )
        """)
        conn.commit()
    finally:
        conn.close()


def insert_raw_usage(usage: RawUsage, db_path: str = DEFAULT_DB_PATH) -> None:
    """Append a single raw usage record to the ledger.

    Args:
        usage: The raw usage to record
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute(_INSERT_RAW_USAGE, _raw_usage_params(usage))
        conn.commit()
    finally:
        conn.close()


def insert_raw_usages(usages: List[RawUsage], db_path: str = DEFAULT_DB_PATH) -> None:
    """Append multiple raw usage records atomically.

    All records are inserted in a single transaction.

    Args:
        usages: Raw usage records to append
        db_path: Path to SQLite database file
    """
    if not usages:
        return

    conn = get_connection(db_path)
    try:
        conn.execute("BEGIN TRANSACTION")
        for usage in usages:
            conn.execute(_INSERT_RAW_USAGE, _raw_usage_params(usage))
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def insert_usage_invoice_item(item: UsageInvoiceItem, db_path: str = DEFAULT_DB_PATH) -> None:
    """Record a usage item that has been invoiced.

    Args:
        item: The invoiced usage item
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            INSERT INTO usage_invoice_item
            (account_id, subscription_id, usage_name, start_date, end_date, amount)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (
            item.account_id,
            item.subscription_id,
            item.usage_name,
            item.start_date.isoformat(),
            item.end_date.isoformat(),
            item.amount
        ))
        conn.commit()
    finally:
        conn.close()


def _raw_usage_params(usage: RawUsage) -> tuple:
    return (
        usage.account_id,
        usage.subscription_id,
        usage.usage_name,
        usage.record_date.isoformat(),
        usage.amount,
        usage.tracking_id
    )
