"""
Database connection management.

Opens the SQLite file holding the raw usage ledger and invoiced usage items.
"""

import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = "usage_window.db"


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Open the usage ledger database.

    Rows come back as sqlite3.Row so repositories can read columns by name.
    Dates are stored as ISO-8601 text and parsed by the caller.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLite connection with name-addressable rows
    """
    conn = sqlite3.connect(str(Path(db_path)))
    conn.row_factory = sqlite3.Row
    return conn
