"""Database connection manager for SQLite."""

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path

from dotenv import load_dotenv

from .schema import SCHEMA

load_dotenv(override=True)

DB_PATH = Path(os.environ.get("CLINIC_DB_PATH", Path(__file__).parent.parent / "clinic_booking.db"))
DB_TIMEOUT = float(os.environ.get("CLINIC_DB_TIMEOUT", "5"))


def get_connection() -> sqlite3.Connection:
    """Get a database connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(DB_PATH, timeout=DB_TIMEOUT)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_database() -> None:
    """Initialize the database with schema and default settings."""
    conn = get_connection()
    try:
        conn.executescript(SCHEMA)
        conn.commit()
    finally:
        conn.close()


@contextmanager
def transaction():
    """Open a write transaction that holds the database write lock until it ends.

    BEGIN IMMEDIATE takes SQLite's reserved lock up front, so a check made
    inside the block cannot be invalidated by another writer before commit.
    The transaction rolls back if the block raises.
    """
    conn = get_connection()
    try:
        conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()
