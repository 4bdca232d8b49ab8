"""
Repository pattern for data access.

Handles the append-only usage ledger. Costs are stored as decimal text
so that the 6-place precision survives the round trip.
"""

import sqlite3
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from doubt_resolver.core.errors import PersistenceError
from .db import DEFAULT_DB_PATH, get_connection
from .models import UsageRecord

_COLUMNS = (
    "created_at, actor_id, subject_request_id, service, model_id, provider, "
    "input_tokens, output_tokens, total_tokens, cost_usd, duration_ms"
)


class UsageRepository:
    """Append-only store for usage records.

    This is the persistence interface the cost tracker writes through.
    Reads exist for the CLI and tests; aggregation lives elsewhere.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def append(self, record: UsageRecord) -> None:
        """Append one record to the ledger.

        Raises:
            PersistenceError: If the database cannot be written
        """
        insert_usage_record(record, self.db_path)

    def get_recent_records(
        self,
        actor_id: Optional[str] = None,
        limit: int = 100
    ) -> List[UsageRecord]:
        """Get recent usage records, newest first."""
        return fetch_recent_usage_records(
            actor_id=actor_id, limit=limit, db_path=self.db_path
        )


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the ai_usage_record table if it doesn't exist.

    This creates an append-only ledger for immutable usage records.
    No UPDATE or DELETE operations should ever be performed on this table.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS ai_usage_record (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TEXT NOT NULL,
                actor_id TEXT,
                subject_request_id TEXT,
                service TEXT NOT NULL,
                model_id TEXT NOT NULL,
                provider TEXT NOT NULL,
                input_tokens INTEGER NOT NULL DEFAULT 0,
                output_tokens INTEGER NOT NULL DEFAULT 0,
                total_tokens INTEGER NOT NULL DEFAULT 0,
                cost_usd TEXT NOT NULL,
                duration_ms INTEGER
            )
        """)
        conn.commit()
    finally:
        conn.close()


def insert_usage_record(record: UsageRecord, db_path: str = DEFAULT_DB_PATH) -> None:
    """Insert a single usage record into the append-only ledger.

    Args:
        record: The usage record to store
        db_path: Path to SQLite database file

    Raises:
        PersistenceError: If the database is unreachable or the write fails
    """
    try:
        conn = get_connection(db_path)
    except sqlite3.Error as e:
        raise PersistenceError(f"Cannot open usage store {db_path}: {e}") from e
    try:
        conn.execute(
            f"INSERT INTO ai_usage_record ({_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                record.created_at.isoformat(),
                record.actor_id,
                record.subject_request_id,
                record.service,
                record.model_id,
                record.provider,
                record.input_tokens,
                record.output_tokens,
                record.total_tokens,
                str(record.cost_usd),
                record.duration_ms,
            )
        )
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise PersistenceError(f"Failed to write usage record: {e}") from e
    finally:
        conn.close()


def fetch_recent_usage_records(
    actor_id: Optional[str] = None,
    limit: int = 100,
    db_path: str = DEFAULT_DB_PATH
) -> List[UsageRecord]:
    """Fetch recent usage records, optionally filtered by actor.

    Returns records in reverse insertion order (newest first).

    Args:
        actor_id: Optional filter for a specific actor
        limit: Maximum number of records to return
        db_path: Path to SQLite database file

    Returns:
        List of usage records
    """
    conn = get_connection(db_path)
    try:
        query = f"SELECT {_COLUMNS} FROM ai_usage_record"
        params = []

        if actor_id:
            query += " WHERE actor_id = ?"
            params.append(actor_id)

        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)

        cursor = conn.execute(query, params)
        records = []
        for row in cursor.fetchall():
            records.append(UsageRecord(
                created_at=datetime.fromisoformat(row[0]),
                actor_id=row[1],
                subject_request_id=row[2],
                service=row[3],
                model_id=row[4],
                provider=row[5],
                input_tokens=row[6],
                output_tokens=row[7],
                total_tokens=row[8],
                cost_usd=Decimal(row[9]),
                duration_ms=row[10]
            ))
        return records
    finally:
        conn.close()
