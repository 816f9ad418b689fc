# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr Execution Journal - Persistent history of backup/restore runs.

The in-memory registry forgets everything when the process stops; the
journal keeps one row per execution in SQLite so past runs stay
inspectable. Execution ids restart at 1 for every facade, so rows are keyed
by (session, execution_id) where session is a ULID chosen per facade.
"""

import json
from datetime import datetime, UTC
from pathlib import Path
from typing import List, TypedDict

import aiosqlite
import structlog

from catalogbr.exceptions import CatalogBRError
from catalogbr.execution import ExecutionAdapter

logger = structlog.get_logger()


class ExecutionRecord(TypedDict):
    """Journal row of a backup or restore execution."""

    session: str  # ULID of the facade that ran it
    execution_id: int
    kind: str  # backup, restore
    status: str
    archive: str
    options: List[str]
    started_at: str  # ISO 8601
    ended_at: str | None  # ISO 8601 or None
    failures: List[str]
    warnings: List[str]


async def init_journal_db(db_path: Path) -> None:
    """
    Initialize the journal database schema.

    Creates the executions table if it doesn't exist. This is idempotent.

    Args:
        db_path: Path to the SQLite database file
    """
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS executions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    session TEXT NOT NULL,
                    execution_id INTEGER NOT NULL,
                    kind TEXT NOT NULL,
                    status TEXT NOT NULL,
                    archive TEXT NOT NULL,
                    options TEXT NOT NULL,
                    started_at TEXT NOT NULL,
                    ended_at TEXT,
                    failures TEXT NOT NULL DEFAULT '[]',
                    warnings TEXT NOT NULL DEFAULT '[]',
                    UNIQUE (session, execution_id)
                )
            """)

            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_executions_started_at
                ON executions(started_at)
            """)

            await db.commit()

        logger.info("journal_db_initialized", db_path=str(db_path))

    except Exception as e:
        raise CatalogBRError(
            f"Failed to initialize journal database: {e}",
            details={"db_path": str(db_path)},
        )


async def record_execution(
    db: aiosqlite.Connection,
    session: str,
    adapter: ExecutionAdapter,
) -> None:
    """
    Record a newly launched execution.

    Args:
        db: SQLite database connection
        session: Facade session ULID
        adapter: The launched execution
    """
    now = datetime.now(UTC).isoformat()

    await db.execute(
        """
        INSERT INTO executions
            (session, execution_id, kind, status, archive, options, started_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(session, execution_id) DO NOTHING
        """,
        (
            session,
            adapter.id,
            adapter.kind.value,
            adapter.status.value,
            str(adapter.archive_file),
            json.dumps(adapter.options),
            now,
        ),
    )
    await db.commit()

    logger.debug("execution_recorded", execution_id=adapter.id, kind=adapter.kind.value)


async def complete_execution(
    db: aiosqlite.Connection,
    session: str,
    adapter: ExecutionAdapter,
) -> None:
    """
    Store the terminal status, failures and warnings of an execution.

    Inserts the row when the job finished before its launch was recorded.
    """
    ended_at = adapter.end_time or datetime.now(UTC)
    started_at = adapter.start_time or ended_at

    await db.execute(
        """
        INSERT INTO executions
            (session, execution_id, kind, status, archive, options,
             started_at, ended_at, failures, warnings)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(session, execution_id) DO UPDATE SET
            status = excluded.status,
            ended_at = excluded.ended_at,
            failures = excluded.failures,
            warnings = excluded.warnings
        """,
        (
            session,
            adapter.id,
            adapter.kind.value,
            adapter.status.value,
            str(adapter.archive_file),
            json.dumps(adapter.options),
            started_at.isoformat(),
            ended_at.isoformat(),
            json.dumps([str(f) for f in adapter.failures]),
            json.dumps([str(w) for w in adapter.warnings]),
        ),
    )
    await db.commit()

    logger.debug("execution_completed", execution_id=adapter.id, status=adapter.status.value)


async def list_executions(
    db: aiosqlite.Connection,
    kind: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> List[ExecutionRecord]:
    """
    List journaled executions, most recent first.

    Args:
        db: SQLite database connection
        kind: Optional filter ("backup" or "restore")
        limit: Maximum number of records to return
        offset: Number of records to skip

    Returns:
        List of execution records
    """
    query = """
        SELECT session, execution_id, kind, status, archive, options,
               started_at, ended_at, failures, warnings
        FROM executions
    """
    params: List = []

    if kind:
        query += " WHERE kind = ?"
        params.append(kind)

    query += " ORDER BY id DESC LIMIT ? OFFSET ?"
    params.extend([limit, offset])

    records: List[ExecutionRecord] = []

    async with db.execute(query, params) as cursor:
        async for row in cursor:
            records.append(
                ExecutionRecord(
                    session=row[0],
                    execution_id=row[1],
                    kind=row[2],
                    status=row[3],
                    archive=row[4],
                    options=json.loads(row[5]),
                    started_at=row[6],
                    ended_at=row[7],
                    failures=json.loads(row[8]),
                    warnings=json.loads(row[9]),
                )
            )

    return records
