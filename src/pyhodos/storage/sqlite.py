"""SQLite-backed run log for pyhodos.

Design Pattern: Adapter Pattern
SqliteRunLog adapts an SQLite database to the RunLog interface.

Implementation details:
- aiosqlite for async operations
- WAL mode for concurrent reads
- documents and event details stored as JSON text
- index on (status, started_at) for list_runs()
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime
from pathlib import Path

import aiosqlite

from pyhodos.core.errors import StorageError
from pyhodos.models import EventType, HistoryEvent, RunRecord, RunStatus
from pyhodos.storage.base import RunLog


class SqliteRunLog(RunLog):
    """SQLite-backed durable run log.

    After __init__, the instance is not yet usable. Call connect() first.
    __init__ performs no I/O.

    Usage:
        run_log = SqliteRunLog("runs.db")
        await run_log.connect()
        try:
            engine = Engine(registry).with_run_log(run_log)
            ...
        finally:
            await run_log.close()
    """

    def __init__(self, db_path: str):
        """Initialize the run log (connection not opened yet).

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._connection: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()  # Serialize access to shared connection

    @classmethod
    async def in_memory(cls) -> SqliteRunLog:
        """
        Create an in-memory SQLite run log for testing.

        Example:
            run_log = await SqliteRunLog.in_memory()
            # Ready to use immediately
        """
        instance = cls(":memory:")
        await instance.connect()
        return instance

    def __repr__(self) -> str:
        if self.db_path == ":memory:":
            return "SqliteRunLog(in-memory)"
        return f"SqliteRunLog({self.db_path})"

    async def connect(self) -> None:
        """Open database connection and initialize schema.

        Pattern: Template Method
        Fixed initialization sequence:
        1. Open connection
        2. Enable WAL mode
        3. Create tables and indexes
        """
        if self._connection is not None:
            return

        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(
            self.db_path,
            timeout=5.0,
            isolation_level=None,  # Autocommit mode for better concurrency
        )

        # In-memory databases report "memory" and don't support WAL
        cursor = await self._connection.execute("PRAGMA journal_mode=WAL")
        result = await cursor.fetchone()
        await cursor.close()

        if result:
            mode = result[0].upper()
            if mode not in ("WAL", "MEMORY"):
                raise StorageError(f"Failed to enable WAL mode, got: {result[0]}")

        await self._connection.execute("PRAGMA synchronous=NORMAL")
        await self._connection.execute("PRAGMA busy_timeout=5000")

        await self._create_schema()
        await self._connection.commit()

    async def _create_schema(self) -> None:
        """Create database tables and indexes.

        Schema design:
        - runs table holds one row per run, replaced on every save
        - run_events table holds the append-only event stream
        - UPPERCASE status values for consistency
        - ISO-8601 timestamps
        """
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS runs (
                run_id TEXT PRIMARY KEY,
                definition_fingerprint TEXT NOT NULL,
                status TEXT CHECK( status IN (
                    'READY','RUNNING','SUCCEEDED','FAILED'
                ) ) NOT NULL,
                input TEXT,
                output TEXT,
                error TEXT,
                cause TEXT,
                failed_state TEXT,
                started_at TEXT NOT NULL,
                finished_at TEXT
            )
        """)

        await self._connection.execute("""
            CREATE INDEX IF NOT EXISTS idx_runs_status
            ON runs(status, started_at)
        """)

        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS run_events (
                run_id TEXT NOT NULL,
                sequence INTEGER NOT NULL,
                event_type TEXT NOT NULL,
                state_name TEXT,
                timestamp TEXT NOT NULL,
                details TEXT NOT NULL,
                PRIMARY KEY (run_id, sequence)
            )
        """)

    def _check_connected(self) -> None:
        """Guard clause: Ensure connection is open."""
        if self._connection is None:
            raise StorageError("Not connected. Call connect() first.")

    async def save_run(self, record: RunRecord) -> None:
        self._check_connected()
        try:
            async with self._lock:
                await self._connection.execute(
                    """
                    INSERT OR REPLACE INTO runs (
                        run_id, definition_fingerprint, status, input, output,
                        error, cause, failed_state, started_at, finished_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.run_id,
                        record.definition_fingerprint,
                        record.status.value,
                        json.dumps(record.input),
                        json.dumps(record.output),
                        record.error,
                        record.cause,
                        record.failed_state,
                        record.started_at.isoformat(),
                        record.finished_at.isoformat() if record.finished_at else None,
                    ),
                )
                await self._connection.commit()
        except (aiosqlite.Error, TypeError, ValueError) as e:
            raise StorageError(f"Failed to save run {record.run_id}: {e}") from e

    async def append_event(self, event: HistoryEvent) -> None:
        self._check_connected()
        try:
            async with self._lock:
                await self._connection.execute(
                    """
                    INSERT INTO run_events (
                        run_id, sequence, event_type, state_name, timestamp, details
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        event.run_id,
                        event.sequence,
                        event.event_type.value,
                        event.state_name,
                        event.timestamp.isoformat(),
                        json.dumps(event.details),
                    ),
                )
                await self._connection.commit()
        except (aiosqlite.Error, TypeError, ValueError) as e:
            raise StorageError(
                f"Failed to append event {event.sequence} for run {event.run_id}: {e}"
            ) from e

    async def get_run(self, run_id: str) -> RunRecord | None:
        """Retrieve a run record. Returns None when not found (not an error condition)."""
        self._check_connected()

        cursor = await self._connection.execute(
            """
            SELECT run_id, definition_fingerprint, status, input, output,
                   error, cause, failed_state, started_at, finished_at
            FROM runs
            WHERE run_id = ?
            """,
            (run_id,),
        )
        row = await cursor.fetchone()
        await cursor.close()

        if row is None:
            return None
        return self._row_to_record(row)

    async def get_events(self, run_id: str) -> list[HistoryEvent]:
        self._check_connected()

        cursor = await self._connection.execute(
            """
            SELECT run_id, sequence, event_type, state_name, timestamp, details
            FROM run_events
            WHERE run_id = ?
            ORDER BY sequence
            """,
            (run_id,),
        )
        rows = await cursor.fetchall()
        await cursor.close()

        return [
            HistoryEvent(
                run_id=row[0],
                sequence=row[1],
                event_type=EventType(row[2]),
                state_name=row[3],
                timestamp=datetime.fromisoformat(row[4]),
                details=json.loads(row[5]),
            )
            for row in rows
        ]

    async def list_runs(self, status: RunStatus | None = None) -> list[RunRecord]:
        self._check_connected()

        query = """
            SELECT run_id, definition_fingerprint, status, input, output,
                   error, cause, failed_state, started_at, finished_at
            FROM runs
        """
        params: tuple = ()
        if status is not None:
            query += " WHERE status = ?"
            params = (status.value,)
        query += " ORDER BY started_at, run_id"

        cursor = await self._connection.execute(query, params)
        rows = await cursor.fetchall()
        await cursor.close()

        return [self._row_to_record(row) for row in rows]

    async def reset(self) -> None:
        """Clear all data (for testing/demos).

        After reset, the run log is empty but functional.
        """
        self._check_connected()

        async with self._lock:
            await self._connection.execute("DELETE FROM run_events")
            await self._connection.execute("DELETE FROM runs")
            await self._connection.commit()

    async def close(self) -> None:
        """Close the connection.

        Explicit resource cleanup, not relying on GC.
        """
        if self._connection is not None:
            await self._connection.close()
            self._connection = None

    def _row_to_record(self, row: tuple) -> RunRecord:
        """Convert database row to RunRecord.

        Row format (matches SELECT query):
        0:run_id, 1:definition_fingerprint, 2:status, 3:input, 4:output,
        5:error, 6:cause, 7:failed_state, 8:started_at, 9:finished_at
        """
        return RunRecord(
            run_id=row[0],
            definition_fingerprint=row[1],
            status=RunStatus(row[2]),
            input=json.loads(row[3]) if row[3] is not None else None,
            output=json.loads(row[4]) if row[4] is not None else None,
            error=row[5],
            cause=row[6],
            failed_state=row[7],
            started_at=datetime.fromisoformat(row[8]),
            finished_at=datetime.fromisoformat(row[9]) if row[9] else None,
        )
