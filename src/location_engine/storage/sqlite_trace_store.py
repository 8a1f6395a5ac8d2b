"""SQLite-backed resolution trace store for observability."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import aiosqlite

from location_engine.models.domain import ResolutionTrace
from location_engine.storage.migrations import initialize_trace_db


class SQLiteTraceStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_trace_db(self._db_path)

    async def save_trace(self, trace: ResolutionTrace) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT OR REPLACE INTO resolution_traces "
                "(trace_id, timestamp, latency_ms, success, method, source, consulted, error, spans) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    trace.trace_id,
                    trace.timestamp.isoformat(),
                    trace.latency_ms,
                    int(trace.success),
                    trace.method,
                    trace.source,
                    json.dumps(trace.consulted),
                    trace.error,
                    json.dumps(trace.spans),
                ),
            )
            await db.commit()

    async def get_trace(self, trace_id: str) -> ResolutionTrace | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM resolution_traces WHERE trace_id = ?", (trace_id,)
            ) as cursor:
                row = await cursor.fetchone()
                if row is None:
                    return None
                return self._row_to_trace(row)

    async def get_recent_traces(self, limit: int = 100) -> list[ResolutionTrace]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM resolution_traces ORDER BY timestamp DESC LIMIT ?", (limit,)
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_trace(row) for row in rows]

    @staticmethod
    def _row_to_trace(row: aiosqlite.Row) -> ResolutionTrace:
        timestamp = datetime.fromisoformat(row["timestamp"])
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return ResolutionTrace(
            trace_id=row["trace_id"],
            timestamp=timestamp,
            latency_ms=row["latency_ms"],
            success=bool(row["success"]),
            method=row["method"],
            source=row["source"],
            consulted=json.loads(row["consulted"]),
            error=row["error"],
            spans=json.loads(row["spans"]),
        )
