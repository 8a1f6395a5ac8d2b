"""Idempotent database schema creation."""

from __future__ import annotations

import aiosqlite

RANKED_CONFIGS_TABLE = """
CREATE TABLE IF NOT EXISTS ranked_configs (
    config_id INTEGER PRIMARY KEY AUTOINCREMENT,
    created_at TEXT NOT NULL,
    provider_order TEXT NOT NULL DEFAULT '[]',
    hybrid_enabled INTEGER NOT NULL,
    payload TEXT NOT NULL
)
"""

RANKED_CONFIGS_CREATED_INDEX = """
CREATE INDEX IF NOT EXISTS idx_ranked_configs_created_at ON ranked_configs(created_at)
"""

TRACES_TABLE = """
CREATE TABLE IF NOT EXISTS resolution_traces (
    trace_id TEXT PRIMARY KEY,
    timestamp TEXT NOT NULL,
    latency_ms REAL NOT NULL,
    success INTEGER NOT NULL,
    method TEXT NOT NULL,
    source TEXT NOT NULL DEFAULT '',
    consulted TEXT NOT NULL DEFAULT '[]',
    error TEXT,
    spans TEXT NOT NULL DEFAULT '[]'
)
"""

TRACES_TIMESTAMP_INDEX = """
CREATE INDEX IF NOT EXISTS idx_resolution_traces_timestamp ON resolution_traces(timestamp)
"""


async def initialize_config_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(RANKED_CONFIGS_TABLE)
        await db.execute(RANKED_CONFIGS_CREATED_INDEX)
        await db.commit()


async def initialize_trace_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(TRACES_TABLE)
        await db.execute(TRACES_TIMESTAMP_INDEX)
        await db.commit()
