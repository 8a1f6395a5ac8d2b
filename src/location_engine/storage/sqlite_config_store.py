"""SQLite-backed store for optimizer output. The newest snapshot is the active one."""

from __future__ import annotations

import json

import aiosqlite

from location_engine.models.domain import RankedConfig
from location_engine.storage.migrations import initialize_config_db


class SQLiteConfigStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_config_db(self._db_path)

    async def save(self, ranked: RankedConfig) -> int:
        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute(
                "INSERT INTO ranked_configs (created_at, provider_order, hybrid_enabled, payload) "
                "VALUES (?, ?, ?, ?)",
                (
                    ranked.created_at.isoformat(),
                    json.dumps(ranked.provider_order),
                    int(ranked.hybrid_enabled),
                    json.dumps(ranked.to_dict()),
                ),
            )
            await db.commit()
            return cursor.lastrowid

    async def latest(self) -> RankedConfig | None:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                "SELECT payload FROM ranked_configs ORDER BY config_id DESC LIMIT 1"
            ) as cursor:
                row = await cursor.fetchone()
                if row is None:
                    return None
                return RankedConfig.from_dict(json.loads(row[0]))

    async def history(self, limit: int = 20) -> list[RankedConfig]:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                "SELECT payload FROM ranked_configs ORDER BY config_id DESC LIMIT ?", (limit,)
            ) as cursor:
                rows = await cursor.fetchall()
                return [RankedConfig.from_dict(json.loads(row[0])) for row in rows]
