from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg.types.json import Jsonb


class PostgresKeyValueStore:
    """
    `kv_store` table backed store (see migrations/sql/0001_kv_store.sql).

    Opens a short-lived async connection per call; values are stored as jsonb.
    """

    def __init__(self, dsn: str, *, schema: str = "public"):
        self._dsn = dsn
        self._schema = schema

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[psycopg.AsyncConnection]:
        options = f"-c search_path={self._schema} -c timezone=UTC"
        async with await psycopg.AsyncConnection.connect(self._dsn, options=options) as conn:
            yield conn

    async def get(self, key: str) -> Any | None:
        async with self._connect() as conn:
            cur = await conn.execute("select value from kv_store where key=%s", (key,))
            row = await cur.fetchone()
        if not row:
            return None
        return row[0]

    async def set(self, key: str, value: Any) -> None:
        async with self._connect() as conn:
            await conn.execute(
                """
                insert into kv_store(key, value, updated_at)
                values (%s, %s, now())
                on conflict (key) do update set
                  value = excluded.value,
                  updated_at = now()
                """,
                (key, Jsonb(value)),
            )
            await conn.commit()

    async def delete(self, key: str) -> None:
        async with self._connect() as conn:
            await conn.execute("delete from kv_store where key=%s", (key,))
            await conn.commit()

    async def keys(self) -> list[str]:
        async with self._connect() as conn:
            cur = await conn.execute("select key from kv_store order by key")
            rows = await cur.fetchall()
        return [r[0] for r in rows]
