from __future__ import annotations

from typing import Awaitable, Callable

import asyncpg

from apps.api.services.ports import FeedbackStore

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_lists (
  id         BIGSERIAL PRIMARY KEY,
  key        TEXT NOT NULL,
  value      TEXT NOT NULL,
  created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS kv_lists_key_id_idx ON kv_lists (key, id DESC);

CREATE TABLE IF NOT EXISTS kv_keys (
  key        TEXT PRIMARY KEY,
  expires_at TIMESTAMPTZ NOT NULL
);

CREATE TABLE IF NOT EXISTS kv_counters (
  name  TEXT PRIMARY KEY,
  value BIGINT NOT NULL DEFAULT 0
);
"""

# Expiración perezosa: si la clave caducó, la lista entera desaparece antes del siguiente append.
_PURGE_EXPIRED_SQL = """
WITH expired AS (
  DELETE FROM kv_keys WHERE key = $1 AND expires_at <= now() RETURNING key
)
DELETE FROM kv_lists WHERE key IN (SELECT key FROM expired)
"""

_APPEND_SQL = "INSERT INTO kv_lists (key, value) VALUES ($1, $2)"

_EXPIRE_SQL = """
INSERT INTO kv_keys (key, expires_at)
VALUES ($1, now() + make_interval(secs => $2))
ON CONFLICT (key) DO UPDATE SET expires_at = EXCLUDED.expires_at
"""

_INCR_SQL = """
INSERT INTO kv_counters (name, value) VALUES ($1, 1)
ON CONFLICT (name) DO UPDATE SET value = kv_counters.value + 1
RETURNING value
"""


async def apply_schema(pool: asyncpg.Pool) -> None:
    """Crea las tablas si no existen (idempotente)."""
    async with pool.acquire() as conn:
        await conn.execute(SCHEMA_SQL)


class PostgresFeedbackStore(FeedbackStore):
    """
    Adapter Postgres (asyncpg) con semántica clave/valor:
    - listas append-only por clave (kv_lists)
    - expiración por clave (kv_keys)
    - contadores atómicos vía upsert (kv_counters)

    El pool se obtiene en cada operación: si la DB no está disponible el error
    sale de aquí y lo absorbe el servicio, no la dependencia de FastAPI.
    """

    def __init__(self, pool_provider: Callable[[], Awaitable[asyncpg.Pool]]):
        self._pool_provider = pool_provider

    async def append(self, key: str, value: str) -> None:
        pool = await self._pool_provider()
        async with pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(_PURGE_EXPIRED_SQL, key)
                await conn.execute(_APPEND_SQL, key, value)

    async def expire(self, key: str, ttl_s: int) -> None:
        pool = await self._pool_provider()
        async with pool.acquire() as conn:
            # make_interval(secs => double precision)
            await conn.execute(_EXPIRE_SQL, key, float(ttl_s))

    async def incr(self, name: str) -> int:
        pool = await self._pool_provider()
        async with pool.acquire() as conn:
            val = await conn.fetchval(_INCR_SQL, name)
        return int(val)

    async def health(self) -> bool:
        pool = await self._pool_provider()
        async with pool.acquire() as conn:
            val = await conn.fetchval("SELECT 1")
        return val == 1

    async def ensure_schema(self) -> None:
        await apply_schema(await self._pool_provider())
