from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import NoReturn
from uuid import uuid4

import asyncpg

from apps.api.adapters.postgres_feedback_store import PostgresFeedbackStore


def _load_dotenv(path: str = ".env") -> None:
    p = Path(path)
    if not p.exists():
        return
    for line in p.read_text(encoding="utf-8").splitlines():
        s = line.strip()
        if not s or s.startswith("#") or "=" not in s:
            continue
        k, v = s.split("=", 1)
        k = k.strip()
        v = v.strip().strip('"').strip("'")
        os.environ.setdefault(k, v)


async def main() -> NoReturn:
    _load_dotenv()
    dsn = os.getenv("DATABASE_URL")
    if not dsn:
        raise SystemExit("DATABASE_URL no está configurada (ni en entorno ni en .env)")

    pool = await asyncpg.create_pool(dsn=dsn, min_size=1, max_size=2)

    async def _pool() -> asyncpg.Pool:
        return pool

    store = PostgresFeedbackStore(_pool)
    try:
        # 1) esquema (idempotente)
        await store.ensure_schema()
        print(f"health: {await store.health()}")

        async with pool.acquire() as conn:
            tables = await conn.fetch(
                """
                SELECT tablename
                FROM pg_tables
                WHERE schemaname = 'public'
                ORDER BY tablename
                """
            )
        table_names = [r["tablename"] for r in tables]
        print("tablas:", ", ".join(table_names))

        for required in ("kv_lists", "kv_keys", "kv_counters"):
            if required not in table_names:
                raise SystemExit(f"Falta tabla requerida: {required}")

        # 2) append + expire + incr sobre claves de prueba (no tocan "feedback")
        key = f"db_check:{uuid4().hex}"
        await store.append(key, '{"check": true}')
        await store.expire(key, 60)
        n = await store.incr(f"{key}:counter")
        print(f"append/expire OK, counter={n}")

        async with pool.acquire() as conn:
            n_items = await conn.fetchval("SELECT count(*) FROM kv_lists WHERE key = $1", key)
            n_feedback = await conn.fetchval("SELECT count(*) FROM kv_lists WHERE key = 'feedback'")
            counters = await conn.fetch(
                "SELECT name, value FROM kv_counters WHERE name LIKE 'analytics:%' ORDER BY name"
            )

            # limpieza de las claves de prueba
            await conn.execute("DELETE FROM kv_lists WHERE key = $1", key)
            await conn.execute("DELETE FROM kv_keys WHERE key = $1", key)
            await conn.execute("DELETE FROM kv_counters WHERE name = $1", f"{key}:counter")

        if n_items != 1 or n != 1:
            raise SystemExit(f"Resultado inesperado: items={n_items} counter={n}")

        print(f"count(feedback)={n_feedback}")
        for r in counters:
            print(f"{r['name']}={r['value']}")

        print("OK")
        raise SystemExit(0)
    finally:
        await pool.close()


if __name__ == "__main__":
    asyncio.run(main())
