"""Database pool management and query helpers for kinship-engine."""

from __future__ import annotations

import json
import os

import asyncpg

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

_DB_HOST = os.environ.get("KE_DB_HOST", "localhost")
_DB_PORT = os.environ.get("KE_DB_PORT", "5432")
_DB_USER = os.environ.get("KE_DB_USER", "postgres")
_DB_PASSWORD = os.environ.get("KE_DB_PASSWORD", "postgres")
_DB_NAME = os.environ.get("KE_DB_NAME", "family_tree")

DATABASE_URL = os.environ.get(
    "KE_DATABASE_URL",
    f"postgresql://{_DB_USER}:{_DB_PASSWORD}@{_DB_HOST}:{_DB_PORT}/{_DB_NAME}",
)

# ---------------------------------------------------------------------------
# Pool
# ---------------------------------------------------------------------------

_pool: asyncpg.Pool | None = None


async def init_pool() -> asyncpg.Pool:
    """Create the global asyncpg connection pool."""
    global _pool
    _pool = await asyncpg.create_pool(
        DATABASE_URL,
        min_size=1,
        max_size=10,
        init=_init_connection,
    )
    return _pool


async def close_pool() -> None:
    """Gracefully close the connection pool."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None


def get_pool() -> asyncpg.Pool:
    """Return the pool, raising if not initialized."""
    if _pool is None:
        raise RuntimeError("Database pool not initialized")
    return _pool


async def _init_connection(conn: asyncpg.Connection) -> None:
    """Set up JSON codec on each new connection."""
    await conn.set_type_codec(
        "jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog"
    )


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------

async def get_stats() -> dict:
    """Row counts for the metrics endpoint."""
    p = get_pool()
    total_trees = await p.fetchval("SELECT COUNT(*) FROM family_trees")
    total_people = await p.fetchval("SELECT COUNT(*) FROM tree_people")
    edge_rows = await p.fetch("SELECT kind, COUNT(*) AS cnt FROM tree_edges GROUP BY kind")
    return {
        "total_trees": total_trees,
        "total_people": total_people,
        "edges_by_kind": {r["kind"]: r["cnt"] for r in edge_rows},
    }
