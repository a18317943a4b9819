"""Snapshot reads from the family tree tables.

Writes belong to the tree-storage product; this side only loads
``(persons, edges)`` snapshots for the engine.
"""

from __future__ import annotations

import asyncpg

from kinship.db import get_pool
from kinship.family.facts import FactEdge, Person


# ---------------------------------------------------------------------------
# Trees
# ---------------------------------------------------------------------------

async def get_tree(tree_id: str) -> asyncpg.Record | None:
    p = get_pool()
    return await p.fetchrow(
        "SELECT id, name, created_at, updated_at FROM family_trees WHERE id = $1",
        tree_id,
    )


# ---------------------------------------------------------------------------
# People + edges
# ---------------------------------------------------------------------------

async def list_people(tree_id: str) -> list[asyncpg.Record]:
    p = get_pool()
    return await p.fetch(
        "SELECT id, tree_id, name, nickname, gender, born "
        "FROM tree_people WHERE tree_id = $1 ORDER BY name",
        tree_id,
    )


async def list_edges(tree_id: str) -> list[asyncpg.Record]:
    p = get_pool()
    return await p.fetch(
        "SELECT id, tree_id, from_id, to_id, kind "
        "FROM tree_edges WHERE tree_id = $1 ORDER BY created_at",
        tree_id,
    )


def person_from_row(row) -> Person:
    return Person(
        id=str(row["id"]),
        name=row["name"],
        nickname=row["nickname"],
        gender=row["gender"],
        born=row["born"],
    )


def edge_from_row(row) -> FactEdge:
    return FactEdge(
        from_id=str(row["from_id"]),
        to_id=str(row["to_id"]),
        kind=str(row["kind"]),
    )


async def load_snapshot(tree_id: str) -> tuple[list[Person], list[FactEdge]] | None:
    """Return ``(persons, edges)`` for a tree, or None if the tree doesn't exist."""
    tree = await get_tree(tree_id)
    if tree is None:
        return None
    people = await list_people(tree_id)
    edges = await list_edges(tree_id)
    return [person_from_row(r) for r in people], [edge_from_row(r) for r in edges]
