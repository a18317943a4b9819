"""Relationship API endpoints."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query

from kinship.family import db as fdb
from kinship.family.cache import store_cache
from kinship.family.engine import RelationshipStore
from kinship.family.facts import FactEdge, Person, cleanup_orphaned_edges, validate_edge
from kinship.family.models import (
    EdgeIn,
    EdgeValidationOut,
    InferOut,
    OrphansOut,
    PairOut,
    PersonRelationsOut,
    RelationGroupOut,
    RelationshipOut,
    RelationshipTableOut,
    SnapshotIn,
    TableRowOut,
)
from kinship.family.relations import RelationshipType, parse_type, plural_label

logger = logging.getLogger("kinship.family.routes")

router = APIRouter(prefix="/api/v1/trees", tags=["relationships"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _rel_out(rel) -> RelationshipOut:
    return RelationshipOut.from_relationship(rel)


def _edge_in(edge: FactEdge) -> EdgeIn:
    return EdgeIn(from_id=edge.from_id, to_id=edge.to_id, kind=edge.kind)


def _name(store: RelationshipStore, person_id: str) -> str:
    person = store.persons.get(person_id)
    return person.display_name if person else "Unknown"


async def _load(tree_id: UUID) -> tuple[list[Person], list[FactEdge]]:
    snapshot = await fdb.load_snapshot(str(tree_id))
    if snapshot is None:
        raise HTTPException(404, "Tree not found")
    return snapshot


async def _store_for(tree_id: UUID) -> tuple[RelationshipStore, list[FactEdge]]:
    persons, edges = await _load(tree_id)
    return store_cache.get_or_build(persons, edges), edges


def _require_person(store: RelationshipStore, person_id: str) -> None:
    if person_id not in store:
        raise HTTPException(404, f"Person not found: {person_id}")


def _parse_type_param(value: str) -> RelationshipType:
    try:
        return parse_type(value)
    except ValueError:
        raise HTTPException(400, f"Invalid relationship type: {value}")


# ---------------------------------------------------------------------------
# Ad-hoc snapshot
# ---------------------------------------------------------------------------

@router.post("/infer")
async def infer(body: SnapshotIn) -> InferOut:
    """Infer every relationship for a snapshot sent in the request body."""
    persons = [p.to_person() for p in body.persons]
    edges = [e.to_edge() for e in body.edges]
    store = store_cache.get_or_build(persons, edges)
    return InferOut(
        people=[
            PersonRelationsOut(person_id=pid, relationships=[_rel_out(r) for r in rels])
            for pid, rels in store.export_all().items()
        ],
        relationship_count=store.relationship_count(),
        dropped_edges=len(store.dropped_edges),
    )


# ---------------------------------------------------------------------------
# Stored trees
# ---------------------------------------------------------------------------

@router.get("/{tree_id}/relationships/{person_id}")
async def person_relationships(
    tree_id: UUID,
    person_id: str,
    type: str | None = Query(None, description="Only return this relationship type"),
) -> PersonRelationsOut:
    """All inferred relationships of one person."""
    store, _ = await _store_for(tree_id)
    _require_person(store, person_id)
    if type is None:
        rels = store.all_for(person_id)
    else:
        rels = store.by_type(person_id, _parse_type_param(type))
    return PersonRelationsOut(person_id=person_id, relationships=[_rel_out(r) for r in rels])


@router.get("/{tree_id}/relationships/{from_id}/{to_id}")
async def pair_relationship(tree_id: UUID, from_id: str, to_id: str) -> PairOut:
    """How ``to_id`` is related to ``from_id``."""
    store, _ = await _store_for(tree_id)
    _require_person(store, from_id)
    _require_person(store, to_id)
    rel = store.get(from_id, to_id)
    return PairOut(
        from_id=from_id,
        to_id=to_id,
        relationship=_rel_out(rel) if rel else None,
        description=store.describe(from_id, to_id),
    )


@router.get("/{tree_id}/people/{person_id}/groups")
async def relation_groups(tree_id: UUID, person_id: str) -> list[RelationGroupOut]:
    """Relations grouped for a profile page, e.g. 'Cousins: A, B'."""
    store, _ = await _store_for(tree_id)
    _require_person(store, person_id)
    return [
        RelationGroupOut(
            type=rel_type.value,
            label=plural_label(rel_type),
            names=[_name(store, r.to_id) for r in rels],
            relationships=[_rel_out(r) for r in rels],
        )
        for rel_type, rels in store.grouped_for(person_id).items()
    ]


@router.get("/{tree_id}/table")
async def relationship_table(tree_id: UUID) -> RelationshipTableOut:
    """Direct facts first, then inferred relations no fact already covers."""
    store, edges = await _store_for(tree_id)

    rows: list[TableRowOut] = []
    for edge in edges:
        if not edge.asserts_relation or edge.from_id not in store or edge.to_id not in store:
            continue
        rows.append(TableRowOut(
            from_id=edge.from_id,
            from_name=_name(store, edge.from_id),
            to_id=edge.to_id,
            to_name=_name(store, edge.to_id),
            type=edge.kind,
            description=edge.kind.capitalize(),
            is_direct=True,
        ))
    direct = len(rows)

    for person_id in store.persons:
        for rel in store.inferred_for(person_id, edges):
            rows.append(TableRowOut(
                from_id=person_id,
                from_name=_name(store, person_id),
                to_id=rel.to_id,
                to_name=_name(store, rel.to_id),
                type=rel.type.value,
                description=rel.description,
                is_direct=False,
            ))

    return RelationshipTableOut(rows=rows, direct=direct, inferred=len(rows) - direct)


# ---------------------------------------------------------------------------
# Data integrity
# ---------------------------------------------------------------------------

@router.get("/{tree_id}/orphans")
async def orphaned_edges(tree_id: UUID) -> OrphansOut:
    """Edges that point at people no longer in the tree."""
    persons, edges = await _load(tree_id)
    result = cleanup_orphaned_edges(persons, edges)
    if result.removed_count:
        logger.info("Tree %s has %d orphaned edges", tree_id, result.removed_count)
    return OrphansOut(
        removed_count=result.removed_count,
        removed=[_edge_in(e) for e in result.removed],
    )


@router.post("/{tree_id}/edges/validate")
async def validate_proposed_edge(tree_id: UUID, body: EdgeIn) -> EdgeValidationOut:
    """Check a proposed edge before the storage layer writes it."""
    persons, _ = await _load(tree_id)
    valid, error = validate_edge(body.to_edge(), persons)
    return EdgeValidationOut(valid=valid, error=error)
