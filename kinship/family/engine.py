"""Relationship engine: pure Python graph traversal.

Takes people + parent/spouse facts and derives every named kinship
relation between every reachable pair ("grandparent", "half-sibling",
"aunt", "cousin", ...), each with its derivation path and signed
generational distance.

No DB, no I/O. Pure functions on in-memory data. ``build()`` runs the
whole pipeline once and returns an immutable ``RelationshipStore``.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from types import MappingProxyType
from typing import Iterable, Mapping

from kinship.family.facts import FactEdge, FactGraph, Person
from kinship.family.relations import (
    COLLATERAL_TYPES,
    DISPLAY_ORDER,
    LINEAGE_TYPES,
    Relationship,
    RelationshipType,
    ancestor_type,
    descendant_type,
    label_for,
    parse_type,
)

logger = logging.getLogger("kinship.family.engine")

_UP = -1
_DOWN = 1
_DIRECT_TYPES = frozenset({RelationshipType.PARENT, RelationshipType.CHILD, RelationshipType.SPOUSE})
_SIBLING_TYPES = (RelationshipType.SIBLING, RelationshipType.HALF_SIBLING)


def _turn(heading: int | None, step: int) -> int | None:
    """Track whether a BFS path is still a straight up- or down-chain.

    0 = not moved yet, -1 / +1 = straight so far, None = changed direction.
    """
    if heading is None:
        return None
    if heading == 0 or heading == step:
        return step
    return None


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class RelationshipStore:
    """Read-only map of ``person_id -> {other_id -> Relationship}``.

    Safe to share between concurrent readers; a change to the underlying
    facts means building a new store, never mutating this one.
    """

    def __init__(
        self,
        persons: Mapping[str, Person],
        relationships: Mapping[str, Mapping[str, Relationship]],
        dropped_edges: Iterable[FactEdge] = (),
    ) -> None:
        self._persons = MappingProxyType(dict(persons))
        self._rels = MappingProxyType(
            {pid: MappingProxyType(dict(rels)) for pid, rels in relationships.items()}
        )
        self._dropped = tuple(dropped_edges)

    @property
    def persons(self) -> Mapping[str, Person]:
        return self._persons

    @property
    def dropped_edges(self) -> tuple[FactEdge, ...]:
        """Edges the graph builder ignored (unknown endpoint or self link)."""
        return self._dropped

    def __contains__(self, person_id: object) -> bool:
        return person_id in self._persons

    def __len__(self) -> int:
        return len(self._persons)

    def relationship_count(self) -> int:
        """Number of public (non-self) relations across all persons."""
        return sum(len(self.all_for(pid)) for pid in self._rels)

    # -- Queries ------------------------------------------------------------

    def get(self, from_id: str, to_id: str) -> Relationship | None:
        return self._rels.get(from_id, {}).get(to_id)

    def all_for(self, person_id: str) -> list[Relationship]:
        """Every relation of ``person_id`` except the self entry."""
        return [
            rel for rel in self._rels.get(person_id, {}).values()
            if rel.type is not RelationshipType.SELF
        ]

    def by_type(self, person_id: str, rel_type: str | RelationshipType) -> list[Relationship]:
        wanted = parse_type(rel_type)
        if wanted is RelationshipType.SELF:
            return []
        return [rel for rel in self._rels.get(person_id, {}).values() if rel.type is wanted]

    def describe(self, from_id: str, to_id: str) -> str:
        """'<name> (<label>)', or 'No relation'."""
        rel = self.get(from_id, to_id)
        if rel is None:
            return "No relation"
        person = self._persons.get(to_id)
        name = person.display_name if person else "Unknown"
        return f"{name} ({rel.description})"

    def export_all(self) -> dict[str, list[Relationship]]:
        return {pid: self.all_for(pid) for pid in self._persons}

    def grouped_for(self, person_id: str) -> dict[RelationshipType, list[Relationship]]:
        """Relations bucketed by type, in profile display order, empty buckets omitted."""
        buckets: dict[RelationshipType, list[Relationship]] = {}
        for rel in self.all_for(person_id):
            buckets.setdefault(rel.type, []).append(rel)
        return {t: buckets[t] for t in DISPLAY_ORDER if t in buckets}

    def inferred_for(self, person_id: str, edges: Iterable[FactEdge]) -> list[Relationship]:
        """Relations of ``person_id`` not already asserted by a fact edge (either direction)."""
        asserted: set[str] = set()
        for edge in edges:
            if not edge.asserts_relation:
                continue
            if edge.from_id == person_id:
                asserted.add(edge.to_id)
            elif edge.to_id == person_id:
                asserted.add(edge.from_id)
        return [rel for rel in self.all_for(person_id) if rel.to_id not in asserted]


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

class _StoreBuilder:
    """Owns every intermediate index for one build; discarded afterwards."""

    def __init__(self, graph: FactGraph) -> None:
        self._graph = graph
        self._rels: dict[str, dict[str, Relationship]] = {pid: {} for pid in graph.persons}
        # Lineage entries reached along a path that changed direction
        self._bent: set[tuple[str, str]] = set()

    def build(self) -> RelationshipStore:
        order = sorted(self._graph.persons)
        for pid in order:
            self._propagate_lineage(pid)
        for pid in order:
            self._derive_siblings(pid)
        for pid in order:
            self._derive_aunts_uncles(pid)
        for pid in order:
            self._derive_nieces_nephews(pid)
        for pid in order:
            self._derive_cousins(pid)
        self._reconcile_pairs()
        return RelationshipStore(self._graph.persons, self._rels, self._graph.dropped)

    # -- Writes -------------------------------------------------------------

    def _put(self, rel: Relationship) -> None:
        self._rels.setdefault(rel.from_id, {})[rel.to_id] = rel

    def _offer(self, rel: Relationship) -> None:
        """Write a collateral relation unless a closer one is already recorded."""
        existing = self._rels.setdefault(rel.from_id, {}).get(rel.to_id)
        if existing is not None and not self._yields_to(existing, rel):
            return
        self._bent.discard((rel.from_id, rel.to_id))
        self._put(rel)

    def _yields_to(self, existing: Relationship, candidate: Relationship) -> bool:
        if existing.type in LINEAGE_TYPES:
            return (existing.from_id, existing.to_id) in self._bent
        if existing.type in COLLATERAL_TYPES:
            return len(candidate.path) < len(existing.path)
        # self, spouse
        return False

    def _of_types(self, pid: str, *types: RelationshipType) -> list[Relationship]:
        return [rel for rel in self._rels.get(pid, {}).values() if rel.type in types]

    # -- Lineage ------------------------------------------------------------

    def _record_lineage(
        self, root: str, target: str, path: tuple[str, ...], distance: int, heading: int | None
    ) -> None:
        if distance < 0:
            rel_type = ancestor_type(distance)
        elif distance > 0:
            rel_type = descendant_type(distance)
        else:
            # Same generation through a shared relative; siblings come later
            return
        self._put(Relationship(
            from_id=root,
            to_id=target,
            type=rel_type,
            path=path,
            distance=distance,
            is_direct=rel_type in _DIRECT_TYPES and len(path) == 2,
            description=label_for(rel_type, distance),
        ))
        if heading is None:
            self._bent.add((root, target))

    def _propagate_lineage(self, root: str) -> None:
        g = self._graph
        self._put(Relationship(root, root, RelationshipType.SELF, (root,), 0, False, label_for(RelationshipType.SELF)))

        visited = {root}
        queue: deque[tuple[str, tuple[str, ...], int, int | None]] = deque([(root, (root,), 0, 0)])

        while queue:
            current, path, distance, heading = queue.popleft()

            for parent_id in sorted(g.parents_of(current)):
                if parent_id in visited:
                    continue
                visited.add(parent_id)
                step = (parent_id, path + (parent_id,), distance - 1, _turn(heading, _UP))
                self._record_lineage(root, *step)
                queue.append(step)

            for child_id in sorted(g.children_of(current)):
                if child_id in visited:
                    continue
                visited.add(child_id)
                step = (child_id, path + (child_id,), distance + 1, _turn(heading, _DOWN))
                self._record_lineage(root, *step)
                queue.append(step)

            if current == root:
                for spouse_id in sorted(g.spouses_of(current)):
                    if spouse_id in visited:
                        continue
                    visited.add(spouse_id)
                    spouse_path = path + (spouse_id,)
                    self._put(Relationship(
                        from_id=root,
                        to_id=spouse_id,
                        type=RelationshipType.SPOUSE,
                        path=spouse_path,
                        distance=0,
                        is_direct=True,
                        description=label_for(RelationshipType.SPOUSE),
                    ))
                    queue.append((spouse_id, spouse_path, 0, heading))
            elif distance != 0:
                # A co-parent met on the way up/down takes the same tier as
                # the person who led here (step-parents land as parents).
                for spouse_id in sorted(g.spouses_of(current)):
                    if spouse_id in visited:
                        continue
                    visited.add(spouse_id)
                    step = (spouse_id, path + (spouse_id,), distance, heading)
                    self._record_lineage(root, *step)
                    queue.append(step)

    # -- Siblings -----------------------------------------------------------

    def _derive_siblings(self, pid: str) -> None:
        g = self._graph
        my_parents = g.parents_of(pid)
        if not my_parents:
            return

        candidates: set[str] = set()
        for parent_id in my_parents:
            candidates |= g.children_of(parent_id)
        candidates.discard(pid)

        for sibling_id in sorted(candidates):
            their_parents = g.parents_of(sibling_id)
            full = len(my_parents) == 2 and my_parents == their_parents
            rel_type = RelationshipType.SIBLING if full else RelationshipType.HALF_SIBLING
            self._offer(Relationship(
                from_id=pid,
                to_id=sibling_id,
                type=rel_type,
                path=(pid, sibling_id),
                distance=0,
                is_direct=False,
                description=label_for(rel_type),
            ))

    # -- Collateral ---------------------------------------------------------

    def _derive_aunts_uncles(self, pid: str) -> None:
        g = self._graph
        for parent_id in sorted(g.parents_of(pid)):
            for sibling_rel in self._of_types(parent_id, *_SIBLING_TYPES):
                au_id = sibling_rel.to_id
                if au_id == pid:
                    continue
                au = g.person(au_id)
                # Missing / unknown / other gender falls back to "uncle"
                rel_type = RelationshipType.AUNT if au and au.is_female else RelationshipType.UNCLE
                self._offer(Relationship(
                    from_id=pid,
                    to_id=au_id,
                    type=rel_type,
                    path=(pid, parent_id, au_id),
                    distance=-1,
                    is_direct=False,
                    description=label_for(rel_type),
                ))

    def _derive_nieces_nephews(self, pid: str) -> None:
        g = self._graph
        for sibling_rel in self._of_types(pid, *_SIBLING_TYPES):
            sibling_id = sibling_rel.to_id
            for child_id in sorted(g.children_of(sibling_id)):
                if child_id == pid:
                    continue
                child = g.person(child_id)
                # Same masculine fallback as aunt/uncle
                rel_type = RelationshipType.NIECE if child and child.is_female else RelationshipType.NEPHEW
                self._offer(Relationship(
                    from_id=pid,
                    to_id=child_id,
                    type=rel_type,
                    path=(pid, sibling_id, child_id),
                    distance=1,
                    is_direct=False,
                    description=label_for(rel_type),
                ))

    def _derive_cousins(self, pid: str) -> None:
        g = self._graph
        for au_rel in self._of_types(pid, RelationshipType.AUNT, RelationshipType.UNCLE):
            au_id = au_rel.to_id
            for cousin_id in sorted(g.children_of(au_id)):
                if cousin_id == pid:
                    continue
                self._offer(Relationship(
                    from_id=pid,
                    to_id=cousin_id,
                    type=RelationshipType.COUSIN,
                    path=au_rel.path + (cousin_id,),
                    distance=0,
                    is_direct=False,
                    description=label_for(RelationshipType.COUSIN),
                ))

    # -- Pair consistency ---------------------------------------------------

    def _reconcile_pairs(self) -> None:
        """Make every ``A -> B`` entry agree with its ``B -> A`` partner.

        Each person's BFS and collateral guard run independently, so one
        direction can be missing (remarriage chains stop at distance 0) or
        disagree (a cousin who is also a parent-in-law). A missing partner
        is written as the mirror of the entry that exists. When both exist
        and disagree, the stronger entry wins and the other becomes its
        mirror.
        """
        for pid in sorted(self._rels):
            for other_id in sorted(self._rels[pid]):
                if other_id == pid:
                    continue
                fwd = self._rels[pid][other_id]
                back = self._rels.get(other_id, {}).get(pid)
                if back is None:
                    self._put_mirror(fwd)
                elif other_id > pid and not self._agrees(fwd, back):
                    winner = back if self._rank(back) < self._rank(fwd) else fwd
                    logger.debug(
                        "Reconciling %s -> %s (%s) with %s -> %s (%s), keeping %s",
                        pid, other_id, fwd.type.value, other_id, pid, back.type.value,
                        winner.type.value,
                    )
                    self._put_mirror(winner)

    def _mirror(self, rel: Relationship) -> Relationship:
        """The same relation seen from ``rel.to_id``."""
        t = RelationshipType
        distance = -rel.distance
        if rel.type in LINEAGE_TYPES:
            rel_type = ancestor_type(distance) if distance < 0 else descendant_type(distance)
        elif rel.type in (t.AUNT, t.UNCLE):
            rel_type = t.NIECE if self._is_female(rel.from_id) else t.NEPHEW
        elif rel.type in (t.NIECE, t.NEPHEW):
            rel_type = t.AUNT if self._is_female(rel.from_id) else t.UNCLE
        else:
            rel_type = rel.type
        return Relationship(
            from_id=rel.to_id,
            to_id=rel.from_id,
            type=rel_type,
            path=tuple(reversed(rel.path)),
            distance=distance,
            is_direct=rel.is_direct,
            description=label_for(rel_type, distance),
        )

    def _put_mirror(self, rel: Relationship) -> None:
        mirror = self._mirror(rel)
        key = (mirror.from_id, mirror.to_id)
        if (rel.from_id, rel.to_id) in self._bent:
            self._bent.add(key)
        else:
            self._bent.discard(key)
        self._put(mirror)

    def _agrees(self, fwd: Relationship, back: Relationship) -> bool:
        expected = self._mirror(fwd)
        return back.type is expected.type and back.distance == expected.distance

    def _rank(self, rel: Relationship) -> tuple[int, int]:
        """Lower wins: spouse, straight lineage, closest collateral, bent lineage."""
        if rel.type is RelationshipType.SPOUSE:
            return (0, 0)
        if rel.type in LINEAGE_TYPES:
            return (3, 0) if (rel.from_id, rel.to_id) in self._bent else (1, 0)
        return (2, len(rel.path))

    def _is_female(self, pid: str) -> bool:
        person = self._graph.person(pid)
        return bool(person and person.is_female)


def build(persons: Iterable[Person], edges: Iterable[FactEdge]) -> RelationshipStore:
    """Derive every relationship for a ``(persons, edges)`` snapshot."""
    started = time.perf_counter()
    edges = list(edges)
    graph = FactGraph(persons, edges)
    store = _StoreBuilder(graph).build()
    logger.info(
        "Built relationship store: %d persons, %d edges (%d dropped), %d relations in %.1f ms",
        len(graph.persons), len(edges), len(graph.dropped),
        store.relationship_count(), (time.perf_counter() - started) * 1000,
    )
    return store
