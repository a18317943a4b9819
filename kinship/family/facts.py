"""Input facts (people, parent/spouse edges) and the adjacency indexes built from them.

No DB, no I/O. The storage layer hands over a snapshot; everything here
treats it as read-only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping

logger = logging.getLogger("kinship.family.facts")


class Gender(str, Enum):
    FEMALE = "female"
    MALE = "male"
    OTHER = "other"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | Gender | None) -> Gender:
        if isinstance(value, Gender):
            return value
        if not value:
            return cls.UNKNOWN
        normalized = value.strip().lower()
        # Storage rows sometimes carry GEDCOM-style sex codes
        normalized = {"f": "female", "m": "male"}.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            return cls.UNKNOWN


class EdgeKind(str, Enum):
    PARENT = "parent"
    SPOUSE = "spouse"


@dataclass(frozen=True)
class Person:
    id: str
    name: str | None = None
    nickname: str | None = None
    gender: Gender = Gender.UNKNOWN
    born: int | None = None  # collaborators only; the engine never reads it

    def __post_init__(self) -> None:
        object.__setattr__(self, "gender", Gender.parse(self.gender))

    @property
    def display_name(self) -> str:
        return self.name or self.nickname or "Unknown"

    @property
    def is_female(self) -> bool:
        return self.gender is Gender.FEMALE


@dataclass(frozen=True)
class FactEdge:
    """A single asserted fact. ``parent``: from_id is a parent of to_id."""
    from_id: str
    to_id: str
    kind: str

    @property
    def edge_kind(self) -> EdgeKind | None:
        try:
            return EdgeKind(self.kind)
        except ValueError:
            return None

    @property
    def asserts_relation(self) -> bool:
        """False for unsupported kinds and self links, which the graph builder drops."""
        return self.edge_kind is not None and self.from_id != self.to_id


# ---------------------------------------------------------------------------
# Graph builder
# ---------------------------------------------------------------------------

def _freeze(index: dict[str, set[str]]) -> Mapping[str, frozenset[str]]:
    return MappingProxyType({k: frozenset(v) for k, v in index.items()})


class FactGraph:
    """Parents-of / children-of / spouses-of indexes over one snapshot."""

    def __init__(self, persons: Iterable[Person], edges: Iterable[FactEdge]):
        self.persons: Mapping[str, Person] = MappingProxyType({p.id: p for p in persons})

        parents: dict[str, set[str]] = {}  # child_id -> {parent_ids}
        children: dict[str, set[str]] = {}  # parent_id -> {child_ids}
        spouses: dict[str, set[str]] = {}  # person_id -> {spouse_ids}
        self.dropped: list[FactEdge] = []

        for edge in edges:
            kind = edge.edge_kind
            if kind is None:
                continue
            if edge.from_id not in self.persons or edge.to_id not in self.persons:
                logger.debug("Dropping edge to unknown person: %s", edge)
                self.dropped.append(edge)
                continue
            if edge.from_id == edge.to_id:
                logger.debug("Dropping self-referencing edge: %s", edge)
                self.dropped.append(edge)
                continue

            if kind is EdgeKind.PARENT:
                children.setdefault(edge.from_id, set()).add(edge.to_id)
                parents.setdefault(edge.to_id, set()).add(edge.from_id)
            else:
                spouses.setdefault(edge.from_id, set()).add(edge.to_id)
                spouses.setdefault(edge.to_id, set()).add(edge.from_id)

        self._parents = _freeze(parents)
        self._children = _freeze(children)
        self._spouses = _freeze(spouses)

    def parents_of(self, pid: str) -> frozenset[str]:
        return self._parents.get(pid, frozenset())

    def children_of(self, pid: str) -> frozenset[str]:
        return self._children.get(pid, frozenset())

    def spouses_of(self, pid: str) -> frozenset[str]:
        return self._spouses.get(pid, frozenset())

    def person(self, pid: str) -> Person | None:
        return self.persons.get(pid)


# ---------------------------------------------------------------------------
# Data-integrity helpers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OrphanCleanup:
    kept: list[FactEdge]
    removed: list[FactEdge]

    @property
    def removed_count(self) -> int:
        return len(self.removed)


def cleanup_orphaned_edges(persons: Iterable[Person], edges: Iterable[FactEdge]) -> OrphanCleanup:
    """Split edges into those whose endpoints both exist and those that don't."""
    known = {p.id for p in persons}
    kept: list[FactEdge] = []
    removed: list[FactEdge] = []
    for edge in edges:
        if edge.from_id in known and edge.to_id in known:
            kept.append(edge)
            continue
        logger.warning(
            "Removing orphaned %s edge %s -> %s (from exists: %s, to exists: %s)",
            edge.kind, edge.from_id, edge.to_id,
            edge.from_id in known, edge.to_id in known,
        )
        removed.append(edge)
    return OrphanCleanup(kept=kept, removed=removed)


def validate_edge(edge: FactEdge, persons: Iterable[Person]) -> tuple[bool, str | None]:
    """Check a proposed edge against a snapshot. Returns (valid, error)."""
    known = {p.id for p in persons}
    if edge.edge_kind is None:
        return False, f"Unsupported edge kind: {edge.kind}"
    if edge.from_id not in known:
        return False, f"Source member not found: {edge.from_id}"
    if edge.to_id not in known:
        return False, f"Target member not found: {edge.to_id}"
    if edge.from_id == edge.to_id:
        return False, "Cannot create relationship to self"
    return True, None
