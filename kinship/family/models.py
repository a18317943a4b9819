"""Pydantic models for the relationship API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from kinship.family.facts import FactEdge, Person
from kinship.family.relations import Relationship


# ---------------------------------------------------------------------------
# Snapshot input
# ---------------------------------------------------------------------------

class PersonIn(BaseModel):
    id: str = Field(min_length=1)
    name: str | None = None
    nickname: str | None = None
    gender: Literal["female", "male", "other", "unknown"] | None = None
    born: int | None = None

    def to_person(self) -> Person:
        return Person(
            id=self.id,
            name=self.name,
            nickname=self.nickname,
            gender=self.gender,
            born=self.born,
        )


class EdgeIn(BaseModel):
    from_id: str = Field(min_length=1)
    to_id: str = Field(min_length=1)
    kind: str  # parent, spouse; anything else is ignored by the engine

    def to_edge(self) -> FactEdge:
        return FactEdge(from_id=self.from_id, to_id=self.to_id, kind=self.kind)


class SnapshotIn(BaseModel):
    persons: list[PersonIn]
    edges: list[EdgeIn] = []


# ---------------------------------------------------------------------------
# Relationships
# ---------------------------------------------------------------------------

class RelationshipOut(BaseModel):
    from_id: str
    to_id: str
    type: str
    path: list[str]
    distance: int
    is_direct: bool
    description: str

    @classmethod
    def from_relationship(cls, rel: Relationship) -> RelationshipOut:
        return cls(**rel.to_dict())


class PersonRelationsOut(BaseModel):
    person_id: str
    relationships: list[RelationshipOut]


class InferOut(BaseModel):
    people: list[PersonRelationsOut]
    relationship_count: int
    dropped_edges: int


class PairOut(BaseModel):
    from_id: str
    to_id: str
    relationship: RelationshipOut | None = None
    description: str


# ---------------------------------------------------------------------------
# Profile groups + relationship table
# ---------------------------------------------------------------------------

class RelationGroupOut(BaseModel):
    type: str
    label: str  # e.g. "Cousins"
    names: list[str]
    relationships: list[RelationshipOut]


class TableRowOut(BaseModel):
    from_id: str
    from_name: str
    to_id: str
    to_name: str
    type: str
    description: str
    is_direct: bool


class RelationshipTableOut(BaseModel):
    rows: list[TableRowOut]
    direct: int
    inferred: int


# ---------------------------------------------------------------------------
# Data integrity
# ---------------------------------------------------------------------------

class OrphansOut(BaseModel):
    removed_count: int
    removed: list[EdgeIn]


class EdgeValidationOut(BaseModel):
    valid: bool
    error: str | None = None
