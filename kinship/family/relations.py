"""Relationship kinds, the Relationship record, and the one place labels are made."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RelationshipType(str, Enum):
    SELF = "self"
    SPOUSE = "spouse"
    PARENT = "parent"
    CHILD = "child"
    GRANDPARENT = "grandparent"
    GRANDCHILD = "grandchild"
    GREAT_GRANDPARENT = "great-grandparent"
    GREAT_GRANDCHILD = "great-grandchild"
    SIBLING = "sibling"
    HALF_SIBLING = "half-sibling"
    AUNT = "aunt"
    UNCLE = "uncle"
    NIECE = "niece"
    NEPHEW = "nephew"
    COUSIN = "cousin"
    # Declared for consumers; no derivation rule produces it yet.
    SECOND_COUSIN = "second-cousin"


LINEAGE_TYPES = frozenset({
    RelationshipType.PARENT,
    RelationshipType.CHILD,
    RelationshipType.GRANDPARENT,
    RelationshipType.GRANDCHILD,
    RelationshipType.GREAT_GRANDPARENT,
    RelationshipType.GREAT_GRANDCHILD,
})

COLLATERAL_TYPES = frozenset({
    RelationshipType.SIBLING,
    RelationshipType.HALF_SIBLING,
    RelationshipType.AUNT,
    RelationshipType.UNCLE,
    RelationshipType.NIECE,
    RelationshipType.NEPHEW,
    RelationshipType.COUSIN,
    RelationshipType.SECOND_COUSIN,
})

SYMMETRIC_TYPES = frozenset({
    RelationshipType.SPOUSE,
    RelationshipType.SIBLING,
    RelationshipType.HALF_SIBLING,
    RelationshipType.COUSIN,
})

# Display order for grouped views (profile page).
DISPLAY_ORDER: tuple[RelationshipType, ...] = (
    RelationshipType.SPOUSE,
    RelationshipType.PARENT,
    RelationshipType.CHILD,
    RelationshipType.SIBLING,
    RelationshipType.HALF_SIBLING,
    RelationshipType.GRANDPARENT,
    RelationshipType.GRANDCHILD,
    RelationshipType.GREAT_GRANDPARENT,
    RelationshipType.GREAT_GRANDCHILD,
    RelationshipType.AUNT,
    RelationshipType.UNCLE,
    RelationshipType.NIECE,
    RelationshipType.NEPHEW,
    RelationshipType.COUSIN,
    RelationshipType.SECOND_COUSIN,
)


@dataclass(frozen=True)
class Relationship:
    """One inferred relation from ``from_id``'s point of view."""
    from_id: str
    to_id: str
    type: RelationshipType
    path: tuple[str, ...]
    # Signed generation offset: <0 older, >0 younger, 0 same generation.
    # Aunt/uncle (-1) and niece/nephew (+1) carry one too, so a negative
    # distance alone does not mean ancestor; check ``type`` for that.
    distance: int
    is_direct: bool
    description: str

    def to_dict(self) -> dict:
        return {
            "from_id": self.from_id,
            "to_id": self.to_id,
            "type": self.type.value,
            "path": list(self.path),
            "distance": self.distance,
            "is_direct": self.is_direct,
            "description": self.description,
        }


# ---------------------------------------------------------------------------
# Tiers + labels
# ---------------------------------------------------------------------------

def ancestor_type(distance: int) -> RelationshipType | None:
    """Lineage tier for an ancestor ``|distance|`` generations up."""
    n = abs(distance)
    if n == 0:
        return None
    if n == 1:
        return RelationshipType.PARENT
    if n == 2:
        return RelationshipType.GRANDPARENT
    return RelationshipType.GREAT_GRANDPARENT


def descendant_type(distance: int) -> RelationshipType | None:
    """Lineage tier for a descendant ``|distance|`` generations down."""
    n = abs(distance)
    if n == 0:
        return None
    if n == 1:
        return RelationshipType.CHILD
    if n == 2:
        return RelationshipType.GRANDCHILD
    return RelationshipType.GREAT_GRANDCHILD


def _greats(distance: int) -> str:
    return "Great-" * (abs(distance) - 2)


def label_for(rel_type: RelationshipType, distance: int = 0) -> str:
    """Human label for a relationship kind.

    ``distance`` only matters for the great- tiers, where "Great-" is
    repeated ``|distance| - 2`` times (3 -> Great-Grandparent,
    4 -> Great-Great-Grandparent, ...).
    """
    t = RelationshipType
    if rel_type is t.SELF:
        return "Self"
    if rel_type is t.SPOUSE:
        return "Spouse"
    if rel_type is t.PARENT:
        return "Parent"
    if rel_type is t.CHILD:
        return "Child"
    if rel_type is t.GRANDPARENT:
        return "Grandparent"
    if rel_type is t.GRANDCHILD:
        return "Grandchild"
    if rel_type is t.GREAT_GRANDPARENT:
        return f"{_greats(max(abs(distance), 3))}Grandparent"
    if rel_type is t.GREAT_GRANDCHILD:
        return f"{_greats(max(abs(distance), 3))}Grandchild"
    if rel_type is t.SIBLING:
        return "Sibling"
    if rel_type is t.HALF_SIBLING:
        return "Half-Sibling"
    if rel_type is t.AUNT:
        return "Aunt"
    if rel_type is t.UNCLE:
        return "Uncle"
    if rel_type is t.NIECE:
        return "Niece"
    if rel_type is t.NEPHEW:
        return "Nephew"
    if rel_type is t.COUSIN:
        return "Cousin"
    if rel_type is t.SECOND_COUSIN:
        return "Second Cousin"
    raise ValueError(f"No label for relationship type: {rel_type!r}")


def plural_label(rel_type: RelationshipType) -> str:
    """'Cousins', 'Half-Siblings', 'Great-Grandparents' ..."""
    base = label_for(rel_type, 3)
    if base.endswith("Child"):
        return base + "ren"
    return base + "s"


def parse_type(value: str | RelationshipType) -> RelationshipType:
    """Coerce a query-string value into a RelationshipType (raises ValueError)."""
    if isinstance(value, RelationshipType):
        return value
    return RelationshipType(value.strip().lower().replace("_", "-"))
