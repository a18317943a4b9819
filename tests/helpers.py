"""Snapshot builders shared by the test modules."""
from __future__ import annotations

import random

from kinship.family.facts import FactEdge, Person


def parent(from_id: str, to_id: str) -> FactEdge:
    return FactEdge(from_id, to_id, "parent")


def spouse(from_id: str, to_id: str) -> FactEdge:
    return FactEdge(from_id, to_id, "spouse")


def people(*ids: str, **genders: str) -> list[Person]:
    return [Person(id=pid, name=pid.capitalize(), gender=genders.get(pid)) for pid in ids]


def layered_family(seed: int, generations: int = 4, width: int = 4) -> tuple[list[Person], list[FactEdge]]:
    """Random generation-layered tree: parents come from the layer above,
    spouses from the same layer (remarriage and cousin marriage included)."""
    rng = random.Random(seed)
    layers = [
        [f"g{g}p{i}" for i in range(rng.randint(2, width))]
        for g in range(generations)
    ]
    ids = [pid for layer in layers for pid in layer]
    genders = {pid: rng.choice(["male", "female", "other"]) for pid in ids}

    edges: list[FactEdge] = []
    for upper, lower in zip(layers, layers[1:]):
        for child in lower:
            for par in rng.sample(upper, rng.randint(0, 2)):
                edges.append(parent(par, child))
    for layer in layers:
        for _ in range(rng.randint(0, len(layer))):
            a, b = rng.sample(layer, 2)
            edges.append(spouse(a, b))
    return people(*ids, **genders), edges
