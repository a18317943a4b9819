"""Shared fixtures: small fact snapshots and the stores built from them."""
from __future__ import annotations

import pytest

from kinship.family.cache import store_cache
from kinship.family.engine import build
from tests.helpers import parent, people, spouse


@pytest.fixture
def extended_family():
    """Three generations plus a half-sibling and an outsider.

        walter = martha
          ├── frank = mary ── (mary alone) hank
          │     ├── paul
          │     └── sara ── nora
          ├── ursula = william
          │     └── cleo
          └── victor
                └── colin
        xavier (unrelated)
    """
    persons = people(
        "walter", "martha", "frank", "mary", "ursula", "william", "victor",
        "paul", "sara", "hank", "cleo", "colin", "nora", "xavier",
        walter="male", martha="female", frank="male", mary="female",
        ursula="female", william="male", victor="male", paul="male",
        sara="female", hank="male", cleo="female", colin="male", nora="female",
    )
    edges = [
        spouse("walter", "martha"),
        parent("walter", "frank"), parent("martha", "frank"),
        parent("walter", "ursula"), parent("martha", "ursula"),
        parent("walter", "victor"), parent("martha", "victor"),
        spouse("frank", "mary"),
        parent("frank", "paul"), parent("mary", "paul"),
        parent("frank", "sara"), parent("mary", "sara"),
        parent("mary", "hank"),
        spouse("ursula", "william"),
        parent("ursula", "cleo"), parent("william", "cleo"),
        parent("victor", "colin"),
        parent("sara", "nora"),
    ]
    return persons, edges


@pytest.fixture
def extended_store(extended_family):
    persons, edges = extended_family
    return build(persons, edges)


@pytest.fixture(autouse=True)
def _clear_store_cache():
    store_cache.clear()
    store_cache.hits = store_cache.misses = 0
    yield
    store_cache.clear()
    store_cache.hits = store_cache.misses = 0
