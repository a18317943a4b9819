"""Tests for the per-snapshot store cache."""
from __future__ import annotations

from kinship.family.cache import StoreCache, snapshot_fingerprint
from kinship.family.facts import Person
from kinship.family.relations import RelationshipType as T

from tests.helpers import parent, people, spouse


class TestFingerprint:
    """Tests for snapshot_fingerprint."""

    def test_order_independent(self):
        persons = people("a", "b", "c")
        edges = [parent("a", "c"), spouse("a", "b")]
        assert snapshot_fingerprint(persons, edges) == snapshot_fingerprint(
            list(reversed(persons)), list(reversed(edges))
        )

    def test_edge_change_alters_fingerprint(self):
        persons = people("a", "b")
        assert snapshot_fingerprint(persons, [parent("a", "b")]) != snapshot_fingerprint(
            persons, [parent("b", "a")]
        )

    def test_gender_change_alters_fingerprint(self):
        edges = [parent("a", "b")]
        before = [Person(id="a"), Person(id="b")]
        after = [Person(id="a"), Person(id="b", gender="female")]
        assert snapshot_fingerprint(before, edges) != snapshot_fingerprint(after, edges)


class TestStoreCache:
    """Tests for StoreCache."""

    def test_same_snapshot_returns_same_store(self):
        cache = StoreCache(max_size=4)
        persons = people("a", "b")
        edges = [parent("a", "b")]

        first = cache.get_or_build(persons, edges)
        second = cache.get_or_build(list(persons), list(edges))

        assert first is second
        assert cache.stats == {"size": 1, "hits": 1, "misses": 1}

    def test_changed_facts_build_a_new_store(self):
        cache = StoreCache(max_size=4)
        persons = people("a", "b")

        old = cache.get_or_build(persons, [parent("a", "b")])
        new = cache.get_or_build(persons, [spouse("a", "b")])

        assert old is not new
        # The old store is untouched by the rebuild
        assert old.get("b", "a").type is T.PARENT
        assert new.get("b", "a").type is T.SPOUSE

    def test_lru_eviction(self):
        cache = StoreCache(max_size=2)
        persons = people("a", "b", "c")
        s1 = [parent("a", "b")]
        s2 = [parent("b", "c")]
        s3 = [parent("a", "c")]

        cache.get_or_build(persons, s1)
        cache.get_or_build(persons, s2)
        cache.get_or_build(persons, s1)  # refresh s1
        cache.get_or_build(persons, s3)  # evicts s2

        assert len(cache) == 2
        cache.get_or_build(persons, s1)
        assert cache.stats["hits"] == 2
        cache.get_or_build(persons, s2)
        assert cache.stats["misses"] == 4

    def test_clear(self):
        cache = StoreCache()
        cache.get_or_build(people("a"), [])
        cache.clear()
        assert len(cache) == 0
