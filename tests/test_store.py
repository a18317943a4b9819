"""Tests for the RelationshipStore query surface."""
from __future__ import annotations

import dataclasses

import pytest

from kinship.family.engine import build
from kinship.family.facts import FactEdge
from kinship.family.relations import RelationshipType as T

from tests.helpers import parent, people


class TestQueries:
    """Tests for get / all_for / by_type / describe."""

    def test_get_unknown_pair(self, extended_store):
        assert extended_store.get("paul", "xavier") is None
        assert extended_store.get("nobody", "paul") is None

    def test_all_for_excludes_self(self, extended_store):
        for pid in extended_store.persons:
            assert all(rel.to_id != pid for rel in extended_store.all_for(pid))

    def test_all_for_contents(self, extended_store):
        targets = {rel.to_id for rel in extended_store.all_for("paul")}
        assert {"frank", "mary", "sara", "hank", "walter", "martha",
                "ursula", "victor", "cleo", "colin", "nora"} <= targets
        assert "xavier" not in targets

    def test_unrelated_person_has_nothing(self, extended_store):
        assert extended_store.all_for("xavier") == []
        assert extended_store.all_for("not-a-person") == []

    def test_by_type(self, extended_store):
        cousins = {rel.to_id for rel in extended_store.by_type("paul", T.COUSIN)}
        assert cousins == {"cleo", "colin"}
        grandparents = {rel.to_id for rel in extended_store.by_type("paul", "grandparent")}
        assert grandparents == {"walter", "martha"}

    def test_by_type_accepts_underscored_names(self, extended_store):
        half = extended_store.by_type("paul", "half_sibling")
        assert [rel.to_id for rel in half] == ["hank"]

    def test_by_type_self_is_never_listed(self, extended_store):
        assert extended_store.by_type("paul", T.SELF) == []

    def test_by_type_rejects_unknown_type(self, extended_store):
        with pytest.raises(ValueError):
            extended_store.by_type("paul", "second-aunt")

    def test_describe(self, extended_store):
        assert extended_store.describe("paul", "ursula") == "Ursula (Aunt)"
        assert extended_store.describe("nora", "walter") == "Walter (Great-Grandparent)"

    def test_describe_no_relation(self, extended_store):
        assert extended_store.describe("paul", "xavier") == "No relation"


class TestViews:
    """Tests for export, grouping and inferred-only views."""

    def test_export_all_covers_every_person(self, extended_store):
        exported = extended_store.export_all()
        assert set(exported) == set(extended_store.persons)
        assert exported["xavier"] == []
        assert exported["paul"] == extended_store.all_for("paul")

    def test_grouped_for_uses_display_order(self, extended_store):
        groups = extended_store.grouped_for("paul")
        keys = list(groups)

        assert keys[0] is T.PARENT
        assert keys.index(T.SIBLING) < keys.index(T.GRANDPARENT) < keys.index(T.AUNT)
        assert keys[-1] is T.COUSIN
        assert {r.to_id for r in groups[T.COUSIN]} == {"cleo", "colin"}
        assert T.SPOUSE not in groups

    def test_inferred_for_skips_asserted_facts(self, extended_family, extended_store):
        _, edges = extended_family
        inferred = {rel.to_id for rel in extended_store.inferred_for("paul", edges)}

        assert "frank" not in inferred
        assert "mary" not in inferred
        assert {"walter", "martha", "cleo"} <= inferred

    def test_inferred_for_ignores_edges_the_engine_dropped(self, extended_family, extended_store):
        _, edges = extended_family
        edges = edges + [
            FactEdge("paul", "cleo", "friend"),
            FactEdge("paul", "paul", "spouse"),
        ]
        inferred = {rel.to_id for rel in extended_store.inferred_for("paul", edges)}

        assert "cleo" in inferred
        assert "frank" not in inferred


class TestImmutability:
    """The store is read-only once built."""

    def test_persons_mapping_is_read_only(self, extended_store):
        with pytest.raises(TypeError):
            extended_store.persons["new"] = None

    def test_relationships_are_frozen(self, extended_store):
        rel = extended_store.get("paul", "frank")
        with pytest.raises(dataclasses.FrozenInstanceError):
            rel.type = T.UNCLE

    def test_returned_lists_are_copies(self, extended_store):
        extended_store.all_for("paul").clear()
        assert extended_store.all_for("paul")

    def test_len_and_contains(self):
        store = build(people("a", "b"), [parent("a", "b")])
        assert len(store) == 2
        assert "a" in store
        assert "z" not in store
        assert store.relationship_count() == 2
