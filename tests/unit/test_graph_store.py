"""
Unit tests for the curriculum graph store and curriculum file loading.
"""

import json

import pytest

from neuroforge.curriculum.models import DependencyGraph, LearningUnit
from neuroforge.curriculum.store import (
    DependencyGraphStore,
    InMemoryGraphStore,
    load_curriculum,
    parse_curriculum,
)
from neuroforge.errors import GraphIntegrityError, InvalidInputError, NotFoundError


class TestIncrementalEdits:
    def test_satisfies_protocol(self, graph_store):
        assert isinstance(graph_store, DependencyGraphStore)

    def test_add_unit_with_known_prerequisite(self, graph_store):
        before = graph_store.version
        graph_store.add_unit(LearningUnit("D", prerequisites=("C",)))
        assert graph_store.version == before + 1
        assert graph_store.list_prerequisites("D") == ["C"]

    def test_dangling_prerequisite_rejected(self, graph_store):
        before = graph_store.version
        with pytest.raises(GraphIntegrityError) as exc:
            graph_store.add_unit(LearningUnit("D", prerequisites=("missing",)))
        assert exc.value.edge == ("missing", "D")
        assert graph_store.get_unit("D") is None
        assert graph_store.version == before

    def test_edge_closing_a_cycle_rejected(self, graph_store):
        # C already requires A, so A requiring C would loop
        with pytest.raises(GraphIntegrityError):
            graph_store.add_unit(LearningUnit("A", prerequisites=("C",)))
        assert graph_store.get_unit("A").prerequisites == ()

    def test_replacing_unit_with_safe_edges(self, graph_store):
        graph_store.add_unit(LearningUnit("E"))
        graph_store.add_unit(LearningUnit("A", prerequisites=("E",)))
        assert graph_store.list_prerequisites("A") == ["E"]

    def test_batch_may_reference_itself_in_any_order(self):
        store = InMemoryGraphStore()
        store.add_units([LearningUnit("y", prerequisites=("x",)), LearningUnit("x")])
        assert [u.unit_id for u in store.list_all_units()] == ["x", "y"]

    def test_cyclic_batch_rejected_atomically(self, graph_store):
        with pytest.raises(GraphIntegrityError):
            graph_store.add_units([
                LearningUnit("p", prerequisites=("q",)),
                LearningUnit("q", prerequisites=("p",)),
            ])
        assert graph_store.get_unit("p") is None
        assert len(graph_store.list_all_units()) == 3

    def test_remove_unit_with_dependents_rejected(self, graph_store):
        with pytest.raises(GraphIntegrityError):
            graph_store.remove_unit("A")
        graph_store.remove_unit("C")
        assert graph_store.get_unit("C") is None

    def test_unknown_unit_lookups(self, graph_store):
        with pytest.raises(NotFoundError):
            graph_store.list_prerequisites("nope")
        with pytest.raises(NotFoundError):
            graph_store.remove_unit("nope")


class TestGraphSnapshots:
    def test_snapshot_reused_until_edit(self, graph_store):
        first = graph_store.graph()
        assert graph_store.graph() is first

        graph_store.add_unit(LearningUnit("D"))
        second = graph_store.graph()
        assert second is not first
        assert second.version != first.version
        assert "D" in second and "D" not in first

    def test_versions_differ_between_stores(self, abc_units):
        assert InMemoryGraphStore(abc_units).graph().version != InMemoryGraphStore(abc_units).graph().version

    def test_dependents_sorted(self, graph_store):
        graph = graph_store.graph()
        assert graph.dependents("A") == ("B", "C")
        assert graph.dependents("C") == ()


class TestLearningUnit:
    def test_self_prerequisite_rejected(self):
        with pytest.raises(InvalidInputError):
            LearningUnit("a", prerequisites=("a",))

    def test_duplicate_prerequisite_rejected(self):
        with pytest.raises(InvalidInputError):
            LearningUnit("a", prerequisites=("b", "b"))

    def test_duplicate_unit_ids_rejected(self):
        with pytest.raises(InvalidInputError):
            DependencyGraph([LearningUnit("a"), LearningUnit("a")])


class TestCurriculumFiles:
    def test_parse_curriculum(self, sample_curriculum):
        units = {u.unit_id: u for u in parse_curriculum(sample_curriculum)}
        assert units["algebra"].prerequisites == ("arithmetic",)
        assert units["mechanics"].order_hint == 1
        assert units["arithmetic"].item_ids == ("add", "mul")
        assert units["mechanics"].tags == frozenset({"physics"})

    def test_title_defaults_to_id(self):
        (unit,) = parse_curriculum({"units": [{"id": "solo"}]})
        assert unit.title == "solo"

    def test_invalid_document_rejected(self):
        with pytest.raises(InvalidInputError):
            parse_curriculum({"units": [{"title": "no id"}]})

    def test_load_curriculum(self, tmp_path, sample_curriculum):
        path = tmp_path / "curriculum.json"
        path.write_text(json.dumps(sample_curriculum), encoding="utf-8")
        store = load_curriculum(path)
        assert [u.unit_id for u in store.list_all_units()] == ["algebra", "arithmetic", "mechanics"]

    def test_load_cyclic_curriculum_rejected(self, tmp_path):
        path = tmp_path / "curriculum.json"
        path.write_text(
            json.dumps({"units": [{"id": "a", "prerequisites": ["b"]}, {"id": "b", "prerequisites": ["a"]}]}),
            encoding="utf-8",
        )
        with pytest.raises(GraphIntegrityError):
            load_curriculum(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_curriculum(tmp_path / "missing.json")
