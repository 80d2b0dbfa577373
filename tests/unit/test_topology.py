"""
Unit tests for graph integrity checks and topological layering.
"""

import pytest

from neuroforge.curriculum.models import DependencyGraph, LearningUnit
from neuroforge.curriculum.topology import check_references, find_cycle, reaches, topological_layers
from neuroforge.errors import GraphIntegrityError


def _graph(*specs):
    return DependencyGraph(LearningUnit(unit_id, prerequisites=tuple(prereqs)) for unit_id, prereqs in specs)


class TestTopologicalLayers:
    def test_empty_graph(self):
        assert topological_layers(DependencyGraph()) == []

    def test_roots_only_single_layer(self):
        graph = _graph(("c", []), ("a", []), ("b", []))
        assert topological_layers(graph) == [("a", "b", "c")]

    def test_layers_respect_prerequisites(self, abc_units):
        assert topological_layers(DependencyGraph(abc_units)) == [("A",), ("B",), ("C",)]

    def test_diamond(self):
        graph = _graph(("base", []), ("left", ["base"]), ("right", ["base"]), ("top", ["left", "right"]))
        assert topological_layers(graph) == [("base",), ("left", "right"), ("top",)]

    def test_every_unit_after_its_prerequisites(self):
        graph = _graph(
            ("a", []),
            ("b", ["a"]),
            ("c", ["a"]),
            ("d", ["b", "c"]),
            ("e", ["a", "d"]),
            ("f", []),
        )
        depth = {
            unit_id: n for n, layer in enumerate(topological_layers(graph)) for unit_id in layer
        }
        assert len(depth) == 6
        for unit in graph:
            for prereq in unit.prerequisites:
                assert depth[prereq] < depth[unit.unit_id]

    def test_cycle_raises_with_members(self):
        graph = _graph(("root", []), ("x", ["root", "z"]), ("y", ["x"]), ("z", ["y"]))
        with pytest.raises(GraphIntegrityError) as exc:
            topological_layers(graph)
        assert set(exc.value.unit_ids) == {"x", "y", "z"}
        assert "cycle" in str(exc.value).lower()

    def test_dangling_reference_raises(self):
        graph = _graph(("a", ["ghost"]))
        with pytest.raises(GraphIntegrityError) as exc:
            topological_layers(graph)
        assert exc.value.edge == ("ghost", "a")


class TestFindCycle:
    def test_acyclic_returns_empty(self, abc_units):
        assert find_cycle(DependencyGraph(abc_units).units) == []

    def test_two_cycle_is_closed_path(self):
        cycle = find_cycle(_graph(("a", ["b"]), ("b", ["a"])).units)
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"a", "b"}


class TestReferencesAndReach:
    def test_check_references_passes_on_valid_graph(self, abc_units):
        check_references(DependencyGraph(abc_units).units)

    def test_reaches_transitive_prerequisite(self, abc_units):
        units = DependencyGraph(abc_units).units
        assert reaches(units, "C", "A")
        assert reaches(units, "B", "B")
        assert not reaches(units, "A", "C")
