"""
Graph integrity checks and topological layering.

All routines are iterative and visit each unit a bounded number of times, so a
corrupted (cyclic) graph is reported instead of looping.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Mapping

from loguru import logger

from neuroforge.errors import GraphIntegrityError

from .models import DependencyGraph, LearningUnit


def check_references(units: Mapping[str, LearningUnit]) -> None:
    """Raise on the first prerequisite that points at an unknown unit."""
    for unit_id in sorted(units):
        for prereq in units[unit_id].prerequisites:
            if prereq not in units:
                logger.warning(f"Dangling prerequisite {prereq} -> {unit_id}")
                raise GraphIntegrityError(
                    f"Unit {unit_id} requires unknown unit {prereq}",
                    unit_ids=(unit_id,),
                    edge=(prereq, unit_id),
                )


def topological_layers(graph: DependencyGraph) -> list[tuple[str, ...]]:
    """
    Kahn layering: layer 0 has no prerequisites, layer n depends only on
    layers < n. Units inside a layer are sorted by id.

    Raises:
        GraphIntegrityError: dangling reference or cycle
    """
    units = graph.units
    check_references(units)

    in_degree = {unit_id: len(unit.prerequisites) for unit_id, unit in units.items()}
    current = sorted(unit_id for unit_id, degree in in_degree.items() if degree == 0)
    layers: list[tuple[str, ...]] = []
    placed = 0

    while current:
        layers.append(tuple(current))
        placed += len(current)
        following = []
        for unit_id in current:
            for dependent in graph.dependents(unit_id):
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    following.append(dependent)
        current = sorted(following)

    if placed != len(units):
        cycle = find_cycle(units)
        logger.error(f"Cycle detected in prerequisite graph: {' -> '.join(cycle)}")
        raise GraphIntegrityError(
            f"Prerequisite cycle detected: {' -> '.join(cycle)}",
            unit_ids=cycle,
        )
    return layers


def find_cycle(units: Mapping[str, LearningUnit]) -> list[str]:
    """
    Return one prerequisite cycle as a closed path (first == last), or [].

    Iterative three-colour DFS over prerequisite edges.
    """
    white, grey, black = 0, 1, 2
    colour = dict.fromkeys(units, white)

    for root in sorted(units):
        if colour[root] != white:
            continue
        stack: list[tuple[str, int]] = [(root, 0)]
        path: list[str] = [root]
        colour[root] = grey
        while stack:
            node, index = stack[-1]
            prereqs = [p for p in units[node].prerequisites if p in units]
            if index < len(prereqs):
                stack[-1] = (node, index + 1)
                nxt = prereqs[index]
                if colour[nxt] == grey:
                    start = path.index(nxt)
                    # Report in unlock order: prerequisite before dependent
                    return list(reversed(path[start:] + [nxt]))
                if colour[nxt] == white:
                    colour[nxt] = grey
                    stack.append((nxt, 0))
                    path.append(nxt)
            else:
                colour[node] = black
                stack.pop()
                path.pop()
    return []


def reaches(units: Mapping[str, LearningUnit], start: str, target: str) -> bool:
    """True when ``target`` is ``start`` or one of its transitive prerequisites."""
    seen: set[str] = set()
    queue = deque([start])
    while queue:
        node = queue.popleft()
        if node == target:
            return True
        if node in seen or node not in units:
            continue
        seen.add(node)
        queue.extend(units[node].prerequisites)
    return False
