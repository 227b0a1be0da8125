"""AncestryGraph — leaves-before-roots ordering of filesystem paths."""

from __future__ import annotations

import posixpath
from typing import TYPE_CHECKING

import rustworkx

if TYPE_CHECKING:
    from collections.abc import Iterable


def proper_ancestors(path: str) -> list[str]:
    """Return the ancestors of *path*, nearest first, excluding the root.

    Examples:
        proper_ancestors("/tmp/foo/bar") -> ["/tmp/foo", "/tmp"]
        proper_ancestors("/tmp") -> []
    """
    ancestors: list[str] = []
    current = posixpath.dirname(path)
    while current and current != posixpath.dirname(current):
        ancestors.append(current)
        current = posixpath.dirname(current)
    return ancestors


class AncestryGraph:
    """Directed graph with an edge from every ancestor directory to each target path.

    Ancestor directories become nodes so that targets sharing a parent are
    ordered relative to each other, but only the registered targets are
    reported by :meth:`deletion_order`.
    """

    def __init__(self, paths: Iterable[str] = ()) -> None:
        self._graph: rustworkx.PyDiGraph = rustworkx.PyDiGraph()
        self._path_to_idx: dict[str, int] = {}
        self._targets: set[str] = set()
        for path in paths:
            self.add_path(path)

    def _node(self, path: str) -> int:
        idx = self._path_to_idx.get(path)
        if idx is None:
            idx = self._graph.add_node(path)
            self._path_to_idx[path] = idx
        return idx

    def add_path(self, path: str) -> None:
        """Register *path* as a target and link it under each of its ancestors."""
        path = posixpath.normpath(path)
        self._targets.add(path)
        target_idx = self._node(path)
        for ancestor in proper_ancestors(path):
            ancestor_idx = self._node(ancestor)
            if not self._graph.has_edge(ancestor_idx, target_idx):
                self._graph.add_edge(ancestor_idx, target_idx, None)

    @property
    def targets(self) -> set[str]:
        return set(self._targets)

    def nodes(self) -> list[str]:
        """All graph nodes, including ancestor-only directories."""
        return list(self._path_to_idx)

    def sorted_nodes(self) -> list[str]:
        """Every node, each placed after all nodes nested beneath it."""
        # Node payloads are the paths themselves; ties resolve by path order.
        roots_first = rustworkx.lexicographical_topological_sort(self._graph, key=str)
        return list(reversed(roots_first))

    def deletion_order(self) -> list[str]:
        """Registered targets only, deepest paths first."""
        return [path for path in self.sorted_nodes() if path in self._targets]


def deletion_order(paths: Iterable[str]) -> list[str]:
    """Order *paths* so that every path follows the paths nested beneath it."""
    return AncestryGraph(paths).deletion_order()
