"""Ordered adjacency maps with insert-or-get-default semantics."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterator


class AdjacencyMap[TNode: Hashable]:
    """Maps each node to the ordered set of its neighbours."""

    def __init__(self) -> None:
        self._edges: dict[TNode, dict[TNode, None]] = {}

    def get_or_insert(self, node: TNode) -> dict[TNode, None]:
        return self._edges.setdefault(node, {})

    def link(self, source: TNode, target: TNode) -> None:
        self.get_or_insert(source)[target] = None

    def neighbours(self, node: TNode) -> tuple[TNode, ...]:
        return tuple(self._edges.get(node, ()))

    def bfs(self, start: TNode, depth: int = 1) -> list[TNode]:
        """Nodes reachable from ``start`` within ``depth`` hops, in discovery order.

        Every node is visited at most once; ``start`` itself is not returned.
        """

        if depth < 1:
            return []
        visited: dict[TNode, None] = {start: None}
        frontier = [start]
        for _ in range(depth):
            next_frontier: list[TNode] = []
            for node in frontier:
                for neighbour in self._edges.get(node, ()):
                    if neighbour in visited:
                        continue
                    visited[neighbour] = None
                    next_frontier.append(neighbour)
            if not next_frontier:
                break
            frontier = next_frontier
        del visited[start]
        return list(visited)

    def __contains__(self, node: object) -> bool:
        return node in self._edges

    def __iter__(self) -> Iterator[TNode]:
        return iter(self._edges)

    def __len__(self) -> int:
        return len(self._edges)
