"""Cover tree neighbor search.

The tree stores every point in exactly one node. A node at ``level`` covers its
children within ``base ** level`` and children always sit on a lower level than
their parent, so balls shrink on the way down. Each node also records the
exact largest distance to any of its descendants, which bounds the
branch-and-bound queries.

Insertion is incremental: the root level is raised until its ball covers the
new point, then the point descends into the first child (in insertion order)
whose ball covers it, and becomes a leaf one level below the deepest covering
node. Queries rank candidates by ``(distance, index)`` and only prune subtrees
whose lower bound is strictly worse than the current k-th candidate, so results
match brute force exactly, ties included.
"""

from __future__ import annotations

import heapq
import math
from collections.abc import Callable
from dataclasses import dataclass, field

import numpy as np

from manifold_embedding_toolkit.neighbors.base import (
    Metric,
    NeighborsFinder,
    NeighborsMethod,
    non_finite_distance,
)

DEFAULT_BASE = 1.3


@dataclass(eq=False)
class CoverTreeNode:
    point: int
    level: int
    children: list[CoverTreeNode] = field(default_factory=list)
    max_distance: float = 0.0


class CoverTree:
    """Metric-ball tree over point indices with an exact kNN query."""

    def __init__(self, metric: Metric, base: float = DEFAULT_BASE) -> None:
        if base <= 1.0:
            raise ValueError(f"Cover tree base must be greater than 1, got {base}")
        self.metric = metric
        self.base = base
        self.root: CoverTreeNode | None = None
        self.size = 0

    def radius(self, level: int) -> float:
        return self.base**level

    def insert(self, point: int) -> None:
        self.size += 1
        if self.root is None:
            self.root = CoverTreeNode(point=point, level=0)
            return

        node = self.root
        distance = self._distance(node.point, point)
        while self.radius(node.level) < distance:
            node.level += 1

        while True:
            node.max_distance = max(node.max_distance, distance)
            for child in node.children:
                child_distance = self._distance(child.point, point)
                if child_distance <= self.radius(child.level):
                    node, distance = child, child_distance
                    break
            else:
                node.children.append(CoverTreeNode(point=point, level=node.level - 1))
                return

    def query(self, point: int, k: int) -> np.ndarray:
        """Return the ``k`` nearest indices to ``point``, excluding itself."""
        if self.root is None or k <= 0:
            return np.empty(0, dtype=np.intp)

        # max-heap of the best candidates as (-distance, -index)
        best: list[tuple[float, int]] = []

        def worst_distance() -> float:
            return -best[0][0] if len(best) == k else math.inf

        root_distance = self._distance(point, self.root.point)
        frontier = [
            (
                max(0.0, root_distance - self.root.max_distance),
                root_distance,
                self.root.point,
                self.root,
            )
        ]
        while frontier:
            bound, distance, _, node = heapq.heappop(frontier)
            if bound > worst_distance():
                break

            if node.point != point:
                candidate = (-distance, -node.point)
                if len(best) < k:
                    heapq.heappush(best, candidate)
                elif candidate > best[0]:
                    heapq.heapreplace(best, candidate)

            for child in node.children:
                child_distance = self._distance(point, child.point)
                child_bound = max(0.0, child_distance - child.max_distance)
                if child_bound <= worst_distance():
                    heapq.heappush(
                        frontier, (child_bound, child_distance, child.point, child)
                    )

        ranked = sorted((-d, -i) for d, i in best)
        return np.array([index for _, index in ranked], dtype=np.intp)

    def edges(self) -> list[tuple[int, int, int, int]]:
        """Flatten the tree as ``(parent point, parent level, child point, child level)``."""
        edges: list[tuple[int, int, int, int]] = []
        stack = [self.root] if self.root is not None else []
        while stack:
            node = stack.pop()
            for child in node.children:
                edges.append((node.point, node.level, child.point, child.level))
                stack.append(child)
        return edges

    def _distance(self, i: int, j: int) -> float:
        distance = float(self.metric(i, j))
        if not math.isfinite(distance):
            raise non_finite_distance(i, j, distance)
        return distance


class CoverTreeNeighbors(NeighborsFinder):
    method = NeighborsMethod.COVER_TREE

    def __init__(self, *, n_jobs: int = 1, base: float = DEFAULT_BASE) -> None:
        super().__init__(n_jobs=n_jobs)
        self.base = base

    def prepare(self, n: int, metric: Metric) -> Callable[[int, int], np.ndarray]:
        tree = CoverTree(metric, base=self.base)
        for point in range(n):
            tree.insert(point)
        return tree.query
