"""
Foreign-key dependency ordering.

Orders tables so that every referenced (parent) table is exported before the
tables referencing it, which lets a plain sequential reload satisfy FK
constraints. Cycles cannot be ordered; they degrade to alphabetical order with
a warning instead of failing the dump.
"""

import logging
from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from .tables import TableRef

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportPlan:
    """Tables in export order, plus whether the FK graph had a cycle."""

    tables: tuple[TableRef, ...]
    cycle_detected: bool = False

    def __iter__(self) -> Iterator[TableRef]:
        return iter(self.tables)

    def __len__(self) -> int:
        return len(self.tables)


class DependencyGraph:
    """
    FK graph over a fixed table set.

    Nodes are positions in ``tables``; ``children[i]`` lists the nodes that
    must come after node ``i``. Edges touching tables outside the set, and
    self references, are ignored.
    """

    def __init__(self, tables: Iterable[TableRef]):
        self.tables: list[TableRef] = list(tables)
        self._position = {table: i for i, table in enumerate(self.tables)}
        self.children: list[list[int]] = [[] for _ in self.tables]
        self.in_degree: list[int] = [0] * len(self.tables)

    def add_foreign_key(self, child: TableRef, parent: TableRef) -> bool:
        """Record that ``child`` references ``parent``. Returns True if it adds an edge."""
        child_idx = self._position.get(child)
        parent_idx = self._position.get(parent)

        if child_idx is None or parent_idx is None or child_idx == parent_idx:
            return False

        self.children[parent_idx].append(child_idx)
        self.in_degree[child_idx] += 1
        return True

    def topological_order(self) -> list[TableRef] | None:
        """
        Kahn's algorithm with a deterministic frontier.

        The initial frontier is sorted by qualified name; nodes freed later are
        appended in discovery order. Returns None if a cycle remains.
        """
        in_degree = list(self.in_degree)
        frontier = deque(sorted(
            (i for i, degree in enumerate(in_degree) if degree == 0),
            key=lambda i: self.tables[i].qualified,
        ))

        order = []
        while frontier:
            node = frontier.popleft()
            order.append(self.tables[node])
            for child in self.children[node]:
                in_degree[child] -= 1
                if in_degree[child] == 0:
                    frontier.append(child)

        if len(order) < len(self.tables):
            return None
        return order


def order_tables(
    tables: Iterable[TableRef],
    fk_edges: Iterable[tuple[TableRef, TableRef]],
) -> ExportPlan:
    """
    Order tables for export.

    Args:
        tables: Resolved table set
        fk_edges: (child, parent) pairs, one per foreign key constraint

    Returns:
        ExportPlan with parents before children, or every table in
        alphabetical order with ``cycle_detected`` set when the graph is cyclic
    """
    graph = DependencyGraph(tables)
    edge_count = sum(1 for child, parent in fk_edges if graph.add_foreign_key(child, parent))

    order = graph.topological_order()
    if order is None:
        logger.warning(
            "Circular FK dependencies detected, using alphabetical fallback. "
            "Reloading this dump may require deferred constraints."
        )
        fallback = sorted(graph.tables, key=lambda table: table.qualified)
        return ExportPlan(tables=tuple(fallback), cycle_detected=True)

    logger.debug(f"Ordered {len(order)} tables using {edge_count} FK edges")
    return ExportPlan(tables=tuple(order), cycle_detected=False)
