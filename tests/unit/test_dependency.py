"""
Unit tests for anonymize.dependency

Tests FK ordering, the alphabetical cycle fallback and edge filtering.
"""

import logging

from anonymize.dependency import DependencyGraph, ExportPlan, order_tables
from anonymize.tables import TableRef

CUSTOMERS = TableRef("public", "customers")
ORDERS = TableRef("public", "orders")
ORDER_ITEMS = TableRef("public", "order_items")


class TestOrderTables:
    """Test table ordering"""

    def test_customers_orders_items(self):
        """Parents come first whatever the input order"""
        tables = [ORDER_ITEMS, ORDERS, CUSTOMERS]
        edges = [(ORDERS, CUSTOMERS), (ORDER_ITEMS, ORDERS)]

        plan = order_tables(tables, edges)

        assert list(plan) == [CUSTOMERS, ORDERS, ORDER_ITEMS]
        assert plan.cycle_detected is False

    def test_no_edges_sorted_by_name(self):
        tables = [TableRef("public", "b"), TableRef("app", "z"), TableRef("public", "a")]

        plan = order_tables(tables, [])

        assert list(plan) == [TableRef("app", "z"), TableRef("public", "a"), TableRef("public", "b")]

    def test_independent_roots_deterministic(self):
        tables = [TableRef("public", "c"), TableRef("public", "a"), TableRef("public", "b")]
        edges = [(TableRef("public", "c"), TableRef("public", "b"))]

        first = order_tables(tables, edges)
        second = order_tables(list(reversed(tables)), edges)

        assert list(first) == list(second)

    def test_cycle_falls_back_to_alphabetical(self, caplog):
        a, b = TableRef("public", "a"), TableRef("public", "b")

        with caplog.at_level(logging.WARNING, logger="anonymize.dependency"):
            plan = order_tables([b, a], [(a, b), (b, a)])

        assert list(plan) == [a, b]
        assert plan.cycle_detected is True
        assert "Circular FK dependencies" in caplog.text

    def test_cycle_fallback_includes_acyclic_tables(self):
        a, b, c = TableRef("public", "a"), TableRef("public", "b"), TableRef("public", "c")

        plan = order_tables([c, b, a], [(b, c), (c, b), (b, a)])

        assert list(plan) == [a, b, c]
        assert plan.cycle_detected is True

    def test_self_reference_ignored(self):
        employees = TableRef("public", "employees")

        plan = order_tables([employees], [(employees, employees)])

        assert list(plan) == [employees]
        assert plan.cycle_detected is False

    def test_edges_outside_set_ignored(self):
        """FKs to skipped or excluded tables do not affect the order"""
        skipped = TableRef("app", "audit_logs")

        plan = order_tables([ORDERS, CUSTOMERS], [(ORDERS, CUSTOMERS), (CUSTOMERS, skipped)])

        assert list(plan) == [CUSTOMERS, ORDERS]

    def test_duplicate_edges(self):
        """Composite or repeated FKs between the same tables still order correctly"""
        plan = order_tables([ORDERS, CUSTOMERS], [(ORDERS, CUSTOMERS), (ORDERS, CUSTOMERS)])

        assert list(plan) == [CUSTOMERS, ORDERS]

    def test_empty(self):
        plan = order_tables([], [])

        assert len(plan) == 0
        assert plan.cycle_detected is False


class TestDependencyGraph:
    """Test graph construction"""

    def test_add_foreign_key(self):
        graph = DependencyGraph([CUSTOMERS, ORDERS])

        assert graph.add_foreign_key(ORDERS, CUSTOMERS) is True
        assert graph.in_degree == [0, 1]
        assert graph.children[0] == [1]

    def test_rejects_self_and_unknown(self):
        graph = DependencyGraph([CUSTOMERS])

        assert graph.add_foreign_key(CUSTOMERS, CUSTOMERS) is False
        assert graph.add_foreign_key(ORDERS, CUSTOMERS) is False

    def test_topological_order_none_on_cycle(self):
        graph = DependencyGraph([CUSTOMERS, ORDERS])
        graph.add_foreign_key(ORDERS, CUSTOMERS)
        graph.add_foreign_key(CUSTOMERS, ORDERS)

        assert graph.topological_order() is None

    def test_topological_order_does_not_consume_graph(self):
        graph = DependencyGraph([CUSTOMERS, ORDERS])
        graph.add_foreign_key(ORDERS, CUSTOMERS)

        assert graph.topological_order() == graph.topological_order()


class TestExportPlan:
    def test_iterable_and_sized(self):
        plan = ExportPlan(tables=(CUSTOMERS, ORDERS))

        assert len(plan) == 2
        assert list(plan) == [CUSTOMERS, ORDERS]
        assert plan.cycle_detected is False
