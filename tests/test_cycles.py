"""Tests for orgtree.cycles module."""

from __future__ import annotations

import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from orgtree.cycles import check_edge, detect_cycles, edge_lookup, store_lookup, would_create_cycle
from orgtree.database import OrgDB
from orgtree.directory import create_employee
from orgtree.store import ReportingEdge, find_edges, insert_edge


def _edges(*pairs: str) -> list[ReportingEdge]:
    """Build edges from "employee>manager" strings."""
    return [ReportingEdge(*pair.split(">")) for pair in pairs]


@pytest.fixture
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
def chain_db(temp_db_path: Path) -> Generator[OrgDB, None, None]:
    """Store with the chain D -> C -> B -> A (D reports to C, ...)."""
    with OrgDB(temp_db_path) as db:
        with db.transaction():
            for number in ("A", "B", "C", "D", "E"):
                create_employee(db, number, "Person", number)
            insert_edge(db, "B", "A")
            insert_edge(db, "C", "B")
            insert_edge(db, "D", "C")
        yield db


class TestWouldCreateCycle:
    """Tests for the pure cycle check."""

    def test_self_management_is_cycle(self) -> None:
        """Test an employee can never manage themselves, even with no edges."""
        assert would_create_cycle("X", "X", edge_lookup([]))

    def test_direct_inversion(self) -> None:
        """Test B reports to A, so A cannot report to B."""
        assert would_create_cycle("A", "B", edge_lookup(_edges("B>A")))

    def test_indirect_inversion(self) -> None:
        """Test the root cannot report to anyone below it."""
        lookup = edge_lookup(_edges("B>A", "C>B", "D>C"))
        assert would_create_cycle("A", "D", lookup)
        assert would_create_cycle("B", "D", lookup)

    def test_sideways_edge_allowed(self) -> None:
        """Test moving within the tree without inversion is fine."""
        lookup = edge_lookup(_edges("B>A", "C>A", "D>B"))
        assert not would_create_cycle("D", "C", lookup)
        assert not would_create_cycle("C", "B", lookup)

    def test_upward_edge_allowed(self) -> None:
        """Test reporting to an existing ancestor is fine."""
        lookup = edge_lookup(_edges("B>A", "C>B"))
        assert not would_create_cycle("C", "A", lookup)

    def test_unknown_identifiers(self) -> None:
        """Test employees absent from the graph never form a cycle."""
        assert not would_create_cycle("X", "Y", edge_lookup(_edges("B>A")))

    def test_terminates_on_existing_cycle(self) -> None:
        """Test the walk stops on data that is already cyclic."""
        lookup = edge_lookup(_edges("A>B", "B>C", "C>A"))
        assert not would_create_cycle("X", "A", lookup)
        assert would_create_cycle("B", "A", lookup)

    def test_follows_every_manager_row(self) -> None:
        """Test employees with several manager rows are walked on all branches."""
        lookup = edge_lookup(_edges("C>B", "C>D", "D>A"))
        assert would_create_cycle("A", "C", lookup)

    def test_lookup_called_lazily(self) -> None:
        """Test the walk stops as soon as the employee is reached."""
        calls: list[str] = []
        managers = {"C": ["B"], "B": ["A"], "A": []}

        def lookup(employee_id: str) -> list[str]:
            calls.append(employee_id)
            return managers.get(employee_id, [])

        assert would_create_cycle("B", "C", lookup)
        assert calls == ["C"]


class TestStoreBackedCheck:
    """Tests for the store-backed lookup."""

    def test_store_lookup_reads_managers(self, chain_db: OrgDB) -> None:
        assert list(store_lookup(chain_db)("C")) == ["B"]
        assert list(store_lookup(chain_db)("A")) == []

    def test_check_edge_detects_cycle(self, chain_db: OrgDB) -> None:
        assert check_edge(chain_db, "A", "D")
        assert check_edge(chain_db, "C", "C")

    def test_check_edge_allows_valid_edge(self, chain_db: OrgDB) -> None:
        assert not check_edge(chain_db, "E", "D")
        assert not check_edge(chain_db, "D", "A")

    def test_check_sees_latest_store_state(self, chain_db: OrgDB) -> None:
        """Test results are not cached between calls."""
        assert not check_edge(chain_db, "E", "A")
        insert_edge(chain_db, "A", "E")
        assert check_edge(chain_db, "E", "A")

    def test_matches_in_memory_check(self, chain_db: OrgDB) -> None:
        """Test store-backed and in-memory checks agree on every pair."""
        lookup = edge_lookup(find_edges(chain_db))
        ids = ["A", "B", "C", "D", "E"]
        for employee in ids:
            for manager in ids:
                assert check_edge(chain_db, employee, manager) == would_create_cycle(
                    employee, manager, lookup
                )


class TestDetectCycles:
    """Tests for whole-graph cycle detection."""

    def test_acyclic_graph(self) -> None:
        assert detect_cycles(_edges("B>A", "C>A", "D>B")) == []

    def test_empty_graph(self) -> None:
        assert detect_cycles([]) == []

    def test_simple_cycle(self) -> None:
        assert detect_cycles(_edges("A>B", "B>C", "C>A")) == [["A", "B", "C"]]

    def test_self_loop(self) -> None:
        assert detect_cycles(_edges("A>A", "B>A")) == [["A"]]

    def test_multiple_cycles_sorted_by_size(self) -> None:
        cycles = detect_cycles(_edges("A>B", "B>A", "X>Y", "Y>Z", "Z>X", "Q>A"))
        assert cycles == [["A", "B"], ["X", "Y", "Z"]]

    def test_long_chain_no_recursion_limit(self) -> None:
        """Test deep graphs are handled iteratively."""
        edges = [ReportingEdge(f"E{i}", f"E{i + 1}") for i in range(5000)]
        assert detect_cycles(edges) == []
        edges.append(ReportingEdge("E5000", "E0"))
        cycles = detect_cycles(edges)
        assert len(cycles) == 1
        assert len(cycles[0]) == 5001
