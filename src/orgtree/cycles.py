"""Cycle checking for the reporting graph.

Provides:
- would_create_cycle: the single check used before any edge is written,
  over any "who manages this employee" lookup
- store-backed and in-memory lookups for it
- detect_cycles: every cycle already present in an edge list

Design decisions:
- Iterative walk with a visited set, so already-cyclic data terminates
- Managers are read as a one-to-many lookup, tolerating employees that
  (transiently or erroneously) have several manager rows
- No caching: the store-backed lookup re-reads the store at every step
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from orgtree.database import OrgDB
from orgtree.store import ReportingEdge, find_edges

logger = logging.getLogger(__name__)

ManagerLookup = Callable[[str], Iterable[str]]


def would_create_cycle(
    employee_id: str,
    candidate_manager_id: str,
    managers_of: ManagerLookup,
) -> bool:
    """Check whether ``employee_id -> candidate_manager_id`` would close a cycle.

    Walks up from the candidate manager through its managers. If the walk
    reaches employee_id, the employee is already an ancestor of the
    candidate, so the new edge would make it its own ancestor.

    Args:
        employee_id: Employee who would report to the candidate.
        candidate_manager_id: Prospective manager.
        managers_of: Returns the current managers of an employee.

    Returns:
        True if the edge would create a cycle (including self-management).
    """
    if employee_id == candidate_manager_id:
        return True

    visited: set[str] = set()
    to_visit: list[str] = [candidate_manager_id]

    while to_visit:
        current = to_visit.pop()
        if current in visited:
            continue
        visited.add(current)
        if current == employee_id:
            logger.debug(
                "Edge %s -> %s closes a cycle after %d step(s)",
                employee_id,
                candidate_manager_id,
                len(visited),
            )
            return True
        for manager in managers_of(current):
            if manager not in visited:
                to_visit.append(manager)

    return False


def store_lookup(db: OrgDB) -> ManagerLookup:
    """Manager lookup that queries the relationship store on every call."""

    def managers_of(employee_id: str) -> list[str]:
        return [edge.manager_id for edge in find_edges(db, employee_id=employee_id)]

    return managers_of


def edge_lookup(edges: Iterable[ReportingEdge]) -> ManagerLookup:
    """Manager lookup over an in-memory edge list."""
    managers: dict[str, list[str]] = {}
    for edge in edges:
        managers.setdefault(edge.employee_id, []).append(edge.manager_id)

    def managers_of(employee_id: str) -> list[str]:
        return managers.get(employee_id, [])

    return managers_of


def check_edge(db: OrgDB, employee_id: str, candidate_manager_id: str) -> bool:
    """Store-backed would_create_cycle."""
    return would_create_cycle(employee_id, candidate_manager_id, store_lookup(db))


def detect_cycles(edges: Iterable[ReportingEdge]) -> list[list[str]]:
    """Find all cycles already present in an edge list.

    Uses Tarjan's algorithm to find strongly connected components with more
    than one node; self-loops are reported as single-node cycles.

    Args:
        edges: Reporting edges to inspect.

    Returns:
        List of cycles, each a sorted list of employee identifiers.
        Returns empty list if the graph is acyclic.
    """
    graph: dict[str, list[str]] = {}
    for edge in edges:
        graph.setdefault(edge.employee_id, []).append(edge.manager_id)
        graph.setdefault(edge.manager_id, [])

    index_counter = 0
    stack: list[str] = []
    lowlinks: dict[str, int] = {}
    index: dict[str, int] = {}
    on_stack: set[str] = set()
    sccs: list[list[str]] = []

    # Iterative Tarjan: each frame is (node, iterator over its successors)
    for start in graph:
        if start in index:
            continue
        index[start] = lowlinks[start] = index_counter
        index_counter += 1
        stack.append(start)
        on_stack.add(start)
        work: list[tuple[str, Iterable[str]]] = [(start, iter(graph[start]))]

        while work:
            node, successors = work[-1]
            advanced = False
            for successor in successors:
                if successor not in index:
                    index[successor] = lowlinks[successor] = index_counter
                    index_counter += 1
                    stack.append(successor)
                    on_stack.add(successor)
                    work.append((successor, iter(graph[successor])))
                    advanced = True
                    break
                if successor in on_stack:
                    lowlinks[node] = min(lowlinks[node], index[successor])
            if advanced:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                lowlinks[parent] = min(lowlinks[parent], lowlinks[node])

            if lowlinks[node] == index[node]:
                scc: list[str] = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    scc.append(member)
                    if member == node:
                        break
                if len(scc) > 1 or node in graph[node]:
                    sccs.append(sorted(scc))

    return sorted(sccs, key=lambda x: (len(x), x[0]))
