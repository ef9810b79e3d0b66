"""Read-only projections of the reporting graph.

Everything here is derived from an edge list fetched from the store and
never written back. Callers re-fetch instead of keeping a mutated copy.

Provides functions for:
- Adjacency views (subordinate map, manager map, roots)
- Traversal (reporting chain upward, subtree downward)
- Picker helpers (who may become someone's manager or report)
- Nested tree generation and JSON persistence
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from orgtree.cycles import edge_lookup, would_create_cycle
from orgtree.store import ReportingEdge


def subordinate_map(edges: Iterable[ReportingEdge]) -> dict[str, list[str]]:
    """Map each manager to their direct reports (sorted)."""
    result: dict[str, list[str]] = {}
    for edge in edges:
        result.setdefault(edge.manager_id, []).append(edge.employee_id)
    return {manager: sorted(reports) for manager, reports in result.items()}


def manager_map(edges: Iterable[ReportingEdge]) -> dict[str, list[str]]:
    """Map each employee to their manager rows (normally exactly one)."""
    result: dict[str, list[str]] = {}
    for edge in edges:
        result.setdefault(edge.employee_id, []).append(edge.manager_id)
    return {employee: sorted(managers) for employee, managers in result.items()}


def reporting_chain(edges: Iterable[ReportingEdge], employee_id: str) -> list[str]:
    """Get the managers above an employee, nearest first.

    Follows the first manager row at each step and stops if the chain loops
    back on itself.

    Args:
        edges: Reporting edges.
        employee_id: Employee to start from (not included in the result).

    Returns:
        List of manager identifiers from direct manager up to the root.
    """
    managers = manager_map(edges)
    chain: list[str] = []
    seen = {employee_id}
    current = employee_id
    while managers.get(current):
        current = managers[current][0]
        if current in seen:
            break
        seen.add(current)
        chain.append(current)
    return chain


def subtree(edges: Iterable[ReportingEdge], employee_id: str) -> set[str]:
    """Get everyone reporting to an employee, directly or transitively.

    Returns:
        Set of employee identifiers below employee_id, excluding it.
    """
    reports = subordinate_map(edges)
    visited: set[str] = set()
    to_visit: list[str] = list(reports.get(employee_id, []))

    while to_visit:
        current = to_visit.pop()
        if current in visited or current == employee_id:
            continue
        visited.add(current)
        to_visit.extend(r for r in reports.get(current, []) if r not in visited)

    return visited


def root_employees(edges: Iterable[ReportingEdge], employee_ids: Iterable[str]) -> list[str]:
    """Employees who report to no one, sorted."""
    has_manager = {edge.employee_id for edge in edges}
    return sorted(e for e in employee_ids if e not in has_manager)


def eligible_managers(
    edges: Iterable[ReportingEdge],
    employee_ids: Iterable[str],
    employee_id: str,
) -> list[str]:
    """Employees that ``employee_id`` could report to without a cycle.

    Uses the same cycle check as the mutator, over the given edges.

    Returns:
        Sorted identifiers, excluding employee_id and its whole subtree.
    """
    managers_of = edge_lookup(edges)
    return sorted(
        candidate
        for candidate in employee_ids
        if not would_create_cycle(employee_id, candidate, managers_of)
    )


def eligible_subordinates(
    edges: Iterable[ReportingEdge],
    employee_ids: Iterable[str],
    manager_id: str,
) -> list[str]:
    """Employees that could be added as direct reports of ``manager_id``.

    Excludes the manager, their current direct reports and everyone above
    them along any manager row.
    """
    edge_list = list(edges)
    managers_of = edge_lookup(edge_list)
    direct_reports = set(subordinate_map(edge_list).get(manager_id, []))
    return sorted(
        candidate
        for candidate in employee_ids
        if candidate not in direct_reports
        and not would_create_cycle(candidate, manager_id, managers_of)
    )


def _display_name(employee: dict[str, Any] | None, employee_id: str) -> str:
    if employee and employee.get("name"):
        return f"{employee['name']} {employee.get('surname') or ''}".strip()
    return f"Employee {employee_id}"


def build_tree(
    edges: Iterable[ReportingEdge],
    employees: Iterable[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Build the nested hierarchy rooted at employees with no manager.

    Employees caught in a pre-existing cycle have no root above them and
    are left out; orgtree.audit reports them. An employee with several
    manager rows is placed once, under the first manager reached. The walk
    uses an explicit stack, so depth is limited only by the employee count.

    Args:
        edges: Reporting edges.
        employees: Employee records (as returned by list_employees).

    Returns:
        List of root nodes, each containing:
        - employee_number: The employee identifier
        - name: Display name
        - role_id: The employee's role, if any
        - children: Nodes of the direct reports, sorted by employee_number
    """
    edge_list = list(edges)
    by_id = {e["employee_number"]: e for e in employees}
    reports = subordinate_map(edge_list)
    all_ids = set(by_id) | {e.employee_id for e in edge_list} | {e.manager_id for e in edge_list}

    forest: list[dict[str, Any]] = []
    visited: set[str] = set()
    # Each entry is (employee, list the node is appended to); pushed in
    # reverse so siblings come out sorted.
    to_visit: list[tuple[str, list[dict[str, Any]]]] = [
        (root, forest) for root in reversed(root_employees(edge_list, all_ids))
    ]

    while to_visit:
        employee_id, siblings = to_visit.pop()
        if employee_id in visited:
            continue
        visited.add(employee_id)
        employee = by_id.get(employee_id)
        node: dict[str, Any] = {
            "employee_number": employee_id,
            "name": _display_name(employee, employee_id),
            "role_id": employee.get("role_id") if employee else None,
            "children": [],
        }
        siblings.append(node)
        to_visit.extend(
            (child, node["children"])
            for child in reversed(reports.get(employee_id, []))
            if child not in visited
        )

    return forest


def save_tree(tree: list[dict[str, Any]], path: Path) -> None:
    """Save a tree from build_tree() to a JSON file.

    Raises:
        OSError: If file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(tree, f, indent=2, ensure_ascii=False)
        f.write("\n")


def load_tree(path: Path) -> list[dict[str, Any]]:
    """Load a tree saved with save_tree().

    Raises:
        FileNotFoundError: If file doesn't exist.
        json.JSONDecodeError: If file is not valid JSON.
    """
    with path.open("r", encoding="utf-8") as f:
        data: list[dict[str, Any]] = json.load(f)
    return data
