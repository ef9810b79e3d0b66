"""Relationship store: persistence of reporting edges.

Thin SQL operations over the ``reporting_line_managers`` table. Nothing in
here validates the graph; callers go through orgtree.mutator, which runs
these inside one transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

from orgtree.database import OrgDB
from orgtree.errors import ValidationError

Match = Literal["all", "any"]


@dataclass(frozen=True)
class ReportingEdge:
    """A directed edge: ``employee_id`` reports to ``manager_id``."""

    employee_id: str
    manager_id: str

    def to_dict(self) -> dict[str, str]:
        return {"employee_id": self.employee_id, "manager_id": self.manager_id}


def _where_clause(
    employee_id: str | None,
    manager_id: str | None,
    match: Match,
) -> tuple[str, tuple[Any, ...]]:
    """Build a WHERE clause for an edge filter.

    Args:
        employee_id: Match edges of this employee.
        manager_id: Match edges pointing at this manager.
        match: "all" joins the conditions with AND, "any" with OR.

    Returns:
        Tuple of (clause, parameters). The clause is empty when no filter is set.
    """
    conditions: list[str] = []
    params: list[Any] = []
    if employee_id is not None:
        conditions.append("employee_id = ?")
        params.append(employee_id)
    if manager_id is not None:
        conditions.append("manager_id = ?")
        params.append(manager_id)
    if not conditions:
        return "", ()
    joiner = " AND " if match == "all" else " OR "
    return " WHERE " + joiner.join(conditions), tuple(params)


def find_edges(
    db: OrgDB,
    employee_id: str | None = None,
    manager_id: str | None = None,
    *,
    match: Match = "all",
) -> list[ReportingEdge]:
    """Find edges matching a filter.

    With no filter, returns every edge.

    Args:
        db: Database connection.
        employee_id: Only edges where this employee reports to someone.
        manager_id: Only edges where someone reports to this manager.
        match: Combine the two conditions with AND ("all") or OR ("any").

    Returns:
        Matching edges ordered by (employee_id, manager_id).
    """
    where, params = _where_clause(employee_id, manager_id, match)
    rows = db.fetchall(
        "SELECT employee_id, manager_id FROM reporting_line_managers"
        + where
        + " ORDER BY employee_id, manager_id",
        params,
    )
    return [ReportingEdge(row["employee_id"], row["manager_id"]) for row in rows]


def edge_exists(db: OrgDB, employee_id: str, manager_id: str) -> bool:
    row = db.fetchone(
        "SELECT 1 FROM reporting_line_managers WHERE employee_id = ? AND manager_id = ?",
        (employee_id, manager_id),
    )
    return row is not None


def insert_edge(db: OrgDB, employee_id: str, manager_id: str) -> bool:
    """Insert an edge. Duplicate pairs are ignored.

    Returns:
        True if a row was inserted, False if the pair already existed.

    Raises:
        sqlite3.IntegrityError: If either employee does not exist.
    """
    now = datetime.now(timezone.utc).isoformat()
    cursor = db.execute(
        """
        INSERT OR IGNORE INTO reporting_line_managers (employee_id, manager_id, created_at)
        VALUES (?, ?, ?)
        """,
        (employee_id, manager_id, now),
    )
    return cursor.rowcount > 0


def delete_edge(db: OrgDB, employee_id: str, manager_id: str) -> bool:
    """Delete one exact edge.

    Returns:
        True if the edge was found and deleted.
    """
    cursor = db.execute(
        "DELETE FROM reporting_line_managers WHERE employee_id = ? AND manager_id = ?",
        (employee_id, manager_id),
    )
    return cursor.rowcount > 0


def delete_edges(
    db: OrgDB,
    employee_id: str | None = None,
    manager_id: str | None = None,
    *,
    match: Match = "all",
) -> int:
    """Delete every edge matching a filter.

    Returns:
        Number of deleted edges.

    Raises:
        ValidationError: If no filter is given.
    """
    where, params = _where_clause(employee_id, manager_id, match)
    if not where:
        raise ValidationError("delete_edges requires employee_id or manager_id")
    cursor = db.execute("DELETE FROM reporting_line_managers" + where, params)
    return cursor.rowcount


def update_edges(
    db: OrgDB,
    new_manager_id: str,
    employee_id: str | None = None,
    manager_id: str | None = None,
) -> int:
    """Point every matching edge at ``new_manager_id``.

    Rows whose new pair already exists are left untouched (UPDATE OR IGNORE);
    callers clean them up afterwards.

    Returns:
        Number of updated edges.

    Raises:
        ValidationError: If no filter is given.
    """
    where, params = _where_clause(employee_id, manager_id, "all")
    if not where:
        raise ValidationError("update_edges requires employee_id or manager_id")
    cursor = db.execute(
        "UPDATE OR IGNORE reporting_line_managers SET manager_id = ?" + where,
        (new_manager_id, *params),
    )
    return cursor.rowcount
