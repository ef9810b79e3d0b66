"""Employees not yet placed in the hierarchy."""

from __future__ import annotations

from typing import Any

from orgtree.database import OrgDB
from orgtree.directory import list_employees


def assigned_employee_ids(db: OrgDB) -> set[str]:
    """Identifiers appearing in any reporting line, as employee or manager."""
    rows = db.fetchall(
        """
        SELECT employee_id AS id FROM reporting_line_managers
        UNION
        SELECT manager_id AS id FROM reporting_line_managers
        """
    )
    return {row["id"] for row in rows}


def find_unassigned(db: OrgDB) -> list[dict[str, Any]]:
    """Find employees with no reporting line in either direction.

    These are the candidates for first-time placement in the hierarchy.
    An empty list is a normal result.

    Args:
        db: Database connection.

    Returns:
        Employee summaries (employee_number, name, surname), sorted by
        employee number.
    """
    assigned = assigned_employee_ids(db)
    return [
        {
            "employee_number": employee["employee_number"],
            "name": employee["name"],
            "surname": employee["surname"],
        }
        for employee in list_employees(db)
        if employee["employee_number"] not in assigned
    ]
