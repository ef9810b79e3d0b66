"""Hierarchy service: the operations offered to user interfaces.

Wraps the directory, the mutator, the store and the finders so that every
call returns a Result instead of raising. Failures carry the error kind
(validation, cycle, not_found, orphan_reassignment, storage) so the caller
can show a specific message.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from orgtree.audit import audit_graph
from orgtree.database import DatabaseError, OrgDB
from orgtree.directory import (
    create_branch,
    create_department,
    create_employee,
    create_role,
    get_employee,
    list_employee_ids,
    list_employees,
    search_employees,
    update_employee,
)
from orgtree.errors import HierarchyError, NotFoundError, StorageError, ValidationError
from orgtree.hierarchy import (
    build_tree,
    eligible_managers,
    eligible_subordinates,
    reporting_chain,
    subordinate_map,
    subtree,
)
from orgtree.mutator import add_relationship, move_relationship, remove_employee, remove_relationship
from orgtree.store import find_edges
from orgtree.unassigned import find_unassigned

logger = logging.getLogger(__name__)


@dataclass
class Result:
    """Outcome of a service operation.

    Attributes:
        ok: Whether the operation succeeded.
        message: Human-readable description of what happened.
        value: Operation payload on success (edges, employees, ...).
        error: The failure, when ok is False.
    """

    ok: bool
    message: str
    value: Any = None
    error: HierarchyError | None = None

    @property
    def kind(self) -> str:
        """Error kind of a failure, or "ok"."""
        return "ok" if self.error is None else self.error.kind

    @classmethod
    def success(cls, message: str, value: Any = None) -> Result:
        return cls(ok=True, message=message, value=value)

    @classmethod
    def failure(cls, error: HierarchyError) -> Result:
        return cls(ok=False, message=str(error), error=error)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.ok, "kind": self.kind, "message": self.message}
        if self.value is not None:
            data["value"] = self.value
        if isinstance(self.error, NotFoundError):
            data["missing"] = self.error.kind_of
        return data


class HierarchyService:
    """Reporting-line operations over one database connection.

    Example usage:
        >>> with OrgDB("orgtree.db") as db:
        ...     service = HierarchyService(db)
        ...     result = service.add_relationship("E002", "E001")
        ...     result.ok, result.message
        (True, 'Manager added successfully')
    """

    def __init__(self, db: OrgDB) -> None:
        self.db = db

    def _run(self, operation: str, fn: Callable[[], Result]) -> Result:
        """Call fn, converting raised errors into a failed Result."""
        try:
            return fn()
        except HierarchyError as e:
            logger.info("%s rejected (%s): %s", operation, e.kind, e)
            return Result.failure(e)
        except (DatabaseError, sqlite3.Error) as e:
            logger.error("%s failed: %s", operation, e)
            return Result.failure(StorageError(f"Database error: {e}"))

    # Directory

    def create_unit(self, kind: str, name: str) -> Result:
        """Create a branch, department or role."""
        creators = {"branch": create_branch, "department": create_department, "role": create_role}

        def run() -> Result:
            if kind not in creators:
                raise ValidationError(
                    f"Invalid unit type: {kind}. Must be one of: {', '.join(creators)}"
                )
            with self.db.transaction():
                unit = creators[kind](self.db, name)
            return Result.success(f"Created {kind}: {name}", unit)

        return self._run("create_unit", run)

    def add_employee(self, employee_number: str, name: str, surname: str, **fields: Any) -> Result:
        def run() -> Result:
            with self.db.transaction():
                employee = create_employee(self.db, employee_number, name, surname, **fields)
            return Result.success("Employee added", employee)

        return self._run("add_employee", run)

    def update_employee(self, employee_number: str, **changes: Any) -> Result:
        def run() -> Result:
            with self.db.transaction():
                changed = update_employee(self.db, employee_number, **changes)
            return Result.success("Employee updated" if changed else "Nothing to update")

        return self._run("update_employee", run)

    def search_employees(self, term: str | None = None, **filters: Any) -> Result:
        """Employees matching a text term and attribute filters."""

        def run() -> Result:
            employees = search_employees(self.db, term, **filters)
            if not employees:
                return Result.success("No employees found.", employees)
            return Result.success(f"{len(employees)} employee(s)", employees)

        return self._run("search_employees", run)

    def employee_view(self, employee_id: str) -> Result:
        """Where an employee sits in the hierarchy and who they could be linked to."""

        def run() -> Result:
            employee = get_employee(self.db, employee_id)
            if employee is None:
                raise NotFoundError("employee", employee_id)
            edges = find_edges(self.db)
            ids = list_employee_ids(self.db)
            return Result.success(
                f"Employee {employee_id}",
                {
                    "employee": employee,
                    "reporting_chain": reporting_chain(edges, employee_id),
                    "direct_reports": subordinate_map(edges).get(employee_id, []),
                    "all_reports": sorted(subtree(edges, employee_id)),
                    "eligible_managers": eligible_managers(edges, ids, employee_id),
                    "eligible_subordinates": eligible_subordinates(edges, ids, employee_id),
                },
            )

        return self._run("employee_view", run)

    # Reporting lines

    def add_relationship(self, employee_id: str | None, manager_id: str | None) -> Result:
        def run() -> Result:
            status = add_relationship(self.db, employee_id, manager_id)
            messages = {
                "created": "Manager added successfully",
                "exists": "Relationship already exists",
                "replaced": "Manager replaced successfully",
            }
            return Result.success(messages[status], {"status": status})

        return self._run("add_relationship", run)

    def move_relationship(
        self,
        employee_id: str | None,
        new_manager_id: str | None,
        old_manager_id: str | None = None,
    ) -> Result:
        def run() -> Result:
            move_relationship(self.db, employee_id, new_manager_id, old_manager_id)
            return Result.success("Manager updated successfully")

        return self._run("move_relationship", run)

    def remove_relationship(self, employee_id: str | None, manager_id: str | None) -> Result:
        def run() -> Result:
            remove_relationship(self.db, employee_id, manager_id)
            return Result.success("Manager removed successfully")

        return self._run("remove_relationship", run)

    def delete_employee(self, employee_id: str | None) -> Result:
        """Delete an employee, moving their reports to their own manager."""

        def run() -> Result:
            cascade = remove_employee(self.db, employee_id)
            return Result.success(
                "Employee deleted",
                {
                    "employee_id": cascade.employee_id,
                    "upper_manager_id": cascade.upper_manager_id,
                    "reassigned": cascade.reassigned,
                },
            )

        return self._run("delete_employee", run)

    def list_relationships(self, employee_id: str | None = None) -> Result:
        def run() -> Result:
            edges = [edge.to_dict() for edge in find_edges(self.db, employee_id=employee_id)]
            if employee_id is not None and not edges:
                return Result.success(f"No reporting lines for {employee_id}", edges)
            return Result.success(f"{len(edges)} reporting line(s)", edges)

        return self._run("list_relationships", run)

    def list_unassigned(self) -> Result:
        def run() -> Result:
            employees = find_unassigned(self.db)
            if not employees:
                return Result.success("No unassigned employees", employees)
            return Result.success(f"{len(employees)} unassigned employee(s)", employees)

        return self._run("list_unassigned", run)

    def tree(self) -> Result:
        """Nested hierarchy for display."""

        def run() -> Result:
            return Result.success(
                "Hierarchy built", build_tree(find_edges(self.db), list_employees(self.db))
            )

        return self._run("tree", run)

    def audit(self) -> Result:
        def run() -> Result:
            report = audit_graph(self.db)
            message = "No inconsistencies found" if report.ok else "Inconsistencies found"
            return Result.success(message, report.to_dict())

        return self._run("audit", run)
