"""Reporting-line mutations.

Every public function here validates and writes inside one transaction,
so the checks see the same graph the write lands on and a failed step
leaves nothing behind. The graph invariants after any successful call:

- no employee is its own direct or indirect manager
- every employee has at most one manager row
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

from orgtree.cycles import check_edge
from orgtree.database import OrgDB
from orgtree.directory import delete_employee_record, employee_exists
from orgtree.errors import (
    AmbiguousManagerError,
    CycleError,
    NotFoundError,
    OrphanReassignmentError,
    ValidationError,
)
from orgtree.store import delete_edge, delete_edges, edge_exists, find_edges, insert_edge, update_edges

logger = logging.getLogger(__name__)

AddStatus = Literal["created", "exists", "replaced"]


@dataclass
class CascadeResult:
    """Outcome of deleting an employee.

    Attributes:
        employee_id: The deleted employee.
        upper_manager_id: Manager the direct reports were moved to, if any.
        reassigned: Direct reports now reporting to upper_manager_id.
        removed_edges: Edge rows removed while cleaning up.
    """

    employee_id: str
    upper_manager_id: str | None
    reassigned: list[str] = field(default_factory=list)
    removed_edges: int = 0


def _require(value: str | None, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def _check_not_cyclic(db: OrgDB, employee_id: str, manager_id: str) -> None:
    if check_edge(db, employee_id, manager_id):
        raise CycleError(employee_id, manager_id)


def _check_exists(db: OrgDB, employee_id: str, manager_id: str) -> None:
    if not employee_exists(db, employee_id):
        raise NotFoundError("employee", employee_id)
    if not employee_exists(db, manager_id):
        raise NotFoundError("manager", manager_id)


def add_relationship(db: OrgDB, employee_id: str | None, manager_id: str | None) -> AddStatus:
    """Make ``employee_id`` report to ``manager_id``.

    Adding the exact pair again is a no-op. If the employee already reports
    to someone else, that line is replaced.

    Args:
        db: Database connection.
        employee_id: Employee who will report.
        manager_id: Their manager.

    Returns:
        "created", "exists" (pair already present) or "replaced".

    Raises:
        ValidationError: If either identifier is missing.
        CycleError: If the edge would create a cycle.
        NotFoundError: If the employee or manager does not exist.
    """
    employee_id = _require(employee_id, "employee_id")
    manager_id = _require(manager_id, "manager_id")

    with db.transaction():
        _check_not_cyclic(db, employee_id, manager_id)
        _check_exists(db, employee_id, manager_id)

        if edge_exists(db, employee_id, manager_id):
            logger.debug("Reporting line %s -> %s already exists", employee_id, manager_id)
            return "exists"

        replaced = delete_edges(db, employee_id=employee_id)
        insert_edge(db, employee_id, manager_id)

    if replaced:
        logger.info("Replaced manager of %s with %s", employee_id, manager_id)
        return "replaced"
    logger.info("Added reporting line %s -> %s", employee_id, manager_id)
    return "created"


def move_relationship(
    db: OrgDB,
    employee_id: str | None,
    new_manager_id: str | None,
    old_manager_id: str | None = None,
) -> None:
    """Move ``employee_id`` under ``new_manager_id`` in one step.

    The old line (``old_manager_id`` if given, otherwise every current
    manager row) is removed and the new one inserted in the same
    transaction. A missing old line is not an error. Both employees are
    checked before anything is deleted.

    Raises:
        ValidationError: If employee_id or new_manager_id is missing.
        CycleError: If the new edge would create a cycle.
        NotFoundError: If the employee or new manager does not exist.
    """
    employee_id = _require(employee_id, "employee_id")
    new_manager_id = _require(new_manager_id, "manager_id")
    if old_manager_id is not None and not str(old_manager_id).strip():
        old_manager_id = None

    with db.transaction():
        _check_not_cyclic(db, employee_id, new_manager_id)
        _check_exists(db, employee_id, new_manager_id)

        if old_manager_id is not None:
            if not delete_edge(db, employee_id, old_manager_id):
                logger.warning(
                    "Moving %s: no reporting line to %s, continuing", employee_id, old_manager_id
                )
        leftover = delete_edges(db, employee_id=employee_id)
        if leftover and old_manager_id is not None:
            logger.warning("Moving %s: removed %d other manager row(s)", employee_id, leftover)
        insert_edge(db, employee_id, new_manager_id)

    logger.info("Moved %s under %s", employee_id, new_manager_id)


def remove_relationship(db: OrgDB, employee_id: str | None, manager_id: str | None) -> None:
    """Delete the exact reporting line ``employee_id -> manager_id``.

    Raises:
        ValidationError: If either identifier is missing.
        NotFoundError: If there is no such line.
    """
    employee_id = _require(employee_id, "employee_id")
    manager_id = _require(manager_id, "manager_id")

    with db.transaction():
        if not delete_edge(db, employee_id, manager_id):
            raise NotFoundError(
                "edge",
                f"{employee_id} -> {manager_id}",
                f"No reporting line from {employee_id} to {manager_id}",
            )

    logger.info("Removed reporting line %s -> %s", employee_id, manager_id)


def remove_employee(db: OrgDB, employee_id: str | None) -> CascadeResult:
    """Delete an employee, splicing them out of the hierarchy.

    The employee's direct reports are moved to the employee's own manager,
    every edge touching the employee is removed, then the directory record
    is deleted. All of it commits together or not at all.

    Raises:
        ValidationError: If employee_id is missing.
        NotFoundError: If the employee does not exist.
        OrphanReassignmentError: If the employee has direct reports and no
            manager of their own.
        AmbiguousManagerError: If the employee has direct reports and
            several manager rows.
    """
    employee_id = _require(employee_id, "employee_id")

    with db.transaction():
        if not employee_exists(db, employee_id):
            raise NotFoundError("employee", employee_id)

        managers = [edge.manager_id for edge in find_edges(db, employee_id=employee_id)]
        subordinates = [edge.employee_id for edge in find_edges(db, manager_id=employee_id)]

        if len(managers) > 1:
            if subordinates:
                raise AmbiguousManagerError(employee_id, subordinates, managers)
            logger.warning(
                "Deleting %s with %d manager rows (%s)", employee_id, len(managers), ", ".join(managers)
            )
        upper_manager_id = managers[0] if len(managers) == 1 else None

        if subordinates and upper_manager_id is None:
            raise OrphanReassignmentError(employee_id, subordinates)

        reassigned: list[str] = []
        if subordinates and upper_manager_id is not None:
            if upper_manager_id in subordinates:
                # Pre-existing two-node cycle; the upper manager becomes a root.
                logger.warning(
                    "%s and %s report to each other; %s becomes a root",
                    employee_id,
                    upper_manager_id,
                    upper_manager_id,
                )
                delete_edge(db, upper_manager_id, employee_id)
            update_edges(db, upper_manager_id, manager_id=employee_id)
            reassigned = [s for s in subordinates if s != upper_manager_id]

        removed = delete_edges(db, employee_id=employee_id, manager_id=employee_id, match="any")
        delete_employee_record(db, employee_id)

    logger.info(
        "Deleted employee %s; %d report(s) moved to %s",
        employee_id,
        len(reassigned),
        upper_manager_id or "nobody",
    )
    return CascadeResult(
        employee_id=employee_id,
        upper_manager_id=upper_manager_id,
        reassigned=reassigned,
        removed_edges=removed,
    )
