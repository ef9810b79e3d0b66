"""Exception taxonomy for reporting-line operations.

Every error raised by the directory, the store helpers and the mutator
derives from HierarchyError and carries a stable ``kind`` string. The
service layer turns these into failed Result values; the CLI turns them
into exit codes.
"""

from __future__ import annotations

from typing import Literal

NotFoundKind = Literal["employee", "manager", "edge", "branch", "department", "role"]


class HierarchyError(Exception):
    """Base exception for reporting-line errors."""

    kind = "error"


class ValidationError(HierarchyError, ValueError):
    """Raised when a required field is missing or malformed."""

    kind = "validation"


class CycleError(HierarchyError):
    """Raised when a reporting edge would close a cycle."""

    kind = "cycle"

    def __init__(self, employee_id: str, manager_id: str) -> None:
        self.employee_id = employee_id
        self.manager_id = manager_id
        if employee_id == manager_id:
            message = f"Employee {employee_id} cannot report to themselves"
        else:
            message = (
                f"Cannot create circular reporting relationship: "
                f"{manager_id} already reports (directly or indirectly) to {employee_id}"
            )
        super().__init__(message)


class NotFoundError(HierarchyError):
    """Raised when a referenced employee, manager, edge or record does not exist.

    Attributes:
        kind_of: What was missing ("employee", "manager", "edge", ...).
        identifier: The identifier that was looked up.
    """

    kind = "not_found"

    def __init__(self, kind_of: NotFoundKind, identifier: str, message: str | None = None) -> None:
        self.kind_of = kind_of
        self.identifier = identifier
        if message is None:
            label = "Manager" if kind_of == "manager" else kind_of.capitalize()
            message = f"{label} does not exist: {identifier}"
        super().__init__(message)


class OrphanReassignmentError(HierarchyError):
    """Raised when deleting an employee would orphan their direct reports."""

    kind = "orphan_reassignment"

    def __init__(self, employee_id: str, subordinates: list[str], message: str | None = None) -> None:
        self.employee_id = employee_id
        self.subordinates = subordinates
        if message is None:
            message = (
                f"Cannot delete {employee_id}: {len(subordinates)} managed employee(s) "
                f"and no upper manager to reassign them to"
            )
        super().__init__(message)


class AmbiguousManagerError(OrphanReassignmentError):
    """Raised when the reassignment target cannot be chosen.

    The employee being deleted has several manager rows, so there is no
    single upper manager for their direct reports.
    """

    def __init__(self, employee_id: str, subordinates: list[str], managers: list[str]) -> None:
        self.managers = managers
        super().__init__(
            employee_id,
            subordinates,
            f"Cannot delete {employee_id}: found {len(managers)} managers "
            f"({', '.join(managers)}); repair the reporting line before deleting",
        )


class StorageError(HierarchyError):
    """Raised when the underlying store fails.

    Mutations are not retried: graph state may have changed in between.
    """

    kind = "storage"
