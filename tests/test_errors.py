"""Tests for orgtree.errors module."""

from __future__ import annotations

import pytest

from orgtree.errors import (
    AmbiguousManagerError,
    CycleError,
    HierarchyError,
    NotFoundError,
    OrphanReassignmentError,
    StorageError,
    ValidationError,
)


@pytest.mark.parametrize(
    ("error", "kind"),
    [
        (ValidationError("employee_id is required"), "validation"),
        (CycleError("A", "B"), "cycle"),
        (NotFoundError("employee", "A"), "not_found"),
        (OrphanReassignmentError("A", ["B"]), "orphan_reassignment"),
        (AmbiguousManagerError("A", ["B"], ["C", "D"]), "orphan_reassignment"),
        (StorageError("disk full"), "storage"),
    ],
)
def test_kinds(error: HierarchyError, kind: str) -> None:
    assert isinstance(error, HierarchyError)
    assert error.kind == kind


def test_cycle_messages() -> None:
    assert str(CycleError("A", "A")) == "Employee A cannot report to themselves"
    message = str(CycleError("A", "D"))
    assert message.startswith("Cannot create circular reporting relationship")
    assert "D already reports" in message


def test_not_found_messages() -> None:
    assert str(NotFoundError("manager", "M1")) == "Manager does not exist: M1"
    assert str(NotFoundError("employee", "E1")) == "Employee does not exist: E1"
    assert str(NotFoundError("edge", "A -> B", "No reporting line from A to B")) == (
        "No reporting line from A to B"
    )


def test_orphan_message_counts_reports() -> None:
    error = OrphanReassignmentError("A", ["B", "C"])
    assert "2 managed employee(s)" in str(error)
    assert error.subordinates == ["B", "C"]


def test_ambiguous_lists_managers() -> None:
    error = AmbiguousManagerError("A", ["B"], ["C", "D"])
    assert "(C, D)" in str(error)
    assert error.managers == ["C", "D"]


def test_validation_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        raise ValidationError("bad")
