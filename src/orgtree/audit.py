"""Consistency audit of the stored reporting graph.

The mutator never produces these problems, but rows written by other
tools or older versions can. The audit only reports; repairing is an
explicit move_relationship call per affected employee.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from orgtree.cycles import detect_cycles
from orgtree.database import OrgDB
from orgtree.hierarchy import manager_map
from orgtree.store import find_edges


@dataclass
class AuditReport:
    """Problems found in the reporting graph.

    Attributes:
        multiple_managers: Employee -> manager rows, for employees with more than one.
        cycles: Groups of employees that report to each other in a loop.
    """

    multiple_managers: dict[str, list[str]] = field(default_factory=dict)
    cycles: list[list[str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.multiple_managers and not self.cycles

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "multiple_managers": self.multiple_managers,
            "cycles": self.cycles,
        }


def audit_graph(db: OrgDB) -> AuditReport:
    """Check the stored graph for duplicate manager rows and cycles."""
    edges = find_edges(db)
    duplicates = {
        employee: managers for employee, managers in manager_map(edges).items() if len(managers) > 1
    }
    return AuditReport(multiple_managers=duplicates, cycles=detect_cycles(edges))
