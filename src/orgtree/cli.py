"""orgtree CLI - Main entry point."""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import typer
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from orgtree import __version__
from orgtree.cli_utils import (
    EXIT_SYSTEM_ERROR,
    EXIT_USER_ERROR,
    db_option,
    error,
    json_option,
    quiet_option,
    setup_logging,
    wire_config,
)
from orgtree.database import DatabaseError, OrgDB
from orgtree.schema import init_database
from orgtree.service import HierarchyService, Result

app = typer.Typer(
    name="orgtree",
    help="orgtree - Manage employees and their reporting lines.",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)


# -----------------------------------------------------------------------------
# Output Helpers
# -----------------------------------------------------------------------------


def _output_success(message: str, quiet: bool = False) -> None:
    if not quiet:
        console.print(f"[green]Success:[/green] {message}")


def _output_warning(message: str, quiet: bool = False) -> None:
    if not quiet:
        err_console.print(f"[yellow]Warning:[/yellow] {message}")


def _output_info(message: str, quiet: bool = False) -> None:
    if not quiet:
        console.print(message)


def _emit_result(result: Result, json_output: bool, quiet: bool) -> None:
    """Print a mutation result and exit non-zero on failure."""
    if json_output:
        console.print_json(json.dumps(result.to_dict()))
    elif result.ok:
        _output_success(result.message, quiet)
    else:
        err_console.print(f"[red]Error:[/red] {result.message}")

    if not result.ok:
        exit_code = EXIT_SYSTEM_ERROR if result.kind == "storage" else EXIT_USER_ERROR
        raise typer.Exit(code=exit_code)


@contextmanager
def _open_db(db_path: str | None) -> Iterator[OrgDB]:
    """Open the configured database, which must already exist."""
    config = wire_config(db_path=db_path)
    path = config.get_db_path()
    if not path.exists():
        error(f"Database not found: {path}. Run 'orgtree init' first.")
    try:
        with OrgDB(path, auto_init=False, busy_timeout=config.busy_timeout) as db:
            if not db.table_exists("reporting_line_managers"):
                error(f"Not an orgtree database: {path}. Run 'orgtree init' first.")
            yield db
    except DatabaseError as e:
        error(str(e), exit_code=EXIT_SYSTEM_ERROR)
    except sqlite3.Error as e:
        error(f"Database error: {e}", exit_code=EXIT_SYSTEM_ERROR)


# -----------------------------------------------------------------------------
# Version and Main Callbacks
# -----------------------------------------------------------------------------


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"orgtree version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Log every step to stderr.",
    ),
) -> None:
    """orgtree - Manage employees and their reporting lines."""
    config = wire_config()
    setup_logging("DEBUG" if verbose else config.log_level)


# -----------------------------------------------------------------------------
# Database Setup
# -----------------------------------------------------------------------------


@app.command()
def init(
    db: str | None = db_option(),
    quiet: bool = quiet_option(),
) -> None:
    """Create the database, or add missing tables to an existing one."""
    config = wire_config(db_path=db)
    path = config.get_db_path()
    existed = path.exists()
    try:
        init_database(path)
    except (sqlite3.Error, OSError) as e:
        error(f"Failed to initialize database: {e}", exit_code=EXIT_SYSTEM_ERROR)

    if existed:
        _output_success(f"Database already initialized, schema checked: {path}", quiet)
    else:
        _output_success(f"Created database: {path}", quiet)


# -----------------------------------------------------------------------------
# Directory Commands
# -----------------------------------------------------------------------------

UNIT_KINDS = ("branch", "department", "role")


@app.command("add-unit")
def add_unit(
    kind: str = typer.Argument(..., help="Unit type: branch, department or role."),
    name: str = typer.Argument(..., help="Unit name."),
    db: str | None = db_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """Create a branch, department or role."""
    kind = kind.lower()
    if kind not in UNIT_KINDS:
        error(f"Invalid unit type: {kind}. Must be one of: {', '.join(UNIT_KINDS)}")

    with _open_db(db) as conn:
        _emit_result(HierarchyService(conn).create_unit(kind, name), json_output, quiet)


@app.command("add-employee")
def add_employee(
    employee_number: str = typer.Argument(..., help="Unique employee number (e.g. E001)."),
    name: str = typer.Option(..., "--name", "-n", help="Given name."),
    surname: str = typer.Option(..., "--surname", "-s", help="Family name."),
    birth_date: str | None = typer.Option(None, "--birth-date", help="Birth date (YYYY-MM-DD)."),
    salary: float | None = typer.Option(None, "--salary", help="Salary."),
    branch_id: int | None = typer.Option(None, "--branch", help="Branch id."),
    dept_id: int | None = typer.Option(None, "--department", help="Department id."),
    role_id: int | None = typer.Option(None, "--role", help="Role id."),
    db: str | None = db_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """Add an employee to the directory."""
    with _open_db(db) as conn:
        result = HierarchyService(conn).add_employee(
            employee_number,
            name,
            surname,
            birth_date=birth_date,
            salary=salary,
            branch_id=branch_id,
            dept_id=dept_id,
            role_id=role_id,
        )
        _emit_result(result, json_output, quiet)


@app.command("update-employee")
def update_employee_command(
    employee_number: str = typer.Argument(..., help="Employee number."),
    name: str | None = typer.Option(None, "--name", "-n", help="Given name."),
    surname: str | None = typer.Option(None, "--surname", "-s", help="Family name."),
    birth_date: str | None = typer.Option(None, "--birth-date", help="Birth date (YYYY-MM-DD)."),
    salary: float | None = typer.Option(None, "--salary", help="Salary."),
    branch_id: int | None = typer.Option(None, "--branch", help="Branch id."),
    dept_id: int | None = typer.Option(None, "--department", help="Department id."),
    role_id: int | None = typer.Option(None, "--role", help="Role id."),
    db: str | None = db_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """Change an employee's attributes."""
    with _open_db(db) as conn:
        result = HierarchyService(conn).update_employee(
            employee_number,
            name=name,
            surname=surname,
            birth_date=birth_date,
            salary=salary,
            branch_id=branch_id,
            dept_id=dept_id,
            role_id=role_id,
        )
        _emit_result(result, json_output, quiet)


@app.command("delete-employee")
def delete_employee(
    employee_number: str = typer.Argument(..., help="Employee number."),
    db: str | None = db_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """Delete an employee, moving their reports to their own manager."""
    with _open_db(db) as conn:
        result = HierarchyService(conn).delete_employee(employee_number)
        _emit_result(result, json_output, quiet)
        if result.ok and not json_output and result.value["reassigned"]:
            _output_info(
                f"  Reassigned to {result.value['upper_manager_id']}: "
                f"{', '.join(result.value['reassigned'])}",
                quiet,
            )


# -----------------------------------------------------------------------------
# Reporting Line Commands
# -----------------------------------------------------------------------------


@app.command("add-manager")
def add_manager(
    employee_id: str = typer.Argument(..., help="Employee who reports."),
    manager_id: str = typer.Argument(..., help="Their manager."),
    db: str | None = db_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """Make EMPLOYEE_ID report to MANAGER_ID."""
    with _open_db(db) as conn:
        _emit_result(HierarchyService(conn).add_relationship(employee_id, manager_id), json_output, quiet)


@app.command()
def move(
    employee_id: str = typer.Argument(..., help="Employee to move."),
    new_manager_id: str = typer.Argument(..., help="New manager."),
    old_manager_id: str | None = typer.Option(
        None,
        "--from",
        help="Current manager. Defaults to every current manager.",
    ),
    db: str | None = db_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """Move EMPLOYEE_ID under NEW_MANAGER_ID in one step."""
    with _open_db(db) as conn:
        result = HierarchyService(conn).move_relationship(employee_id, new_manager_id, old_manager_id)
        _emit_result(result, json_output, quiet)


@app.command("remove-manager")
def remove_manager(
    employee_id: str = typer.Argument(..., help="Employee who reports."),
    manager_id: str = typer.Argument(..., help="Their manager."),
    db: str | None = db_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """Remove the reporting line from EMPLOYEE_ID to MANAGER_ID."""
    with _open_db(db) as conn:
        _emit_result(HierarchyService(conn).remove_relationship(employee_id, manager_id), json_output, quiet)


# -----------------------------------------------------------------------------
# Listing and Views
# -----------------------------------------------------------------------------

LIST_ENTITIES = ("employees", "relationships", "unassigned", "branches", "departments", "roles")
EMPLOYEE_COLUMNS = [
    "employee_number",
    "name",
    "surname",
    "birth_date",
    "salary",
    "branch_id",
    "dept_id",
    "role_id",
]


@app.command("list")
def list_entities(
    entity: str = typer.Argument(
        "employees",
        help="What to list: employees, relationships, unassigned, branches, departments or roles.",
    ),
    employee_id: str | None = typer.Option(
        None,
        "--employee",
        "-e",
        help="Only reporting lines of this employee (relationships only).",
    ),
    search: str | None = typer.Option(
        None,
        "--search",
        "-s",
        help="Text in employee number, name or surname (employees only).",
    ),
    branch_id: int | None = typer.Option(None, "--branch", help="Branch id (employees only)."),
    dept_id: int | None = typer.Option(None, "--department", help="Department id (employees only)."),
    role_id: int | None = typer.Option(None, "--role", help="Role id (employees only)."),
    salary_min: float | None = typer.Option(None, "--salary-min", help="Lowest salary (employees only)."),
    salary_max: float | None = typer.Option(None, "--salary-max", help="Highest salary (employees only)."),
    born_from: str | None = typer.Option(
        None, "--born-from", help="Earliest birth date, YYYY-MM-DD (employees only)."
    ),
    born_to: str | None = typer.Option(
        None, "--born-to", help="Latest birth date, YYYY-MM-DD (employees only)."
    ),
    db: str | None = db_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """List directory records, reporting lines or unassigned employees.

    Employees can be filtered; every given filter must match.
    """
    entity = entity.lower()
    if entity not in LIST_ENTITIES:
        error(f"Invalid entity type: {entity}. Must be one of: {', '.join(LIST_ENTITIES)}")

    filters = {
        "branch_id": branch_id,
        "dept_id": dept_id,
        "role_id": role_id,
        "salary_min": salary_min,
        "salary_max": salary_max,
        "born_from": born_from,
        "born_to": born_to,
    }
    filtered = search is not None or any(value is not None for value in filters.values())
    if filtered and entity != "employees":
        error("Search filters apply to employees only")

    with _open_db(db) as conn:
        if entity == "relationships":
            result = HierarchyService(conn).list_relationships(employee_id)
            _print_rows(result, ["employee_id", "manager_id"], "Reporting Lines", json_output, quiet)
        elif entity == "unassigned":
            result = HierarchyService(conn).list_unassigned()
            _print_rows(result, ["employee_number", "name", "surname"], "Unassigned Employees", json_output, quiet)
        elif entity == "employees":
            result = HierarchyService(conn).search_employees(search, **filters)
            _print_rows(result, EMPLOYEE_COLUMNS, "Employees", json_output, quiet)
        else:
            _list_units(conn, entity, json_output, quiet)


def _list_units(conn: OrgDB, entity: str, json_output: bool, quiet: bool) -> None:
    from orgtree.directory import list_branches, list_departments, list_roles

    listers = {"branches": list_branches, "departments": list_departments, "roles": list_roles}
    rows = listers[entity](conn)
    columns = list(rows[0].keys()) if rows else []
    message = f"No {entity} found." if not rows else f"{len(rows)} {entity}"
    _print_rows(Result.success(message, rows), columns, entity.capitalize(), json_output, quiet)


def _print_rows(
    result: Result,
    columns: list[str],
    title: str,
    json_output: bool,
    quiet: bool,
) -> None:
    if not result.ok:
        _emit_result(result, json_output, quiet)
        return

    rows: list[dict[str, Any]] = result.value
    if json_output:
        console.print_json(json.dumps(result.to_dict()))
        return

    if not rows:
        _output_info(result.message, quiet)
        return

    if quiet:
        for row in rows:
            console.print(" ".join(str(row[c]) for c in columns))
        return

    table = Table(title=title)
    for column in columns:
        table.add_column(column, style="cyan" if column == columns[0] else None)
    for row in rows:
        table.add_row(*("-" if row.get(c) is None else str(row[c]) for c in columns))
    console.print(table)


def _add_tree_nodes(root: Tree, nodes: list[dict[str, Any]]) -> None:
    to_visit = [(root, node) for node in reversed(nodes)]
    while to_visit:
        parent, node = to_visit.pop()
        branch = parent.add(f"[cyan]{node['employee_number']}[/cyan] {node['name']}")
        to_visit.extend((branch, child) for child in reversed(node["children"]))


@app.command()
def show(
    employee_number: str = typer.Argument(..., help="Employee number."),
    db: str | None = db_option(),
    json_output: bool = json_option(),
) -> None:
    """Show an employee's place in the hierarchy.

    Lists the managers above them, everyone below them, and who could
    become their manager or direct report without creating a cycle.
    """
    with _open_db(db) as conn:
        result = HierarchyService(conn).employee_view(employee_number)
    if json_output or not result.ok:
        _emit_result(result, json_output, quiet=False)
        return

    view = result.value
    employee = view["employee"]
    name = f"{employee['name']} {employee['surname']}"
    console.print(f"[bold cyan]{employee['employee_number']}[/bold cyan] {name}")
    for label, key in (
        ("Reporting chain", "reporting_chain"),
        ("Direct reports", "direct_reports"),
        ("All reports", "all_reports"),
        ("Eligible managers", "eligible_managers"),
        ("Eligible direct reports", "eligible_subordinates"),
    ):
        console.print(f"  {label + ':':<25} {', '.join(view[key]) or '-'}")


@app.command()
def tree(
    export: bool = typer.Option(
        False,
        "--export",
        help="Also write the hierarchy as JSON next to the database.",
    ),
    db: str | None = db_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """Show the reporting hierarchy."""
    from orgtree.hierarchy import save_tree

    config = wire_config(db_path=db)
    with _open_db(db) as conn:
        result = HierarchyService(conn).tree()
    if not result.ok:
        _emit_result(result, json_output, quiet)
        return

    if export:
        tree_path = config.get_tree_path()
        try:
            save_tree(result.value, tree_path)
        except OSError as e:
            error(f"Failed to write {tree_path}: {e}", exit_code=EXIT_SYSTEM_ERROR)
        if not json_output:
            _output_success(f"Exported hierarchy to {tree_path}", quiet)

    if json_output:
        console.print_json(json.dumps(result.to_dict()))
        return
    if quiet:
        return
    if not result.value:
        _output_info("No employees found.")
        return

    root = Tree("[bold]Organization[/bold]")
    _add_tree_nodes(root, result.value)
    console.print(root)


@app.command()
def audit(
    db: str | None = db_option(),
    json_output: bool = json_option(),
    quiet: bool = quiet_option(),
) -> None:
    """Check stored reporting lines for duplicate managers and cycles.

    Exits with code 1 when problems are found. Fix an employee with several
    managers by moving them: orgtree move EMPLOYEE MANAGER
    """
    with _open_db(db) as conn:
        result = HierarchyService(conn).audit()
    if not result.ok:
        _emit_result(result, json_output, quiet)
        return

    report = result.value
    if json_output:
        console.print_json(json.dumps(result.to_dict()))
    elif report["ok"]:
        _output_success(result.message, quiet)
    else:
        for employee, managers in report["multiple_managers"].items():
            _output_warning(f"{employee} has {len(managers)} managers: {', '.join(managers)}", quiet)
        for cycle in report["cycles"]:
            _output_warning(f"Reporting cycle: {' -> '.join(cycle)}", quiet)

    if not report["ok"]:
        raise typer.Exit(code=EXIT_USER_ERROR)


if __name__ == "__main__":
    app()
