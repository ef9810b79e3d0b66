"""Employee directory: employees, branches, departments and roles.

Provides basic create, read, update and delete operations. The reporting
graph only ever asks the directory whether an employee exists and for the
full employee listing; deleting an employee goes through
orgtree.mutator.remove_employee so that the reporting lines are repaired
in the same transaction.
"""

from __future__ import annotations

import sqlite3
from datetime import date, datetime, timezone
from typing import Any

from orgtree.database import OrgDB
from orgtree.errors import NotFoundError, ValidationError

_UNIT_TABLES = {
    "branch": ("branches", "branch_id"),
    "department": ("departments", "dept_id"),
    "role": ("roles", "role_id"),
}

_EMPLOYEE_FIELDS = ("name", "surname", "birth_date", "salary", "branch_id", "dept_id", "role_id")


def _validate_identifier(value: str | None, field_name: str) -> str:
    """Validate an employee identifier.

    Raises:
        ValidationError: If the value is empty, too long or not a string.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    if len(value) > 64:
        raise ValidationError(f"{field_name} exceeds maximum length (64)")
    return value.strip()


def _validate_name(name: str | None, field_name: str = "name") -> None:
    if not name or not name.strip():
        raise ValidationError(f"{field_name} cannot be empty")
    if len(name) > 256:
        raise ValidationError(f"{field_name} exceeds maximum length (256)")


def _validate_birth_date(value: str | None, field_name: str = "birth_date") -> str | None:
    """Check an ISO date and return it in YYYY-MM-DD form."""
    if value is None:
        return None
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError as e:
        raise ValidationError(f"{field_name} must be an ISO date (YYYY-MM-DD): {value}") from e


def _validate_salary(value: float | None) -> None:
    if value is not None and value < 0:
        raise ValidationError("salary cannot be negative")


def _row_to_dict(row: Any) -> dict[str, Any]:
    if row is None:
        return {}
    return dict(row)


# Organizational units (branches, departments, roles)


def _create_unit(db: OrgDB, unit: str, name: str) -> dict[str, Any]:
    table, key = _UNIT_TABLES[unit]
    _validate_name(name, f"{unit} name")
    try:
        cursor = db.execute(f"INSERT INTO {table} (name) VALUES (?)", (name.strip(),))
    except sqlite3.IntegrityError as e:
        raise ValidationError(f"{unit.capitalize()} already exists: {name}") from e
    result = db.fetchone(f"SELECT * FROM {table} WHERE {key} = ?", (cursor.lastrowid,))
    return _row_to_dict(result)


def _list_units(db: OrgDB, unit: str) -> list[dict[str, Any]]:
    table, key = _UNIT_TABLES[unit]
    return [_row_to_dict(row) for row in db.fetchall(f"SELECT * FROM {table} ORDER BY {key}")]


def _check_unit(db: OrgDB, unit: str, unit_id: int | None) -> None:
    if unit_id is None:
        return
    table, key = _UNIT_TABLES[unit]
    if db.fetchone(f"SELECT 1 FROM {table} WHERE {key} = ?", (unit_id,)) is None:
        raise NotFoundError(unit, str(unit_id))  # type: ignore[arg-type]


def create_branch(db: OrgDB, name: str) -> dict[str, Any]:
    """Create a branch. Names are unique."""
    return _create_unit(db, "branch", name)


def list_branches(db: OrgDB) -> list[dict[str, Any]]:
    return _list_units(db, "branch")


def create_department(db: OrgDB, name: str) -> dict[str, Any]:
    """Create a department. Names are unique."""
    return _create_unit(db, "department", name)


def list_departments(db: OrgDB) -> list[dict[str, Any]]:
    return _list_units(db, "department")


def create_role(db: OrgDB, name: str) -> dict[str, Any]:
    """Create a role. Names are unique."""
    return _create_unit(db, "role", name)


def list_roles(db: OrgDB) -> list[dict[str, Any]]:
    return _list_units(db, "role")


# Employees


def create_employee(
    db: OrgDB,
    employee_number: str,
    name: str,
    surname: str,
    *,
    birth_date: str | None = None,
    salary: float | None = None,
    branch_id: int | None = None,
    dept_id: int | None = None,
    role_id: int | None = None,
) -> dict[str, Any]:
    """Create a new employee.

    Args:
        db: Database connection.
        employee_number: Externally assigned unique identifier.
        name: Given name.
        surname: Family name.
        birth_date: ISO date string.
        salary: Non-negative salary.
        branch_id: Branch the employee belongs to.
        dept_id: Department the employee belongs to.
        role_id: Role the employee holds.

    Returns:
        Dictionary with created employee data.

    Raises:
        ValidationError: If a field is invalid or the employee already exists.
        NotFoundError: If a referenced branch, department or role is missing.
    """
    employee_number = _validate_identifier(employee_number, "employee_number")
    _validate_name(name, "name")
    _validate_name(surname, "surname")
    birth_date = _validate_birth_date(birth_date)
    _validate_salary(salary)
    _check_unit(db, "branch", branch_id)
    _check_unit(db, "department", dept_id)
    _check_unit(db, "role", role_id)

    now = datetime.now(timezone.utc).isoformat()
    try:
        db.execute(
            """
            INSERT INTO employees (
                employee_number, name, surname, birth_date, salary,
                branch_id, dept_id, role_id, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (employee_number, name, surname, birth_date, salary, branch_id, dept_id, role_id, now, now),
        )
    except sqlite3.IntegrityError as e:
        raise ValidationError(f"Employee already exists: {employee_number}") from e

    result = db.fetchone("SELECT * FROM employees WHERE employee_number = ?", (employee_number,))
    return _row_to_dict(result)


def get_employee(db: OrgDB, employee_number: str) -> dict[str, Any] | None:
    """Get an employee by number, or None if not found."""
    result = db.fetchone("SELECT * FROM employees WHERE employee_number = ?", (employee_number,))
    return _row_to_dict(result) if result is not None else None


def employee_exists(db: OrgDB, employee_number: str) -> bool:
    row = db.fetchone("SELECT 1 FROM employees WHERE employee_number = ?", (employee_number,))
    return row is not None


def list_employees(db: OrgDB) -> list[dict[str, Any]]:
    """List all employees, sorted by employee number."""
    return search_employees(db)


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def search_employees(
    db: OrgDB,
    term: str | None = None,
    *,
    branch_id: int | None = None,
    dept_id: int | None = None,
    role_id: int | None = None,
    salary_min: float | None = None,
    salary_max: float | None = None,
    born_from: str | None = None,
    born_to: str | None = None,
) -> list[dict[str, Any]]:
    """Find employees matching every given filter.

    A filter left as None is not applied; with no filters this is the full
    listing. Employees with no salary or birth date never match a range on
    that field.

    Args:
        db: Database connection.
        term: Case-insensitive substring of employee number, name or surname.
        branch_id: Only employees of this branch.
        dept_id: Only employees of this department.
        role_id: Only employees with this role.
        salary_min: Lowest salary, inclusive.
        salary_max: Highest salary, inclusive.
        born_from: Earliest birth date (YYYY-MM-DD), inclusive.
        born_to: Latest birth date (YYYY-MM-DD), inclusive.

    Returns:
        Matching employee records, sorted by employee number.

    Raises:
        ValidationError: If a date is malformed or a range is inverted.
    """
    born_from = _validate_birth_date(born_from, "born_from")
    born_to = _validate_birth_date(born_to, "born_to")
    if salary_min is not None and salary_max is not None and salary_min > salary_max:
        raise ValidationError("salary_min cannot be greater than salary_max")
    if born_from is not None and born_to is not None and born_from > born_to:
        raise ValidationError("born_from cannot be later than born_to")

    conditions: list[str] = []
    params: list[Any] = []

    term = term.strip() if term else None
    if term:
        pattern = _like_pattern(term)
        conditions.append(
            "(employee_number LIKE ? ESCAPE '\\' OR name LIKE ? ESCAPE '\\' "
            "OR surname LIKE ? ESCAPE '\\')"
        )
        params.extend([pattern, pattern, pattern])

    # Column names are fixed here, never taken from user input
    for column, operator, value in (
        ("branch_id", "=", branch_id),
        ("dept_id", "=", dept_id),
        ("role_id", "=", role_id),
        ("salary", ">=", salary_min),
        ("salary", "<=", salary_max),
        ("birth_date", ">=", born_from),
        ("birth_date", "<=", born_to),
    ):
        if value is not None:
            conditions.append(f"{column} {operator} ?")
            params.append(value)

    where = " WHERE " + " AND ".join(conditions) if conditions else ""
    results = db.fetchall(f"SELECT * FROM employees{where} ORDER BY employee_number", tuple(params))
    return [_row_to_dict(row) for row in results]


def list_employee_ids(db: OrgDB) -> list[str]:
    rows = db.fetchall("SELECT employee_number FROM employees ORDER BY employee_number")
    return [row["employee_number"] for row in rows]


def update_employee(db: OrgDB, employee_number: str, **changes: Any) -> bool:
    """Update an employee's attributes.

    Only keys in name, surname, birth_date, salary, branch_id, dept_id and
    role_id are accepted; None values are ignored.

    Returns:
        True if the row was updated, False if nothing was given to change.

    Raises:
        ValidationError: If an unknown or invalid field is given.
        NotFoundError: If the employee or a referenced unit does not exist.
    """
    unknown = set(changes) - set(_EMPLOYEE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown employee field(s): {', '.join(sorted(unknown))}")
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        return False

    if "name" in changes:
        _validate_name(changes["name"], "name")
    if "surname" in changes:
        _validate_name(changes["surname"], "surname")
    if "birth_date" in changes:
        changes["birth_date"] = _validate_birth_date(changes["birth_date"])
    _validate_salary(changes.get("salary"))
    _check_unit(db, "branch", changes.get("branch_id"))
    _check_unit(db, "department", changes.get("dept_id"))
    _check_unit(db, "role", changes.get("role_id"))

    # Column names come from _EMPLOYEE_FIELDS, never from user input
    assignments = ", ".join(f"{column} = ?" for column in changes)
    now = datetime.now(timezone.utc).isoformat()
    cursor = db.execute(
        f"UPDATE employees SET {assignments}, updated_at = ? WHERE employee_number = ?",
        (*changes.values(), now, employee_number),
    )
    if cursor.rowcount == 0:
        raise NotFoundError("employee", employee_number)
    return True


def delete_employee_record(db: OrgDB, employee_number: str) -> None:
    """Delete the employee row only.

    Callers must remove the employee's reporting edges first (foreign keys
    reject the delete otherwise); use orgtree.mutator.remove_employee.

    Raises:
        NotFoundError: If the employee does not exist.
    """
    cursor = db.execute("DELETE FROM employees WHERE employee_number = ?", (employee_number,))
    if cursor.rowcount == 0:
        raise NotFoundError("employee", employee_number)
