"""Tests for orgtree.directory module."""

from __future__ import annotations

import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from orgtree.database import OrgDB
from orgtree.directory import (
    create_branch,
    create_department,
    create_employee,
    create_role,
    delete_employee_record,
    employee_exists,
    get_employee,
    list_branches,
    list_departments,
    list_employee_ids,
    list_employees,
    list_roles,
    search_employees,
    update_employee,
)
from orgtree.errors import NotFoundError, ValidationError


@pytest.fixture
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
def initialized_db(temp_db_path: Path) -> Generator[OrgDB, None, None]:
    """Create a connected OrgDB instance."""
    with OrgDB(temp_db_path) as db:
        yield db


class TestUnits:
    """Tests for branches, departments and roles."""

    def test_create_and_list_branch(self, initialized_db: OrgDB) -> None:
        branch = create_branch(initialized_db, "Headquarters")
        assert branch["name"] == "Headquarters"
        assert branch["branch_id"] == 1
        assert list_branches(initialized_db) == [branch]

    def test_create_department_and_role(self, initialized_db: OrgDB) -> None:
        create_department(initialized_db, "Sales")
        create_role(initialized_db, "Manager")
        assert [d["name"] for d in list_departments(initialized_db)] == ["Sales"]
        assert [r["name"] for r in list_roles(initialized_db)] == ["Manager"]

    def test_duplicate_name_rejected(self, initialized_db: OrgDB) -> None:
        create_role(initialized_db, "Manager")
        with pytest.raises(ValidationError, match="already exists"):
            create_role(initialized_db, "Manager")

    def test_empty_name_rejected(self, initialized_db: OrgDB) -> None:
        with pytest.raises(ValidationError, match="cannot be empty"):
            create_branch(initialized_db, "   ")


class TestCreateEmployee:
    """Tests for create_employee function."""

    def test_create_basic(self, initialized_db: OrgDB) -> None:
        """Test creating an employee with required fields."""
        with initialized_db.transaction():
            result = create_employee(initialized_db, "E001", "Alice", "Smith")

        assert result["employee_number"] == "E001"
        assert result["name"] == "Alice"
        assert result["created_at"] == result["updated_at"]

    def test_create_with_all_fields(self, initialized_db: OrgDB) -> None:
        """Test every optional attribute is stored."""
        branch = create_branch(initialized_db, "HQ")
        dept = create_department(initialized_db, "IT")
        role = create_role(initialized_db, "CEO")
        result = create_employee(
            initialized_db,
            "E001",
            "Alice",
            "Smith",
            birth_date="1970-01-15",
            salary=150000.0,
            branch_id=branch["branch_id"],
            dept_id=dept["dept_id"],
            role_id=role["role_id"],
        )
        assert result["birth_date"] == "1970-01-15"
        assert result["salary"] == 150000.0
        assert result["role_id"] == role["role_id"]

    def test_identifier_is_stripped(self, initialized_db: OrgDB) -> None:
        create_employee(initialized_db, "  E001 ", "Alice", "Smith")
        assert employee_exists(initialized_db, "E001")

    def test_duplicate_rejected(self, initialized_db: OrgDB) -> None:
        create_employee(initialized_db, "E001", "Alice", "Smith")
        with pytest.raises(ValidationError, match="already exists"):
            create_employee(initialized_db, "E001", "Bob", "Jones")

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"employee_number": ""}, "employee_number is required"),
            ({"name": ""}, "name cannot be empty"),
            ({"surname": " "}, "surname cannot be empty"),
            ({"birth_date": "15/01/1970"}, "ISO date"),
            ({"salary": -1.0}, "negative"),
        ],
    )
    def test_invalid_fields(self, initialized_db: OrgDB, kwargs: dict, message: str) -> None:
        """Test field validation errors."""
        fields = {"employee_number": "E001", "name": "Alice", "surname": "Smith"}
        fields.update(kwargs)
        number = fields.pop("employee_number")
        name = fields.pop("name")
        surname = fields.pop("surname")
        with pytest.raises(ValidationError, match=message):
            create_employee(initialized_db, number, name, surname, **fields)

    def test_unknown_branch(self, initialized_db: OrgDB) -> None:
        """Test references to missing units are reported as not found."""
        with pytest.raises(NotFoundError) as exc_info:
            create_employee(initialized_db, "E001", "Alice", "Smith", branch_id=99)
        assert exc_info.value.kind_of == "branch"

    def test_validation_error_is_value_error(self, initialized_db: OrgDB) -> None:
        with pytest.raises(ValueError):
            create_employee(initialized_db, "", "Alice", "Smith")


class TestReadEmployees:
    """Tests for employee lookups."""

    @pytest.fixture(autouse=True)
    def employees(self, initialized_db: OrgDB) -> None:
        create_employee(initialized_db, "E002", "Bob", "Jones")
        create_employee(initialized_db, "E001", "Alice", "Smith")

    def test_get_employee(self, initialized_db: OrgDB) -> None:
        employee = get_employee(initialized_db, "E001")
        assert employee is not None
        assert employee["surname"] == "Smith"

    def test_get_missing_employee(self, initialized_db: OrgDB) -> None:
        assert get_employee(initialized_db, "E999") is None

    def test_exists(self, initialized_db: OrgDB) -> None:
        assert employee_exists(initialized_db, "E002")
        assert not employee_exists(initialized_db, "E999")

    def test_list_sorted(self, initialized_db: OrgDB) -> None:
        assert [e["employee_number"] for e in list_employees(initialized_db)] == ["E001", "E002"]
        assert list_employee_ids(initialized_db) == ["E001", "E002"]


class TestSearchEmployees:
    """Tests for search_employees function."""

    @pytest.fixture(autouse=True)
    def employees(self, initialized_db: OrgDB) -> None:
        """Three employees across two branches.

        E001 Alice Smith, HQ, 90000, born 1970-01-15
        E002 Bob Smithers, HQ, 50000, born 1985-06-30
        E103 Carol White, Remote, no salary, no birth date
        """
        hq = create_branch(initialized_db, "HQ")["branch_id"]
        remote = create_branch(initialized_db, "Remote")["branch_id"]
        create_employee(
            initialized_db, "E001", "Alice", "Smith", birth_date="1970-01-15", salary=90000.0, branch_id=hq
        )
        create_employee(
            initialized_db, "E002", "Bob", "Smithers", birth_date="1985-06-30", salary=50000.0, branch_id=hq
        )
        create_employee(initialized_db, "E103", "Carol", "White", branch_id=remote)

    @staticmethod
    def _numbers(rows: list[dict]) -> list[str]:
        return [row["employee_number"] for row in rows]

    def test_no_filters_lists_everyone(self, initialized_db: OrgDB) -> None:
        assert self._numbers(search_employees(initialized_db)) == ["E001", "E002", "E103"]
        assert search_employees(initialized_db) == list_employees(initialized_db)

    @pytest.mark.parametrize(
        ("term", "expected"),
        [
            ("smith", ["E001", "E002"]),
            ("ALICE", ["E001"]),
            ("e10", ["E103"]),
            ("  white ", ["E103"]),
            ("nobody", []),
        ],
    )
    def test_text_term(self, initialized_db: OrgDB, term: str, expected: list[str]) -> None:
        """Test the term matches number, name or surname, ignoring case."""
        assert self._numbers(search_employees(initialized_db, term)) == expected

    def test_wildcards_are_literal(self, initialized_db: OrgDB) -> None:
        assert search_employees(initialized_db, "%") == []
        assert search_employees(initialized_db, "_") == []

    def test_branch_filter(self, initialized_db: OrgDB) -> None:
        assert self._numbers(search_employees(initialized_db, branch_id=2)) == ["E103"]

    def test_salary_range(self, initialized_db: OrgDB) -> None:
        """Test bounds are inclusive and missing salaries never match."""
        assert self._numbers(search_employees(initialized_db, salary_min=50000.0)) == ["E001", "E002"]
        assert self._numbers(search_employees(initialized_db, salary_max=50000.0)) == ["E002"]

    def test_birth_date_range(self, initialized_db: OrgDB) -> None:
        rows = search_employees(initialized_db, born_from="1980-01-01", born_to="1990-12-31")
        assert self._numbers(rows) == ["E002"]
        assert self._numbers(search_employees(initialized_db, born_to="1970-01-15")) == ["E001"]

    def test_filters_combine(self, initialized_db: OrgDB) -> None:
        rows = search_employees(initialized_db, "smith", branch_id=1, salary_min=60000.0)
        assert self._numbers(rows) == ["E001"]

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"born_from": "30/06/1985"}, "born_from must be an ISO date"),
            ({"salary_min": 10.0, "salary_max": 1.0}, "salary_min cannot be greater"),
            ({"born_from": "1990-01-01", "born_to": "1980-01-01"}, "born_from cannot be later"),
        ],
    )
    def test_invalid_filters(self, initialized_db: OrgDB, kwargs: dict, message: str) -> None:
        with pytest.raises(ValidationError, match=message):
            search_employees(initialized_db, **kwargs)


class TestUpdateEmployee:
    """Tests for update_employee function."""

    @pytest.fixture(autouse=True)
    def employee(self, initialized_db: OrgDB) -> None:
        create_employee(initialized_db, "E001", "Alice", "Smith")

    def test_update_fields(self, initialized_db: OrgDB) -> None:
        assert update_employee(initialized_db, "E001", surname="Jones", salary=10.0) is True
        employee = get_employee(initialized_db, "E001")
        assert employee is not None
        assert employee["surname"] == "Jones"
        assert employee["salary"] == 10.0

    def test_update_nothing(self, initialized_db: OrgDB) -> None:
        assert update_employee(initialized_db, "E001", name=None) is False

    def test_update_unknown_field(self, initialized_db: OrgDB) -> None:
        with pytest.raises(ValidationError, match="Unknown employee field"):
            update_employee(initialized_db, "E001", employee_number="E002")

    def test_update_missing_employee(self, initialized_db: OrgDB) -> None:
        with pytest.raises(NotFoundError):
            update_employee(initialized_db, "E999", name="Bob")


class TestDeleteEmployeeRecord:
    """Tests for delete_employee_record function."""

    def test_delete_existing(self, initialized_db: OrgDB) -> None:
        create_employee(initialized_db, "E001", "Alice", "Smith")
        delete_employee_record(initialized_db, "E001")
        assert not employee_exists(initialized_db, "E001")

    def test_delete_missing(self, initialized_db: OrgDB) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            delete_employee_record(initialized_db, "E999")
        assert exc_info.value.kind_of == "employee"
