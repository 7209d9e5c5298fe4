"""
Tests for the Role Resolver (clearance_kernel.domain.roles.RoleTable).

Tests cover:
- resolve: fixed departments, HOD suffix, managed-department fallback,
  explicit unresolved outcome
- ResolvedRole.covers: campus-wide vs department-scoped authority
- department_for_role: inverse lookup used by notification routing
- resolve_principal: only staff carry an approval role
"""

from uuid import uuid4

import pytest

from clearance_kernel.domain.roles import (
    ApprovalRole,
    Principal,
    PrincipalKind,
    ResolvedRole,
    RoleTable,
)


class TestResolveFixedDepartments:

    @pytest.mark.parametrize(
        "department, role",
        [
            ("Registrar", ApprovalRole.DEPUTY_REGISTRAR),
            ("Student Support", ApprovalRole.STUDENT_SUPPORT),
            ("Finance", ApprovalRole.FINANCE),
            ("Library", ApprovalRole.LIBRARY),
            ("Health Services", ApprovalRole.HEALTH),
            ("Legal", ApprovalRole.LEGAL),
        ],
    )
    def test_fixed_department_is_campus_wide(self, role_table, department, role):
        resolved = role_table.resolve(department)

        assert resolved.role == role
        assert resolved.scope is None
        assert resolved.campus_wide

    def test_fixed_department_ignores_managed_set(self, role_table):
        resolved = role_table.resolve("Finance", ["Computer Science"])

        assert resolved.role == ApprovalRole.FINANCE
        assert resolved.scope is None


class TestResolveAcademicTrack:

    def test_hod_suffix_scopes_to_stripped_department(self, role_table):
        resolved = role_table.resolve("Computer Science HOD")

        assert resolved.role == ApprovalRole.DEPARTMENT_HEAD
        assert resolved.scope == frozenset({"Computer Science"})

    def test_bare_hod_suffix_is_unresolved(self, role_table):
        assert not role_table.resolve(" HOD").is_resolved

    def test_managed_departments_make_school_officer(self, role_table):
        resolved = role_table.resolve("School Officer", ["Computer Science", "Physics"])

        assert resolved.role == ApprovalRole.SCHOOL_OFFICER
        assert resolved.scope == frozenset({"Computer Science", "Physics"})

    def test_blank_managed_entries_are_ignored(self, role_table):
        resolved = role_table.resolve("Faculty Office", ["", "Physics"])

        assert resolved.scope == frozenset({"Physics"})


class TestUnresolved:

    @pytest.mark.parametrize("department", [None, "", "Catering"])
    def test_unknown_department_without_managed_set(self, role_table, department):
        resolved = role_table.resolve(department)

        assert resolved == ResolvedRole.unresolved()
        assert not resolved.is_resolved
        assert not resolved.covers("Computer Science")


class TestCovers:

    def test_campus_wide_covers_any_department(self):
        resolved = ResolvedRole(role=ApprovalRole.FINANCE, scope=None)

        assert resolved.covers("Computer Science")
        assert resolved.covers(None)

    def test_scoped_role_covers_only_its_departments(self):
        resolved = ResolvedRole(
            role=ApprovalRole.SCHOOL_OFFICER, scope=frozenset({"Computer Science"}),
        )

        assert resolved.covers("Computer Science")
        assert not resolved.covers("Physics")
        assert not resolved.covers(None)


class TestDepartmentForRole:

    def test_department_head_maps_to_student_hod(self, role_table):
        assert (
            role_table.department_for_role(ApprovalRole.DEPARTMENT_HEAD, "Physics")
            == "Physics HOD"
        )

    def test_department_head_without_student_department(self, role_table):
        assert role_table.department_for_role(ApprovalRole.DEPARTMENT_HEAD, None) is None

    def test_school_officer_maps_to_literal_department(self, role_table):
        assert (
            role_table.department_for_role(ApprovalRole.SCHOOL_OFFICER, "Physics")
            == "School Officer"
        )

    def test_fixed_roles_map_back_to_their_department(self, role_table):
        assert role_table.department_for_role(ApprovalRole.LIBRARY, "Physics") == "Library"
        assert role_table.department_for_role(ApprovalRole.HEALTH, None) == "Health Services"


class TestResolvePrincipal:

    def _principal(self, kind, department="Finance", managed=()):
        return Principal(
            principal_id=uuid4(),
            kind=kind,
            department=department,
            managed_departments=frozenset(managed),
        )

    def test_staff_is_resolved(self, role_table):
        resolved = role_table.resolve_principal(self._principal(PrincipalKind.STAFF))

        assert resolved.role == ApprovalRole.FINANCE

    @pytest.mark.parametrize("kind", [PrincipalKind.STUDENT, PrincipalKind.ADMIN])
    def test_non_staff_carry_no_role(self, role_table, kind):
        assert not role_table.resolve_principal(self._principal(kind)).is_resolved


class TestTableIsConfigurable:

    def test_custom_table(self):
        table = RoleTable(
            fixed_departments={"Bursary": ApprovalRole.FINANCE},
            hod_suffix=" (Head)",
            school_officer_department="Faculty Office",
        )

        assert table.resolve("Bursary").role == ApprovalRole.FINANCE
        assert table.resolve("Finance").is_resolved is False
        assert table.resolve("Physics (Head)").scope == frozenset({"Physics"})
        assert table.department_for_role(ApprovalRole.SCHOOL_OFFICER, "X") == "Faculty Office"

    def test_fixed_departments_are_read_only(self, role_table):
        with pytest.raises(TypeError):
            role_table.fixed_departments["Catering"] = ApprovalRole.FINANCE
