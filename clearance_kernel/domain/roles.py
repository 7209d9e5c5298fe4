"""
Roles -- Principals, canonical approval roles and the role table.

Responsibility:
    Defines who may act (``Principal``), the closed set of canonical
    approval roles, and ``RoleTable``: the single department <-> role
    lookup consulted for authority checks, pending routing, notification
    routing and the inverse role -> department lookup.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    ``RoleTable`` instances are built from configuration by
    ``clearance_config.bridges``; the kernel never reads config itself.

Invariants enforced:
    - "Unresolved" is an explicit outcome (``ResolvedRole.role is None``),
      never a silent fall-through.
    - Academic-track roles (schoolOfficer, departmentHead) are scoped to
      departments; administrative-track roles are campus-wide.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from uuid import UUID


class ApprovalRole(str, Enum):
    """Canonical approval roles matched against approval slots."""

    DEPUTY_REGISTRAR = "deputyRegistrar"
    SCHOOL_OFFICER = "schoolOfficer"
    DEPARTMENT_HEAD = "departmentHead"
    STUDENT_SUPPORT = "studentSupport"
    FINANCE = "finance"
    LIBRARY = "library"
    HEALTH = "health"
    LEGAL = "legal"


class PrincipalKind(str, Enum):
    STUDENT = "student"
    STAFF = "staff"
    ADMIN = "admin"


@dataclass(frozen=True)
class Principal:
    """
    The acting identity supplied by the auth middleware.

    The engine trusts this identity; it is never re-authenticated here.
    """

    principal_id: UUID
    kind: PrincipalKind
    department: str | None = None
    managed_departments: frozenset[str] = field(default_factory=frozenset)
    application_id: str | None = None
    full_name: str | None = None

    @property
    def is_student(self) -> bool:
        return self.kind == PrincipalKind.STUDENT

    @property
    def is_staff(self) -> bool:
        return self.kind == PrincipalKind.STAFF

    @property
    def is_admin(self) -> bool:
        return self.kind == PrincipalKind.ADMIN


@dataclass(frozen=True)
class ResolvedRole:
    """
    Outcome of resolving a staff member's department to a canonical role.

    ``scope`` is None for campus-wide roles and the set of covered
    student departments for scoped roles.  An unresolved role has
    ``role=None`` and an empty scope.
    """

    role: ApprovalRole | None
    scope: frozenset[str] | None = frozenset()

    @classmethod
    def unresolved(cls) -> ResolvedRole:
        return cls(role=None, scope=frozenset())

    @property
    def is_resolved(self) -> bool:
        return self.role is not None

    @property
    def campus_wide(self) -> bool:
        return self.role is not None and self.scope is None

    def covers(self, student_department: str | None) -> bool:
        """True when a student in ``student_department`` is under this authority."""
        if self.role is None:
            return False
        if self.scope is None:
            return True
        return student_department is not None and student_department in self.scope


@dataclass(frozen=True)
class RoleTable:
    """
    Department <-> role mapping.

    Contract:
        ``fixed_departments`` maps administrative department names to their
        campus-wide role.  A department ending in ``hod_suffix`` resolves to
        departmentHead scoped to the stripped name.  Anything else with a
        non-empty managed-department set resolves to schoolOfficer scoped to
        that set.  Everything else is unresolved.
    """

    fixed_departments: Mapping[str, ApprovalRole]
    hod_suffix: str = " HOD"
    school_officer_department: str = "School Officer"

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "fixed_departments", MappingProxyType(dict(self.fixed_departments))
        )

    def resolve(
        self,
        department: str | None,
        managed_departments: Iterable[str] = (),
    ) -> ResolvedRole:
        if not department:
            return ResolvedRole.unresolved()

        fixed = self.fixed_departments.get(department)
        if fixed is not None:
            return ResolvedRole(role=fixed, scope=None)

        if department.endswith(self.hod_suffix):
            stripped = department[: -len(self.hod_suffix)]
            if stripped:
                return ResolvedRole(
                    role=ApprovalRole.DEPARTMENT_HEAD,
                    scope=frozenset({stripped}),
                )
            return ResolvedRole.unresolved()

        managed = frozenset(d for d in managed_departments if d)
        if managed:
            return ResolvedRole(role=ApprovalRole.SCHOOL_OFFICER, scope=managed)

        return ResolvedRole.unresolved()

    def resolve_principal(self, principal: Principal) -> ResolvedRole:
        """Resolve a staff principal; students and admins carry no approval role."""
        if not principal.is_staff:
            return ResolvedRole.unresolved()
        return self.resolve(principal.department, principal.managed_departments)

    def department_for_role(
        self,
        role: ApprovalRole,
        student_department: str | None,
    ) -> str | None:
        """
        Inverse lookup: the department whose staff hold ``role``.

        departmentHead maps to "<student department> HOD"; schoolOfficer
        maps to the literal School Officer department (the caller further
        filters by managed departments).  Returns None when no department
        can be derived.
        """
        if role == ApprovalRole.DEPARTMENT_HEAD:
            if not student_department:
                return None
            return f"{student_department}{self.hod_suffix}"
        if role == ApprovalRole.SCHOOL_OFFICER:
            return self.school_officer_department
        for department, fixed in self.fixed_departments.items():
            if fixed == role:
                return department
        return None
