"""
Module: clearance_kernel.selectors.user_selector
Responsibility: Read path over students and staff: principal lookup,
    department-scoped student sets, and the deterministic "first match"
    staff recipient used by notification routing.
Architecture position: Kernel > Selectors.

First-match policy:
    Whenever exactly one staff member must be picked from several
    candidates, the one with the lowest ``staff_number`` wins, ties broken
    by id.  Staff without a staff number sort last.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import func, select

from clearance_kernel.domain.roles import (
    ApprovalRole,
    Principal,
    PrincipalKind,
    ResolvedRole,
    RoleTable,
)
from clearance_kernel.models.user import StaffManagedDepartment, User
from clearance_kernel.selectors.base import BaseSelector


def _first_match_order():
    return (User.staff_number.is_(None), User.staff_number, User.id)


class UserSelector(BaseSelector[User]):
    """Read-only queries over the users table."""

    def get_principal(self, user_id: UUID) -> Principal | None:
        user = self.session.get(User, user_id)
        return user.to_principal() if user is not None else None

    def principals(self, user_ids: Iterable[UUID]) -> dict[UUID, Principal]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        users = self.session.execute(
            select(User).where(User.id.in_(ids))
        ).scalars().all()
        return {u.id: u.to_principal() for u in users}

    def first_staff_in_department(
        self,
        department: str,
        managing: str | None = None,
    ) -> Principal | None:
        """
        First staff member of ``department``; when ``managing`` is given,
        only staff whose managed departments include it qualify.
        """
        stmt = select(User).where(
            User.role == PrincipalKind.STAFF.value,
            User.department == department,
        )
        if managing is not None:
            stmt = stmt.join(
                StaffManagedDepartment, StaffManagedDepartment.staff_id == User.id,
            ).where(StaffManagedDepartment.department == managing)
        stmt = stmt.order_by(*_first_match_order()).limit(1)
        user = self.session.execute(stmt).scalars().first()
        return user.to_principal() if user is not None else None

    def first_staff_with_role(
        self,
        role: ApprovalRole,
        student_department: str | None,
        role_table: RoleTable,
    ) -> Principal | None:
        """
        First staff member whose resolved role is ``role`` and whose
        authority covers ``student_department``.
        """
        if role == ApprovalRole.SCHOOL_OFFICER:
            if not student_department:
                return None
            stmt = (
                select(User)
                .join(StaffManagedDepartment, StaffManagedDepartment.staff_id == User.id)
                .where(
                    User.role == PrincipalKind.STAFF.value,
                    StaffManagedDepartment.department == student_department,
                )
                .order_by(*_first_match_order())
            )
            for user in self.session.execute(stmt).scalars():
                resolved = role_table.resolve(user.department, user.managed_departments)
                if resolved.role == role and resolved.covers(student_department):
                    return user.to_principal()
            return None

        department = role_table.department_for_role(role, student_department)
        if department is None:
            return None
        return self.first_staff_in_department(department)

    def student_ids(self, departments: frozenset[str] | None = None) -> list[UUID]:
        """Students in ``departments``; None means every student."""
        stmt = select(User.id).where(User.role == PrincipalKind.STUDENT.value)
        if departments is not None:
            if not departments:
                return []
            stmt = stmt.where(User.department.in_(sorted(departments)))
        return list(self.session.execute(stmt.order_by(User.id)).scalars())

    def students_under_authority(self, resolved: ResolvedRole) -> list[UUID]:
        """Campus-wide roles see every student, scoped roles their departments."""
        if not resolved.is_resolved:
            return []
        return self.student_ids(resolved.scope)

    def count_by_role(self) -> dict[str, int]:
        rows = self.session.execute(
            select(User.role, func.count(User.id)).group_by(User.role)
        ).all()
        counts = {kind.value: 0 for kind in PrincipalKind}
        counts.update({role: count for role, count in rows})
        return counts

    def students_by_department(self) -> dict[str, int]:
        rows = self.session.execute(
            select(User.department, func.count(User.id))
            .where(User.role == PrincipalKind.STUDENT.value)
            .group_by(User.department)
        ).all()
        return {dept or "": count for dept, count in rows}

    def count_cleared_students(self) -> int:
        return self.session.execute(
            select(func.count(User.id)).where(
                User.role == PrincipalKind.STUDENT.value,
                User.clearance_completed_at.is_not(None),
            )
        ).scalar_one()
