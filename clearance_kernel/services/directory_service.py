"""
UserDirectory -- registration and lookup of students, staff and admins.

Responsibility:
    Creates user rows (with the managed-department set for staff),
    resolves ids to the frozen ``Principal`` the engine acts on, and
    answers "which students are under this staff member's authority".

Architecture position:
    Kernel > Services -- imperative shell.  The caller supplies the
    ``RoleTable`` built from configuration.

Invariants enforced:
    - email, application id and staff number are unique; a clash raises
      DuplicateUserError before the insert.
    - A staff member registered without an explicit managed set manages
      their own department.
    - Creating a student account is reported to the audit collaborator
      as ACCOUNT_CREATED (best effort).
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from clearance_kernel.domain.clock import Clock, SystemClock
from clearance_kernel.domain.roles import Principal, PrincipalKind, RoleTable
from clearance_kernel.domain.values import AuditAction
from clearance_kernel.exceptions import (
    DuplicateUserError,
    StaffNotFoundError,
    StudentNotFoundError,
)
from clearance_kernel.logging_config import get_logger
from clearance_kernel.models.user import StaffManagedDepartment, User
from clearance_kernel.selectors.user_selector import UserSelector
from clearance_kernel.services.audit_service import AuditDispatcher
from clearance_kernel.services.base import BaseService

logger = get_logger("services.directory")


class UserDirectory(BaseService[User]):

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        audit: AuditDispatcher | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._audit = audit
        self._users = UserSelector(session)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_student(
        self,
        full_name: str,
        email: str,
        department: str,
        application_id: str,
    ) -> Principal:
        self._ensure_unique("email", User.email, email)
        self._ensure_unique("application_id", User.application_id, application_id)

        user = User(
            full_name=full_name,
            email=email,
            role=PrincipalKind.STUDENT.value,
            department=department,
            application_id=application_id,
            created_at=self._clock.now(),
        )
        self.session.add(user)
        self.session.flush()

        logger.info(
            "student_registered",
            extra={"student_id": str(user.id), "department": department},
        )
        if self._audit is not None:
            self._audit.dispatch(
                application_id,
                AuditAction.ACCOUNT_CREATED,
                {"student_id": str(user.id), "department": department},
            )
        return user.to_principal()

    def register_staff(
        self,
        full_name: str,
        email: str,
        department: str,
        staff_number: str,
        managed_departments: Iterable[str] | None = None,
    ) -> Principal:
        self._ensure_unique("email", User.email, email)
        self._ensure_unique("staff_number", User.staff_number, staff_number)

        managed = (
            sorted(set(managed_departments))
            if managed_departments is not None
            else [department]
        )
        user = User(
            full_name=full_name,
            email=email,
            role=PrincipalKind.STAFF.value,
            department=department,
            staff_number=staff_number,
            created_at=self._clock.now(),
            managed=[StaffManagedDepartment(department=d) for d in managed if d],
        )
        self.session.add(user)
        self.session.flush()

        logger.info(
            "staff_registered",
            extra={
                "staff_id": str(user.id),
                "department": department,
                "managed_departments": managed,
            },
        )
        return user.to_principal()

    def register_admin(self, full_name: str, email: str) -> Principal:
        self._ensure_unique("email", User.email, email)
        user = User(
            full_name=full_name,
            email=email,
            role=PrincipalKind.ADMIN.value,
            created_at=self._clock.now(),
        )
        self.session.add(user)
        self.session.flush()
        logger.info("admin_registered", extra={"admin_id": str(user.id)})
        return user.to_principal()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def principal_for(self, user_id: UUID) -> Principal | None:
        return self._users.get_principal(user_id)

    def require_student(self, student_id: UUID) -> Principal:
        principal = self._users.get_principal(student_id)
        if principal is None or not principal.is_student:
            raise StudentNotFoundError(str(student_id))
        return principal

    def require_staff(self, staff_id: UUID) -> Principal:
        principal = self._users.get_principal(staff_id)
        if principal is None or not principal.is_staff:
            raise StaffNotFoundError(str(staff_id))
        return principal

    def students_under_authority(
        self,
        staff: Principal,
        role_table: RoleTable,
    ) -> list[UUID]:
        """
        Student ids the staff member has authority over.

        Department-scoped roles see their scope, campus-wide roles see all
        students, unresolved staff (and non-staff) see nobody.
        """
        return self._users.students_under_authority(role_table.resolve_principal(staff))

    def _ensure_unique(self, field: str, column, value: str | None) -> None:
        if value is None:
            return
        taken = self.session.execute(
            select(User.id).where(column == value)
        ).scalar_one_or_none()
        if taken is not None:
            raise DuplicateUserError(field, value)
