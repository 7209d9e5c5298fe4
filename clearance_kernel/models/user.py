"""
Module: clearance_kernel.models.user
Responsibility: ORM persistence for students, staff and admins, plus the
    managed-department set that scopes a School Officer's authority.

Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - role is one of student/staff/admin (check constraint).
    - application_id (students) and staff_number (staff) are unique.
    - staff_number defines the stable "first match" order used whenever a
      single staff recipient is chosen from several candidates.
    - clearance_completed_at is write-once: the completion notification and
      audit record fire only on the transition from unset to set.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.orm.attributes import get_history

from clearance_kernel.db.base import Base, UUIDString
from clearance_kernel.domain.roles import Principal, PrincipalKind
from clearance_kernel.exceptions import ImmutabilityViolationError


class User(Base):
    """A student, staff member or admin."""

    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint(
            "role IN ('student', 'staff', 'admin')",
            name="ck_users_valid_role",
        ),
        Index("ix_users_role_department", "role", "department"),
    )

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    department: Mapped[str | None] = mapped_column(String(200), nullable=True)
    application_id: Mapped[str | None] = mapped_column(
        String(100), nullable=True, unique=True,
    )
    staff_number: Mapped[str | None] = mapped_column(
        String(100), nullable=True, unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    clearance_completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    managed: Mapped[list[StaffManagedDepartment]] = relationship(
        "StaffManagedDepartment",
        back_populates="staff",
        cascade="all, delete-orphan",
        order_by="StaffManagedDepartment.department",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<User {self.id} {self.role} {self.department!r}>"

    @property
    def managed_departments(self) -> frozenset[str]:
        return frozenset(m.department for m in self.managed)

    def to_principal(self) -> Principal:
        """Convert ORM model to the frozen principal the engine acts on."""
        return Principal(
            principal_id=self.id,
            kind=PrincipalKind(self.role),
            department=self.department,
            managed_departments=self.managed_departments,
            application_id=self.application_id,
            full_name=self.full_name,
        )


class StaffManagedDepartment(Base):
    """One academic department a staff member has authority over."""

    __tablename__ = "staff_managed_departments"

    __table_args__ = (
        UniqueConstraint(
            "staff_id", "department", name="uq_staff_managed_department",
        ),
        Index("ix_staff_managed_departments_department", "department"),
    )

    staff_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    department: Mapped[str] = mapped_column(String(200), nullable=False)

    staff: Mapped[User] = relationship("User", back_populates="managed")


@event.listens_for(User, "before_update")
def _check_clearance_completion_write_once(mapper, connection, target):
    history = get_history(target, "clearance_completed_at")
    if history.deleted and history.deleted[0] is not None:
        raise ImmutabilityViolationError(
            "User",
            str(target.id),
            "clearance_completed_at is write-once",
        )
