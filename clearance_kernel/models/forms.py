"""
Module: clearance_kernel.models.forms
Responsibility: ORM persistence for the five clearance form kinds and the
    approval-set slot rows of the Provisional Admission form.

Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - One instance per kind per student: UNIQUE(student_id) on every form
      table.  A concurrent second submit loses on this constraint.
    - Approval and submission flags only move false -> true; a
      ``before_update`` listener raises ImmutabilityViolationError on a
      true -> false flip.
    - Optimistic locking: every form table carries a ``version`` counter
      registered as the mapper's ``version_id_col``.  Every approval
      touches ``updated_at`` on the parent row so the counter moves even
      when only a Provisional Admission slot row changes.

Failure modes:
    - IntegrityError on a duplicate (student, kind) insert.
    - StaleDataError when a concurrent transaction bumped the version.
    - ImmutabilityViolationError on a flag reset.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import ClassVar
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.orm.attributes import get_history

from clearance_kernel.db.base import Base, UUIDString
from clearance_kernel.domain.dtos import ApprovalSlot, FormSnapshot
from clearance_kernel.domain.forms import FormKind
from clearance_kernel.domain.roles import ApprovalRole
from clearance_kernel.exceptions import ImmutabilityViolationError


class FormBase(Base):
    """Columns shared by every form table."""

    __abstract__ = True

    student_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False, unique=True,
    )
    submitted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    form_kind: ClassVar[FormKind]

    def _snapshot(self, slots: tuple[ApprovalSlot, ...]) -> FormSnapshot:
        return FormSnapshot(
            form_id=self.id,
            kind=self.form_kind,
            student_id=self.student_id,
            submitted=self.submitted,
            submitted_at=self.submitted_at,
            approved=self.approved,
            approved_at=self.approved_at,
            slots=slots,
            version=self.version,
        )


class SingleApprovalForm(FormBase):
    """Single-approval columns (PersonalRecord, PersonalRecord2, Affidavit)."""

    __abstract__ = True

    approved_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    approval_comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    owner_role: ClassVar[ApprovalRole]

    def to_snapshot(self) -> FormSnapshot:
        slot = ApprovalSlot(
            role=self.owner_role.value,
            approved=self.approved,
            staff_id=self.approved_by_id,
            approved_at=self.approved_at,
            comments=self.approval_comments,
        )
        return self._snapshot((slot,))

    def apply_snapshot(self, snapshot: FormSnapshot) -> None:
        slot = snapshot.slots[0]
        self.approved_by_id = slot.staff_id
        self.approval_comments = slot.comments
        self.approved = snapshot.approved
        self.approved_at = snapshot.approved_at


class NewClearanceForm(FormBase):
    """Fixed dual approval: deputy registrar and school officer."""

    __tablename__ = "new_clearance_forms"

    form_kind = FormKind.NEW_CLEARANCE

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    student_name: Mapped[str] = mapped_column(String(255), nullable=False)
    jamb_reg_no: Mapped[str] = mapped_column(String(100), nullable=False)
    o_level_qualification: Mapped[bool] = mapped_column(Boolean, default=False)
    change_of_course: Mapped[bool] = mapped_column(Boolean, default=False)
    change_of_institution: Mapped[bool] = mapped_column(Boolean, default=False)
    upload_o_level: Mapped[bool] = mapped_column(Boolean, default=False)
    jamb_admission_letter: Mapped[bool] = mapped_column(Boolean, default=False)

    deputy_registrar_approved: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    deputy_registrar_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    deputy_registrar_approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    deputy_registrar_comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    school_officer_approved: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    school_officer_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    school_officer_approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    school_officer_comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index(
            "ix_new_clearance_pending",
            "submitted", "deputy_registrar_approved", "school_officer_approved",
        ),
    )

    def to_snapshot(self) -> FormSnapshot:
        return self._snapshot(
            (
                ApprovalSlot(
                    role=ApprovalRole.DEPUTY_REGISTRAR.value,
                    approved=self.deputy_registrar_approved,
                    staff_id=self.deputy_registrar_id,
                    approved_at=self.deputy_registrar_approved_at,
                    comments=self.deputy_registrar_comments,
                    position=0,
                ),
                ApprovalSlot(
                    role=ApprovalRole.SCHOOL_OFFICER.value,
                    approved=self.school_officer_approved,
                    staff_id=self.school_officer_id,
                    approved_at=self.school_officer_approved_at,
                    comments=self.school_officer_comments,
                    position=1,
                ),
            )
        )

    def apply_snapshot(self, snapshot: FormSnapshot) -> None:
        registrar = snapshot.slot(ApprovalRole.DEPUTY_REGISTRAR.value)
        officer = snapshot.slot(ApprovalRole.SCHOOL_OFFICER.value)
        self.deputy_registrar_approved = registrar.approved
        self.deputy_registrar_id = registrar.staff_id
        self.deputy_registrar_approved_at = registrar.approved_at
        self.deputy_registrar_comments = registrar.comments
        self.school_officer_approved = officer.approved
        self.school_officer_id = officer.staff_id
        self.school_officer_approved_at = officer.approved_at
        self.school_officer_comments = officer.comments
        self.approved = snapshot.approved
        self.approved_at = snapshot.approved_at


class ProvAdmissionForm(FormBase):
    """Approval set: seven role slots seeded at creation."""

    __tablename__ = "prov_admission_forms"

    form_kind = FormKind.PROV_ADMISSION

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    student_name: Mapped[str] = mapped_column(String(255), nullable=False)
    department: Mapped[str] = mapped_column(String(200), nullable=False)
    course: Mapped[str] = mapped_column(String(200), nullable=False)

    approvals: Mapped[list[ProvAdmissionApproval]] = relationship(
        "ProvAdmissionApproval",
        back_populates="form",
        cascade="all, delete-orphan",
        order_by="ProvAdmissionApproval.position",
        lazy="selectin",
    )

    def to_snapshot(self) -> FormSnapshot:
        return self._snapshot(
            tuple(
                ApprovalSlot(
                    role=row.staff_role,
                    approved=row.approved,
                    staff_id=row.staff_id,
                    approved_at=row.approved_at,
                    comments=row.comments,
                    position=row.position,
                )
                for row in sorted(self.approvals, key=lambda r: r.position)
            )
        )

    def apply_snapshot(self, snapshot: FormSnapshot) -> None:
        rows = {row.staff_role: row for row in self.approvals}
        for slot in snapshot.slots:
            row = rows[slot.role]
            if (
                row.approved != slot.approved
                or row.staff_id != slot.staff_id
                or row.approved_at != slot.approved_at
                or row.comments != slot.comments
            ):
                row.approved = slot.approved
                row.staff_id = slot.staff_id
                row.approved_at = slot.approved_at
                row.comments = slot.comments
        self.approved = snapshot.approved
        self.approved_at = snapshot.approved_at


class ProvAdmissionApproval(Base):
    """One role slot of a Provisional Admission form."""

    __tablename__ = "prov_admission_approvals"

    __table_args__ = (
        UniqueConstraint("form_id", "staff_role", name="uq_prov_admission_slot_role"),
        UniqueConstraint("form_id", "position", name="uq_prov_admission_slot_position"),
        Index("ix_prov_admission_approvals_pending", "staff_role", "approved"),
    )

    form_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("prov_admission_forms.id"), nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    staff_role: Mapped[str] = mapped_column(String(50), nullable=False)
    approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    staff_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    form: Mapped[ProvAdmissionForm] = relationship(
        "ProvAdmissionForm", back_populates="approvals",
    )


class PersonalRecordForm(SingleApprovalForm):
    __tablename__ = "personal_record_forms"

    form_kind = FormKind.PERSONAL_RECORD
    owner_role = ApprovalRole.STUDENT_SUPPORT

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    matric_no: Mapped[str | None] = mapped_column(String(100), nullable=True)
    school_faculty: Mapped[str] = mapped_column(String(200), nullable=False)
    department: Mapped[str] = mapped_column(String(200), nullable=False)
    course: Mapped[str] = mapped_column(String(200), nullable=False)
    gender: Mapped[str] = mapped_column(String(10), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    marital_status: Mapped[str] = mapped_column(String(10), nullable=False)
    religion: Mapped[str | None] = mapped_column(String(100), nullable=True)
    church: Mapped[str | None] = mapped_column(String(200), nullable=True)
    blood_group: Mapped[str | None] = mapped_column(String(10), nullable=True)
    home_town: Mapped[str | None] = mapped_column(String(200), nullable=True)
    state_of_origin: Mapped[str] = mapped_column(String(100), nullable=False)
    nationality: Mapped[str] = mapped_column(String(100), nullable=False)
    home_address: Mapped[str] = mapped_column(Text, nullable=False)
    next_of_kin: Mapped[str] = mapped_column(String(255), nullable=False)


class PersonalRecord2Form(SingleApprovalForm):
    __tablename__ = "personal_record2_forms"

    form_kind = FormKind.PERSONAL_RECORD_2
    owner_role = ApprovalRole.DEPUTY_REGISTRAR

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    parent_guardian_name: Mapped[str] = mapped_column(String(255), nullable=False)
    parent_guardian_address: Mapped[str] = mapped_column(Text, nullable=False)
    parent_guardian_origin: Mapped[str] = mapped_column(String(200), nullable=False)
    parent_guardian_country: Mapped[str] = mapped_column(String(100), nullable=False)
    parent_guardian_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    parent_guardian_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    father_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    father_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    father_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    father_occupation: Mapped[str | None] = mapped_column(String(200), nullable=True)
    mother_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    mother_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    mother_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    mother_occupation: Mapped[str | None] = mapped_column(String(200), nullable=True)
    education_history: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    qualifications: Mapped[str | None] = mapped_column(Text, nullable=True)


class AffidavitForm(SingleApprovalForm):
    __tablename__ = "affidavit_forms"

    form_kind = FormKind.AFFIDAVIT
    owner_role = ApprovalRole.LEGAL

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    student_name: Mapped[str] = mapped_column(String(255), nullable=False)
    faculty: Mapped[str] = mapped_column(String(200), nullable=False)
    department: Mapped[str] = mapped_column(String(200), nullable=False)
    course: Mapped[str] = mapped_column(String(200), nullable=False)
    agreement_date: Mapped[date] = mapped_column(Date, nullable=False)
    signature: Mapped[str] = mapped_column(String(255), nullable=False)


FORM_MODELS: dict[FormKind, type[FormBase]] = {
    FormKind.NEW_CLEARANCE: NewClearanceForm,
    FormKind.PROV_ADMISSION: ProvAdmissionForm,
    FormKind.PERSONAL_RECORD: PersonalRecordForm,
    FormKind.PERSONAL_RECORD_2: PersonalRecord2Form,
    FormKind.AFFIDAVIT: AffidavitForm,
}


def model_for(kind: FormKind) -> type[FormBase]:
    return FORM_MODELS[FormKind(kind)]


# ---------------------------------------------------------------------------
# One-directional flag enforcement
# ---------------------------------------------------------------------------

_FORWARD_ONLY_FLAGS: dict[type, tuple[str, ...]] = {
    NewClearanceForm: (
        "submitted", "approved",
        "deputy_registrar_approved", "school_officer_approved",
    ),
    ProvAdmissionForm: ("submitted", "approved"),
    ProvAdmissionApproval: ("approved",),
    PersonalRecordForm: ("submitted", "approved"),
    PersonalRecord2Form: ("submitted", "approved"),
    AffidavitForm: ("submitted", "approved"),
}


def _make_flag_guard(flags: tuple[str, ...]):
    def _check_flags_forward_only(mapper, connection, target):
        for name in flags:
            history = get_history(target, name)
            if history.deleted and history.deleted[0] and not getattr(target, name):
                raise ImmutabilityViolationError(
                    type(target).__name__,
                    str(target.id),
                    f"{name} cannot be reset once true",
                )

    return _check_flags_forward_only


for _model, _flags in _FORWARD_ONLY_FLAGS.items():
    event.listen(_model, "before_update", _make_flag_guard(_flags))
