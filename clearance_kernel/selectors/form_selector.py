"""
Module: clearance_kernel.selectors.form_selector
Responsibility: Read path over the five form tables: per-student
    snapshots, the pending-slot queries behind a staff member's queue,
    the forms a staff member signed, and per-kind counters.
Architecture position: Kernel > Selectors.

Pending query shape:
    Every pending query filters ``submitted = true``, joins the owning
    student, optionally restricts the student's department to a scope set
    and orders by (submitted_at, id).  What "pending for role R" means
    depends on the topology:

    DUAL          the R flag column is false and every prerequisite flag
                  column is true.
    APPROVAL_SET  an R slot row exists with approved = false.
    SINGLE        the form's ``approved`` flag is false.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import exists, func, select

from clearance_kernel.domain.dtos import (
    ApprovedItem,
    FormSnapshot,
    PendingItem,
    PendingItemType,
)
from clearance_kernel.domain.forms import (
    ALL_FORM_KINDS,
    ApprovalTopology,
    FormKind,
    descriptor_for,
)
from clearance_kernel.domain.roles import ApprovalRole
from clearance_kernel.models.forms import (
    NewClearanceForm,
    ProvAdmissionApproval,
    ProvAdmissionForm,
    model_for,
)
from clearance_kernel.models.user import User
from clearance_kernel.selectors.base import BaseSelector

_DUAL_FLAGS = {
    ApprovalRole.DEPUTY_REGISTRAR: NewClearanceForm.deputy_registrar_approved,
    ApprovalRole.SCHOOL_OFFICER: NewClearanceForm.school_officer_approved,
}

_DUAL_SIGNERS = {
    ApprovalRole.DEPUTY_REGISTRAR: (
        NewClearanceForm.deputy_registrar_id,
        NewClearanceForm.deputy_registrar_approved_at,
        NewClearanceForm.deputy_registrar_comments,
    ),
    ApprovalRole.SCHOOL_OFFICER: (
        NewClearanceForm.school_officer_id,
        NewClearanceForm.school_officer_approved_at,
        NewClearanceForm.school_officer_comments,
    ),
}


class FormSelector(BaseSelector):
    """Read-only queries over form instances."""

    def snapshot(self, kind: FormKind, student_id: UUID) -> FormSnapshot | None:
        model = model_for(kind)
        form = self.session.execute(
            select(model).where(model.student_id == student_id)
        ).scalar_one_or_none()
        return form.to_snapshot() if form is not None else None

    def snapshot_by_id(self, kind: FormKind, form_id: UUID) -> FormSnapshot | None:
        form = self.session.get(model_for(kind), form_id)
        return form.to_snapshot() if form is not None else None

    def snapshots_for_student(
        self, student_id: UUID,
    ) -> dict[FormKind, FormSnapshot | None]:
        return {kind: self.snapshot(kind, student_id) for kind in ALL_FORM_KINDS}

    # ------------------------------------------------------------------
    # Pending queue
    # ------------------------------------------------------------------

    def pending_form_items(
        self,
        kind: FormKind,
        slot_role: ApprovalRole,
        prerequisite_roles: Iterable[ApprovalRole] = (),
        departments: frozenset[str] | None = None,
    ) -> list[PendingItem]:
        """
        Submitted forms of ``kind`` whose ``slot_role`` slot is still open.

        ``departments`` None means campus-wide; an empty set matches
        nothing.
        """
        if departments is not None and not departments:
            return []

        descriptor = descriptor_for(kind)
        model = model_for(kind)
        stmt = (
            select(model, User)
            .join(User, User.id == model.student_id)
            .where(model.submitted.is_(True))
        )

        if descriptor.topology == ApprovalTopology.DUAL:
            stmt = stmt.where(_DUAL_FLAGS[slot_role].is_(False))
            for prerequisite in prerequisite_roles:
                stmt = stmt.where(_DUAL_FLAGS[prerequisite].is_(True))
        elif descriptor.topology == ApprovalTopology.APPROVAL_SET:
            stmt = stmt.where(
                exists(
                    select(ProvAdmissionApproval.id).where(
                        ProvAdmissionApproval.form_id == ProvAdmissionForm.id,
                        ProvAdmissionApproval.staff_role == slot_role.value,
                        ProvAdmissionApproval.approved.is_(False),
                    )
                )
            )
        else:
            stmt = stmt.where(model.approved.is_(False))

        if departments is not None:
            stmt = stmt.where(User.department.in_(sorted(departments)))

        stmt = stmt.order_by(model.submitted_at, model.id)
        return [
            PendingItem(
                item_type=PendingItemType.FORM,
                item_id=form.id,
                kind=kind.value,
                student_id=student.id,
                student_name=student.full_name,
                student_department=student.department,
                application_id=student.application_id,
                slot_key=slot_role.value,
                submitted_at=form.submitted_at,
            )
            for form, student in self.session.execute(stmt).all()
        ]

    # ------------------------------------------------------------------
    # Signed by a staff member
    # ------------------------------------------------------------------

    def approved_by(self, staff_id: UUID) -> list[ApprovedItem]:
        """Every form slot stamped with ``staff_id``, oldest first."""
        items: list[ApprovedItem] = []

        for role, (id_col, at_col, comments_col) in _DUAL_SIGNERS.items():
            rows = self.session.execute(
                select(NewClearanceForm.id, NewClearanceForm.student_id, at_col, comments_col)
                .where(id_col == staff_id, _DUAL_FLAGS[role].is_(True))
            ).all()
            items.extend(
                ApprovedItem(
                    item_type=PendingItemType.FORM,
                    item_id=form_id,
                    kind=FormKind.NEW_CLEARANCE.value,
                    student_id=student_id,
                    slot_key=role.value,
                    approved_at=approved_at,
                    comments=comments,
                )
                for form_id, student_id, approved_at, comments in rows
            )

        rows = self.session.execute(
            select(ProvAdmissionForm.id, ProvAdmissionForm.student_id, ProvAdmissionApproval)
            .join(ProvAdmissionApproval, ProvAdmissionApproval.form_id == ProvAdmissionForm.id)
            .where(
                ProvAdmissionApproval.staff_id == staff_id,
                ProvAdmissionApproval.approved.is_(True),
            )
        ).all()
        items.extend(
            ApprovedItem(
                item_type=PendingItemType.FORM,
                item_id=form_id,
                kind=FormKind.PROV_ADMISSION.value,
                student_id=student_id,
                slot_key=slot.staff_role,
                approved_at=slot.approved_at,
                comments=slot.comments,
            )
            for form_id, student_id, slot in rows
        )

        for kind in ALL_FORM_KINDS:
            descriptor = descriptor_for(kind)
            if descriptor.topology != ApprovalTopology.SINGLE:
                continue
            model = model_for(kind)
            forms = self.session.execute(
                select(model).where(
                    model.approved_by_id == staff_id, model.approved.is_(True),
                )
            ).scalars()
            items.extend(
                ApprovedItem(
                    item_type=PendingItemType.FORM,
                    item_id=form.id,
                    kind=kind.value,
                    student_id=form.student_id,
                    slot_key=descriptor.owner_role.value,
                    approved_at=form.approved_at,
                    comments=form.approval_comments,
                )
                for form in forms
            )

        items.sort(key=lambda i: (i.approved_at is None, i.approved_at, str(i.item_id)))
        return items

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    def count_submitted(self) -> dict[FormKind, int]:
        return {
            kind: self._count(kind, model_for(kind).submitted.is_(True))
            for kind in ALL_FORM_KINDS
        }

    def count_approved(self) -> dict[FormKind, int]:
        return {
            kind: self._count(kind, model_for(kind).approved.is_(True))
            for kind in ALL_FORM_KINDS
        }

    def _count(self, kind: FormKind, criterion) -> int:
        model = model_for(kind)
        return self.session.execute(
            select(func.count(model.id)).where(criterion)
        ).scalar_one()
