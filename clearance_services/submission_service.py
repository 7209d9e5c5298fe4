"""
clearance_services.submission_service -- Submission Gate.

Responsibility:
    Accept a student's form submission: authorize the actor, parse the
    payload into the kind's closed struct, enforce the NewClearance gate,
    create or complete the form row (seeding approval-set slots on
    creation), then notify the routed staff member and the audit ledger.

Architecture position:
    Services layer.  Gate evaluation is delegated to
    ``clearance_engines.approval.gate_satisfied``.

Invariants enforced:
    - Gated kinds are only newly submitted once NewClearance exists with
      both fixed approvals; the gate is checked at submission time only.
    - A submitted form is never updated through this path: a second
      submit raises AlreadySubmittedError, every time.
    - One form per kind per student: the insert runs in a SAVEPOINT and a
      concurrent winner on the unique student_id surfaces as
      AlreadySubmittedError.
    - Approval-set slots are seeded only when the row is created.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clearance_engines.approval import gate_satisfied
from clearance_kernel.domain.clock import Clock, SystemClock
from clearance_kernel.domain.dtos import SubmitResult
from clearance_kernel.domain.forms import (
    APPROVAL_SET_ROLES,
    ApprovalTopology,
    FormKind,
    descriptor_for,
)
from clearance_kernel.domain.payloads import parse_payload, payload_columns
from clearance_kernel.domain.roles import Principal, RoleTable
from clearance_kernel.domain.values import AuditAction
from clearance_kernel.exceptions import (
    AlreadySubmittedError,
    GateNotSatisfiedError,
    InvalidFormPayloadError,
    StudentNotFoundError,
    UnauthorizedError,
)
from clearance_kernel.logging_config import LogContext, get_logger
from clearance_kernel.models.forms import ProvAdmissionApproval, model_for
from clearance_kernel.selectors.form_selector import FormSelector
from clearance_kernel.selectors.user_selector import UserSelector
from clearance_kernel.services.audit_service import AuditDispatcher
from clearance_kernel.services.notification_service import NotificationDispatcher
from clearance_services.notification_routing import NotificationRouter, audit_subject_key

logger = get_logger("services.submission")


class FormSubmissionService:

    def __init__(
        self,
        session: Session,
        role_table: RoleTable,
        notifications: NotificationDispatcher,
        audit: AuditDispatcher,
        clock: Clock | None = None,
    ):
        self._session = session
        self._notifications = notifications
        self._audit = audit
        self._clock = clock or SystemClock()
        self._users = UserSelector(session)
        self._forms = FormSelector(session)
        self._router = NotificationRouter(self._users, role_table)

    def submit(
        self,
        form_kind: FormKind | str,
        actor: Principal,
        payload: Mapping[str, Any] | None,
        student_id: UUID | None = None,
    ) -> SubmitResult:
        """
        Submit a form of ``form_kind`` for a student.

        Students submit for themselves (``student_id`` may be omitted);
        admins must name the student they act for.

        Raises:
            InvalidFormPayloadError: unknown kind or payload field errors.
            UnauthorizedError: staff actor, or a student acting for
                someone else.
            StudentNotFoundError: the target student does not exist.
            GateNotSatisfiedError: NewClearance not fully approved.
            AlreadySubmittedError: the kind is already submitted.
        """
        try:
            kind = FormKind(form_kind)
        except ValueError:
            raise InvalidFormPayloadError(
                str(form_kind), [{"field": "form_kind", "message": "unknown form kind"}],
            ) from None

        target_id = self._authorize(actor, student_id)
        student = self._users.get_principal(target_id)
        if student is None or not student.is_student:
            raise StudentNotFoundError(str(target_id))

        parsed = parse_payload(kind, payload)
        descriptor = descriptor_for(kind)

        with LogContext.bind(actor_id=str(actor.principal_id), student_id=str(target_id)):
            if descriptor.gated and not gate_satisfied(
                self._forms.snapshot(FormKind.NEW_CLEARANCE, target_id)
            ):
                logger.info("form_submission_gated", extra={"form_kind": kind.value})
                raise GateNotSatisfiedError(kind.value, str(target_id))

            model = model_for(kind)
            existing = self._session.execute(
                select(model).where(model.student_id == target_id).with_for_update()
            ).scalar_one_or_none()
            if existing is not None and existing.submitted:
                raise AlreadySubmittedError(kind.value, str(target_id))

            now = self._clock.now()
            columns = payload_columns(parsed)

            if existing is None:
                form = model(
                    student_id=target_id,
                    submitted=True,
                    submitted_at=now,
                    approved=False,
                    updated_at=now,
                    **columns,
                )
                if descriptor.topology == ApprovalTopology.APPROVAL_SET:
                    form.approvals = [
                        ProvAdmissionApproval(position=i, staff_role=role.value, approved=False)
                        for i, role in enumerate(APPROVAL_SET_ROLES)
                    ]
                try:
                    with self._session.begin_nested():
                        self._session.add(form)
                        self._session.flush()
                except IntegrityError:
                    logger.info("form_submission_race_lost", extra={"form_kind": kind.value})
                    raise AlreadySubmittedError(kind.value, str(target_id)) from None
            else:
                form = existing
                for name, value in columns.items():
                    setattr(form, name, value)
                form.submitted = True
                form.submitted_at = now
                form.updated_at = now
                self._session.flush()

            logger.info(
                "form_submitted",
                extra={
                    "form_kind": kind.value,
                    "form_id": str(form.id),
                    "form_created": existing is None,
                },
            )

            recipient = self._router.submission_recipient(descriptor, student)
            if recipient is not None:
                self._notifications.dispatch(
                    NotificationRouter.form_submitted(recipient.principal_id, descriptor, student)
                )
            else:
                logger.info("submission_recipient_not_found", extra={"form_kind": kind.value})

            self._audit.dispatch(
                audit_subject_key(student),
                AuditAction.FORM_SUBMITTED,
                {"form_kind": kind.value, "form_id": str(form.id), "student_id": str(target_id)},
            )

        return SubmitResult(
            form_id=form.id,
            form_kind=kind,
            student_id=target_id,
            submitted_at=now,
            created=existing is None,
        )

    @staticmethod
    def _authorize(actor: Principal, student_id: UUID | None) -> UUID:
        if actor.is_student:
            if student_id is not None and student_id != actor.principal_id:
                raise UnauthorizedError(
                    str(actor.principal_id), "students may only submit their own forms",
                )
            return actor.principal_id
        if actor.is_admin:
            if student_id is None:
                raise UnauthorizedError(
                    str(actor.principal_id), "admins must name the student they submit for",
                )
            return student_id
        raise UnauthorizedError(str(actor.principal_id), "only students may submit forms")
