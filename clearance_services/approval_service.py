"""
clearance_services.approval_service -- Approval Engine shell.

Responsibility:
    Validate authority, stamp one approval slot on a locked form, persist
    the recomputed state, then fan out notifications, the audit record and
    the clearance completion check.

Architecture position:
    Services layer.  Thin coordinator: slot validation, authority and the
    stamp itself are delegated to ``clearance_engines.approval``; the ORM
    row is only loaded, converted to a snapshot and written back.

Invariants enforced:
    - Precondition order: actor kind, form existence, slot key, authority.
    - The form row is read ``FOR UPDATE`` and written under its
      ``version_id_col``; a concurrent writer surfaces as
      OptimisticLockError instead of a lost approval.
    - Side effects never change the outcome: notifications and audit are
      best effort, and the completion post-step runs in a SAVEPOINT whose
      failure is logged and discarded.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from clearance_engines.approval import can_approve, resolve_slot, stamp_slot
from clearance_kernel.domain.clock import Clock, SystemClock
from clearance_kernel.domain.dtos import ApprovalOutcome, ApprovalResult
from clearance_kernel.domain.forms import (
    ApprovalTopology,
    FormDescriptor,
    FormKind,
    descriptor_for,
)
from clearance_kernel.domain.roles import ApprovalRole, Principal, RoleTable
from clearance_kernel.domain.values import AuditAction
from clearance_kernel.exceptions import (
    FormNotFoundError,
    InvalidApprovalTypeError,
    OptimisticLockError,
    StudentNotFoundError,
    UnauthorizedError,
)
from clearance_kernel.logging_config import LogContext, get_logger
from clearance_kernel.models.forms import model_for
from clearance_kernel.selectors.user_selector import UserSelector
from clearance_kernel.services.audit_service import AuditDispatcher
from clearance_kernel.services.notification_service import NotificationDispatcher
from clearance_services.completion_service import CompletionService
from clearance_services.notification_routing import NotificationRouter, audit_subject_key

logger = get_logger("services.approval")


class ApprovalService:

    def __init__(
        self,
        session: Session,
        role_table: RoleTable,
        notifications: NotificationDispatcher,
        audit: AuditDispatcher,
        completion: CompletionService,
        clock: Clock | None = None,
    ):
        self._session = session
        self._role_table = role_table
        self._notifications = notifications
        self._audit = audit
        self._completion = completion
        self._clock = clock or SystemClock()
        self._users = UserSelector(session)
        self._router = NotificationRouter(self._users, role_table)

    def approve(
        self,
        form_id: UUID,
        form_kind: FormKind | str,
        actor: Principal,
        slot_key: str | None = None,
        comments: str | None = None,
    ) -> ApprovalResult:
        """
        Stamp ``slot_key`` on form ``form_id`` as ``actor``.

        Raises:
            UnauthorizedError: actor is not staff/admin, or does not own
                the slot / cover the student's department.
            FormNotFoundError: no form of that kind with that id.
            InvalidApprovalTypeError: slot key not part of the topology.
            StudentNotFoundError: the form's student row is gone.
            OptimisticLockError: a concurrent transaction changed the form.
        """
        if not (actor.is_staff or actor.is_admin):
            raise UnauthorizedError(str(actor.principal_id), "only staff or admins may approve forms")

        try:
            kind = FormKind(form_kind)
        except ValueError:
            raise FormNotFoundError(str(form_kind), str(form_id)) from None

        model = model_for(kind)
        form = self._session.execute(
            select(model).where(model.id == form_id).with_for_update()
        ).scalar_one_or_none()
        if form is None:
            raise FormNotFoundError(kind.value, str(form_id))

        descriptor = descriptor_for(kind)
        slot_role = resolve_slot(descriptor, slot_key)
        if slot_role is None:
            raise InvalidApprovalTypeError(kind.value, slot_key, descriptor.valid_slot_keys)

        student = self._users.get_principal(form.student_id)
        if student is None:
            raise StudentNotFoundError(str(form.student_id))
        resolved = self._role_table.resolve_principal(actor)
        if not can_approve(actor, resolved, slot_role, student.department):
            raise UnauthorizedError(
                str(actor.principal_id),
                f"cannot approve the {slot_role.value} slot of {kind.value} "
                f"for a student in {student.department!r}",
            )

        with LogContext.bind(
            actor_id=str(actor.principal_id),
            student_id=str(student.principal_id),
            form_id=str(form_id),
        ):
            now = self._clock.now()
            outcome = stamp_slot(
                form.to_snapshot(),
                slot_role=slot_role,
                staff_id=actor.principal_id,
                at=now,
                comments=comments,
            )
            form.apply_snapshot(outcome.snapshot)
            form.updated_at = now
            try:
                self._session.flush()
            except StaleDataError:
                logger.warning(
                    "form_approval_conflict",
                    extra={"form_kind": kind.value, "slot_key": slot_role.value},
                )
                raise OptimisticLockError(model.__name__, str(form_id)) from None

            logger.info(
                "form_slot_approved",
                extra={
                    "form_kind": kind.value,
                    "slot_key": slot_role.value,
                    "restamp": outcome.was_approved,
                    "overall_approved": outcome.overall_approved,
                    "newly_approved": outcome.newly_approved,
                    "next_pending_role": outcome.next_pending_role,
                },
            )

            self._notify(descriptor, outcome, student, slot_role)
            self._audit.dispatch(
                audit_subject_key(student),
                AuditAction.FORM_APPROVED,
                {
                    "form_kind": kind.value,
                    "form_id": str(form_id),
                    "slot_key": slot_role.value,
                    "staff_id": str(actor.principal_id),
                    "overall_approved": outcome.overall_approved,
                },
            )
            self._run_completion_check(student.principal_id)

        snapshot = outcome.snapshot
        return ApprovalResult(
            form_id=snapshot.form_id,
            form_kind=kind,
            student_id=snapshot.student_id,
            slot_key=slot_role.value,
            approved=snapshot.approved,
            newly_approved=outcome.newly_approved,
            approved_at=snapshot.approved_at,
            next_pending_role=outcome.next_pending_role,
            slots=snapshot.slots,
        )

    def _notify(
        self,
        descriptor: FormDescriptor,
        outcome: ApprovalOutcome,
        student: Principal,
        slot_role: ApprovalRole,
    ) -> None:
        if outcome.newly_approved:
            self._notifications.dispatch(
                NotificationRouter.form_fully_approved(student.principal_id, descriptor)
            )
        elif not outcome.overall_approved:
            self._notifications.dispatch(
                NotificationRouter.form_partially_approved(
                    student.principal_id, descriptor, slot_role,
                )
            )

        if outcome.overall_approved:
            return

        recipient = None
        if descriptor.topology == ApprovalTopology.DUAL:
            if slot_role != ApprovalRole.DEPUTY_REGISTRAR or outcome.was_approved:
                return
            recipient = self._router.dual_handoff_recipient(student)
        elif descriptor.topology == ApprovalTopology.APPROVAL_SET:
            if outcome.next_pending_role is not None:
                recipient = self._router.next_role_recipient(
                    ApprovalRole(outcome.next_pending_role), student,
                )
        else:
            return

        if recipient is None:
            logger.info(
                "next_reviewer_not_found",
                extra={
                    "form_kind": descriptor.kind.value,
                    "next_pending_role": outcome.next_pending_role,
                },
            )
            return

        self._notifications.dispatch(
            NotificationRouter.form_needs_review(
                recipient.principal_id, descriptor, student, slot_role,
            )
        )

    def _run_completion_check(self, student_id: UUID) -> None:
        try:
            with self._session.begin_nested():
                self._completion.finalize_if_complete(student_id)
        except Exception:
            logger.exception(
                "clearance_completion_check_failed",
                extra={"student_id": str(student_id)},
            )
