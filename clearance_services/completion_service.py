"""
clearance_services.completion_service -- Clearance Aggregator shell.

Responsibility:
    Load a student's forms and documents, evaluate them with the pure
    completion engine, and finalize a completed clearance exactly once.

Architecture position:
    Services layer.  Composes ``FormSelector`` / ``DocumentSelector`` with
    ``clearance_engines.completion``.

Invariants enforced:
    - ``clearance_completed_at`` is write-once.  The completion
      notification and the CLEARANCE_COMPLETED audit record fire only on
      the transition from unset to set; re-running the check after that
      is a no-op.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from clearance_engines.completion import evaluate_clearance
from clearance_kernel.domain.clock import Clock, SystemClock
from clearance_kernel.domain.dtos import ClearanceStatus
from clearance_kernel.domain.roles import PrincipalKind
from clearance_kernel.domain.values import AuditAction
from clearance_kernel.exceptions import StudentNotFoundError
from clearance_kernel.logging_config import get_logger
from clearance_kernel.models.user import User
from clearance_kernel.selectors.document_selector import DocumentSelector
from clearance_kernel.selectors.form_selector import FormSelector
from clearance_kernel.services.audit_service import AuditDispatcher
from clearance_kernel.services.notification_service import NotificationDispatcher
from clearance_services.notification_routing import NotificationRouter, audit_subject_key

logger = get_logger("services.completion")


class CompletionService:

    def __init__(
        self,
        session: Session,
        notifications: NotificationDispatcher,
        audit: AuditDispatcher,
        clock: Clock | None = None,
    ):
        self._session = session
        self._notifications = notifications
        self._audit = audit
        self._clock = clock or SystemClock()
        self._forms = FormSelector(session)
        self._documents = DocumentSelector(session)

    def _student(self, student_id: UUID) -> User:
        student = self._session.get(User, student_id)
        if student is None or student.role != PrincipalKind.STUDENT.value:
            raise StudentNotFoundError(str(student_id))
        return student

    def status(self, student_id: UUID) -> ClearanceStatus:
        student = self._student(student_id)
        return evaluate_clearance(
            student_id=student.id,
            snapshots=self._forms.snapshots_for_student(student.id),
            documents=self._documents.for_student(student.id),
            completed_at=student.clearance_completed_at,
        )

    def finalize_if_complete(self, student_id: UUID) -> bool:
        """
        Stamp and announce a completed clearance.

        Returns True only on the call that performed the transition.
        """
        student = self._session.execute(
            select(User).where(User.id == student_id).with_for_update()
        ).scalar_one_or_none()
        if student is None or student.role != PrincipalKind.STUDENT.value:
            raise StudentNotFoundError(str(student_id))
        if student.clearance_completed_at is not None:
            return False

        status = self.status(student_id)
        if not status.clearance_complete:
            return False

        completed_at = self._clock.now()
        student.clearance_completed_at = completed_at
        self._session.flush()

        logger.info(
            "clearance_completed",
            extra={"student_id": str(student_id), "completed_at": completed_at},
        )

        principal = student.to_principal()
        self._notifications.dispatch(NotificationRouter.clearance_completed(student.id))
        self._audit.dispatch(
            audit_subject_key(principal),
            AuditAction.CLEARANCE_COMPLETED,
            {"student_id": str(student.id), "completed_at": completed_at.isoformat()},
        )
        return True
