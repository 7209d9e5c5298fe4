"""
clearance_services.document_service -- document upload and review.

Responsibility:
    Record a student's uploaded document (the bytes stay with the upload
    collaborator; only their SHA-256 is kept), notify the routed reviewer,
    and apply a reviewer's approve/reject decision.

Architecture position:
    Services layer.  Reviewer routing comes from the configured document
    routing via ``clearance_engines.routing.reviewer_role_for``.

Invariants enforced:
    - Only the closed document types are accepted.
    - A review is final: only pending documents can be reviewed, and only
      to approved or rejected.
    - Reviewers must hold the type's routed role and cover the student's
      department; admins may review anything.
    - A review runs the clearance completion post-step in a SAVEPOINT.
"""

from __future__ import annotations

from collections.abc import Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from clearance_engines.approval import can_approve
from clearance_engines.routing import reviewer_role_for
from clearance_kernel.domain.clock import Clock, SystemClock
from clearance_kernel.domain.dtos import DocumentRecord
from clearance_kernel.domain.roles import ApprovalRole, Principal, RoleTable
from clearance_kernel.domain.values import AuditAction, DocumentStatus, DocumentType
from clearance_kernel.exceptions import (
    DocumentAlreadyReviewedError,
    DocumentNotFoundError,
    InvalidDocumentTypeError,
    InvalidReviewStatusError,
    StudentNotFoundError,
    UnauthorizedError,
)
from clearance_kernel.logging_config import LogContext, get_logger
from clearance_kernel.models.document import Document
from clearance_kernel.selectors.user_selector import UserSelector
from clearance_kernel.services.audit_service import AuditDispatcher
from clearance_kernel.services.notification_service import NotificationDispatcher
from clearance_services.completion_service import CompletionService
from clearance_services.notification_routing import NotificationRouter, audit_subject_key

logger = get_logger("services.document")

_REVIEW_OUTCOMES = (DocumentStatus.APPROVED, DocumentStatus.REJECTED)


class DocumentService:

    def __init__(
        self,
        session: Session,
        role_table: RoleTable,
        document_routing: Mapping[DocumentType, ApprovalRole],
        notifications: NotificationDispatcher,
        audit: AuditDispatcher,
        completion: CompletionService,
        clock: Clock | None = None,
    ):
        self._session = session
        self._role_table = role_table
        self._routing = document_routing
        self._notifications = notifications
        self._audit = audit
        self._completion = completion
        self._clock = clock or SystemClock()
        self._users = UserSelector(session)
        self._router = NotificationRouter(self._users, role_table)

    def upload(
        self,
        student: Principal,
        document_type: DocumentType | str,
        title: str,
        description: str | None = None,
        content_hash: str | None = None,
    ) -> DocumentRecord:
        if not student.is_student:
            raise UnauthorizedError(str(student.principal_id), "only students upload documents")
        try:
            doc_type = DocumentType(document_type)
        except ValueError:
            raise InvalidDocumentTypeError(str(document_type)) from None

        owner = self._users.get_principal(student.principal_id)
        if owner is None or not owner.is_student:
            raise StudentNotFoundError(str(student.principal_id))

        document = Document(
            owner_id=owner.principal_id,
            title=title,
            description=description,
            document_type=doc_type.value,
            status=DocumentStatus.PENDING.value,
            content_hash=content_hash,
            created_at=self._clock.now(),
        )
        self._session.add(document)
        self._session.flush()

        logger.info(
            "document_uploaded",
            extra={
                "student_id": str(owner.principal_id),
                "document_id": str(document.id),
                "document_type": doc_type.value,
            },
        )

        reviewer = self._router.document_reviewer(
            reviewer_role_for(doc_type, self._routing), owner,
        )
        if reviewer is not None:
            self._notifications.dispatch(
                NotificationRouter.document_uploaded(
                    reviewer.principal_id, doc_type, owner, document.id,
                )
            )
        self._audit.dispatch(
            audit_subject_key(owner),
            AuditAction.DOCUMENT_UPLOADED,
            {"document_id": str(document.id), "document_type": doc_type.value},
        )
        return document.to_dto()

    def review(
        self,
        document_id: UUID,
        reviewer: Principal,
        status: DocumentStatus | str,
        feedback: str | None = None,
    ) -> DocumentRecord:
        """
        Approve or reject a pending document.

        Raises:
            UnauthorizedError: reviewer is not staff/admin or not routed
                for the document type.
            InvalidReviewStatusError: status is not approved/rejected.
            DocumentNotFoundError: no such document.
            StudentNotFoundError: the document owner's row is gone.
            DocumentAlreadyReviewedError: the document is not pending.
        """
        if not (reviewer.is_staff or reviewer.is_admin):
            raise UnauthorizedError(
                str(reviewer.principal_id), "only staff or admins may review documents",
            )
        try:
            outcome = DocumentStatus(status)
        except ValueError:
            raise InvalidReviewStatusError(str(status)) from None
        if outcome not in _REVIEW_OUTCOMES:
            raise InvalidReviewStatusError(outcome.value)

        document = self._session.execute(
            select(Document).where(Document.id == document_id).with_for_update()
        ).scalar_one_or_none()
        if document is None:
            raise DocumentNotFoundError(str(document_id))
        if document.status != DocumentStatus.PENDING.value:
            raise DocumentAlreadyReviewedError(str(document_id), document.status)

        owner = self._users.get_principal(document.owner_id)
        if owner is None:
            raise StudentNotFoundError(str(document.owner_id))
        doc_type = DocumentType(document.document_type)
        routed_role = reviewer_role_for(doc_type, self._routing)
        resolved = self._role_table.resolve_principal(reviewer)
        if not reviewer.is_admin and (
            routed_role is None
            or not can_approve(reviewer, resolved, routed_role, owner.department)
        ):
            raise UnauthorizedError(
                str(reviewer.principal_id),
                f"not routed to review {doc_type.value} for a student in {owner.department!r}",
            )

        with LogContext.bind(
            actor_id=str(reviewer.principal_id), student_id=str(owner.principal_id),
        ):
            document.status = outcome.value
            document.feedback = feedback
            document.reviewed_by_id = reviewer.principal_id
            document.reviewed_at = self._clock.now()
            self._session.flush()

            logger.info(
                "document_reviewed",
                extra={
                    "document_id": str(document_id),
                    "document_type": doc_type.value,
                    "review_status": outcome.value,
                },
            )

            self._notifications.dispatch(
                NotificationRouter.document_reviewed(
                    owner.principal_id, doc_type, outcome, document.id, feedback,
                )
            )
            self._audit.dispatch(
                audit_subject_key(owner),
                AuditAction.DOCUMENT_REVIEWED,
                {
                    "document_id": str(document_id),
                    "document_type": doc_type.value,
                    "status": outcome.value,
                    "staff_id": str(reviewer.principal_id),
                },
            )
            self._run_completion_check(owner.principal_id)

        return document.to_dto()

    def _run_completion_check(self, student_id: UUID) -> None:
        try:
            with self._session.begin_nested():
                self._completion.finalize_if_complete(student_id)
        except Exception:
            logger.exception(
                "clearance_completion_check_failed",
                extra={"student_id": str(student_id)},
            )
