"""
clearance_services.engine -- the ClearanceEngine facade.

Responsibility:
    Creates every clearance service exactly once for a session and exposes
    the operations the HTTP layer calls: submission, approval, pending
    queues, clearance status, document review, the notification inbox and
    the user directory.

Architecture position:
    Services -- top of the service layer.  This is the only place where
    services are constructed and wired together.

Usage:
    from clearance_config import get_active_config
    from clearance_config.bridges import build_audit_dispatcher
    from clearance_kernel.db.engine import session_scope
    from clearance_services import ClearanceEngine

    config = get_active_config()
    audit = build_audit_dispatcher(config, ledger)   # once per process

    with session_scope() as session:
        engine = ClearanceEngine.from_config(session, config, audit=audit)
        engine.submit(FormKind.NEW_CLEARANCE, student, payload)

Non-goals:
    - Does NOT manage transaction boundaries (caller's responsibility).
    - Does NOT own the audit dispatcher's worker pool; the caller shuts
      it down.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from clearance_config.bridges import build_document_routing, build_role_table
from clearance_config.schema import ClearanceConfig
from clearance_kernel.domain.clock import Clock, SystemClock
from clearance_kernel.domain.dtos import (
    AdminOverview,
    ApprovalResult,
    ApprovedItem,
    ClearanceStatus,
    DashboardStats,
    DocumentRecord,
    NotificationRecord,
    PendingItem,
    SubmitResult,
)
from clearance_kernel.domain.forms import FormKind
from clearance_kernel.domain.roles import ApprovalRole, Principal, RoleTable
from clearance_kernel.domain.values import DocumentStatus, DocumentType
from clearance_kernel.selectors.notification_selector import NotificationSelector
from clearance_kernel.services.audit_service import AuditDispatcher
from clearance_kernel.services.directory_service import UserDirectory
from clearance_kernel.services.notification_service import (
    NotificationDispatcher,
    NotificationService,
    NotificationSink,
)
from clearance_services.approval_service import ApprovalService
from clearance_services.completion_service import CompletionService
from clearance_services.document_service import DocumentService
from clearance_services.pending_service import PendingQueryService
from clearance_services.submission_service import FormSubmissionService


class ClearanceEngine:
    """Facade over the clearance services for one session.

    Contract:
        All services share the same Session, Clock, RoleTable and side
        effect dispatchers.  When no audit dispatcher is given, audit
        records are skipped (logged at debug level).
    """

    def __init__(
        self,
        session: Session,
        role_table: RoleTable,
        document_routing: Mapping[DocumentType, ApprovalRole],
        audit: AuditDispatcher | None = None,
        notification_sink: NotificationSink | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._session = session
        self._clock = clock or SystemClock()
        self.role_table = role_table
        self.document_routing = dict(document_routing)
        self.audit = audit if audit is not None else AuditDispatcher(None)

        self.notifications = NotificationDispatcher(session, notification_sink, self._clock)
        self.directory = UserDirectory(session, self._clock, self.audit)
        self.completion = CompletionService(
            session, self.notifications, self.audit, self._clock,
        )
        self.submissions = FormSubmissionService(
            session, role_table, self.notifications, self.audit, self._clock,
        )
        self.approvals = ApprovalService(
            session, role_table, self.notifications, self.audit, self.completion, self._clock,
        )
        self.documents = DocumentService(
            session,
            role_table,
            self.document_routing,
            self.notifications,
            self.audit,
            self.completion,
            self._clock,
        )
        self.pending = PendingQueryService(session, role_table, self.document_routing)
        self.inbox = NotificationService(session)
        self._inbox_reads = NotificationSelector(session)

    @classmethod
    def from_config(
        cls,
        session: Session,
        config: ClearanceConfig,
        audit: AuditDispatcher | None = None,
        notification_sink: NotificationSink | None = None,
        clock: Clock | None = None,
    ) -> ClearanceEngine:
        return cls(
            session,
            build_role_table(config),
            build_document_routing(config),
            audit=audit,
            notification_sink=notification_sink,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Forms
    # ------------------------------------------------------------------

    def submit(
        self,
        form_kind: FormKind | str,
        actor: Principal,
        payload: Mapping[str, Any] | None,
        student_id: UUID | None = None,
    ) -> SubmitResult:
        return self.submissions.submit(form_kind, actor, payload, student_id)

    def approve(
        self,
        form_id: UUID,
        form_kind: FormKind | str,
        actor: Principal,
        slot_key: str | None = None,
        comments: str | None = None,
    ) -> ApprovalResult:
        return self.approvals.approve(form_id, form_kind, actor, slot_key, comments)

    # ------------------------------------------------------------------
    # Queues and dashboards
    # ------------------------------------------------------------------

    def pending_for(self, staff: Principal) -> list[PendingItem]:
        return self.pending.pending_for(staff)

    def approved_by(self, staff: Principal) -> list[ApprovedItem]:
        return self.pending.approved_by(staff)

    def dashboard_stats(self, staff: Principal) -> DashboardStats:
        return self.pending.dashboard_stats(staff)

    def admin_overview(self) -> AdminOverview:
        return self.pending.admin_overview()

    # ------------------------------------------------------------------
    # Clearance
    # ------------------------------------------------------------------

    def status(self, student_id: UUID) -> ClearanceStatus:
        return self.completion.status(student_id)

    def finalize_if_complete(self, student_id: UUID) -> bool:
        return self.completion.finalize_if_complete(student_id)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def upload_document(
        self,
        student: Principal,
        document_type: DocumentType | str,
        title: str,
        description: str | None = None,
        content_hash: str | None = None,
    ) -> DocumentRecord:
        return self.documents.upload(student, document_type, title, description, content_hash)

    def review_document(
        self,
        document_id: UUID,
        staff: Principal,
        status: DocumentStatus | str,
        feedback: str | None = None,
    ) -> DocumentRecord:
        return self.documents.review(document_id, staff, status, feedback)

    # ------------------------------------------------------------------
    # Notification inbox
    # ------------------------------------------------------------------

    def notifications_for(
        self,
        recipient: Principal,
        limit: int | None = None,
        unread_only: bool = False,
    ) -> list[NotificationRecord]:
        return self._inbox_reads.for_recipient(recipient.principal_id, limit, unread_only)

    def unread_count(self, recipient: Principal) -> int:
        return self._inbox_reads.unread_count(recipient.principal_id)

    def toggle_read(self, notification_id: UUID, recipient: Principal) -> NotificationRecord:
        return self.inbox.toggle_read(notification_id, recipient.principal_id)

    def mark_all_read(self, recipient: Principal) -> int:
        return self.inbox.mark_all_read(recipient.principal_id)

    # ------------------------------------------------------------------
    # Directory
    # ------------------------------------------------------------------

    def register_student(
        self, full_name: str, email: str, department: str, application_id: str,
    ) -> Principal:
        return self.directory.register_student(full_name, email, department, application_id)

    def register_staff(
        self,
        full_name: str,
        email: str,
        department: str,
        staff_number: str,
        managed_departments: Iterable[str] | None = None,
    ) -> Principal:
        return self.directory.register_staff(
            full_name, email, department, staff_number, managed_departments,
        )

    def register_admin(self, full_name: str, email: str) -> Principal:
        return self.directory.register_admin(full_name, email)

    def principal_for(self, user_id: UUID) -> Principal | None:
        return self.directory.principal_for(user_id)

    def require_student(self, student_id: UUID) -> Principal:
        return self.directory.require_student(student_id)

    def require_staff(self, staff_id: UUID) -> Principal:
        return self.directory.require_staff(staff_id)

    def students_under_authority(self, staff: Principal) -> list[UUID]:
        return self.directory.students_under_authority(staff, self.role_table)
