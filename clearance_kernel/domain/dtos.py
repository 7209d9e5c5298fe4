"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable structures that flow between the ORM boundary, the pure
    engines and the service facade: form snapshots and their approval
    slots, operation results, pending items, clearance status, documents,
    notification drafts/records, audit receipts and dashboard counters.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  ORM models build
    these through ``to_dto()``; engines accept and return only these.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from clearance_kernel.domain.forms import FormKind
from clearance_kernel.domain.values import (
    DocumentStatus,
    DocumentType,
    NotificationCategory,
    NotificationStatus,
)


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ApprovalSlot:
    """One named approval unit within a form."""

    role: str
    approved: bool = False
    staff_id: UUID | None = None
    approved_at: datetime | None = None
    comments: str | None = None
    position: int = 0

    def stamped(
        self,
        staff_id: UUID,
        at: datetime,
        comments: str | None = None,
    ) -> ApprovalSlot:
        return replace(
            self, approved=True, staff_id=staff_id, approved_at=at, comments=comments
        )


@dataclass(frozen=True)
class FormSnapshot:
    """
    Approval state of one form instance.

    ``slots`` are ordered: dual forms list deputyRegistrar then
    schoolOfficer, approval-set forms list the seeded roles by position,
    single forms carry exactly one slot for the owning role.
    """

    form_id: UUID
    kind: FormKind
    student_id: UUID
    submitted: bool
    submitted_at: datetime | None
    approved: bool
    approved_at: datetime | None
    slots: tuple[ApprovalSlot, ...] = ()
    version: int = 1

    def slot(self, role: str) -> ApprovalSlot | None:
        for s in self.slots:
            if s.role == role:
                return s
        return None


@dataclass(frozen=True)
class ApprovalOutcome:
    """Pure result of stamping one slot on a snapshot."""

    snapshot: FormSnapshot
    slot_role: str
    was_approved: bool
    newly_approved: bool
    next_pending_role: str | None

    @property
    def overall_approved(self) -> bool:
        return self.snapshot.approved


@dataclass(frozen=True)
class ApprovalResult:
    form_id: UUID
    form_kind: FormKind
    student_id: UUID
    slot_key: str
    approved: bool
    newly_approved: bool
    approved_at: datetime | None
    next_pending_role: str | None
    slots: tuple[ApprovalSlot, ...]


@dataclass(frozen=True)
class SubmitResult:
    form_id: UUID
    form_kind: FormKind
    student_id: UUID
    submitted_at: datetime
    created: bool


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DocumentRecord:
    document_id: UUID
    owner_id: UUID
    document_type: DocumentType
    status: DocumentStatus
    title: str
    description: str | None = None
    feedback: str | None = None
    reviewed_by_id: UUID | None = None
    reviewed_at: datetime | None = None
    content_hash: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class DocumentTypeStatus:
    """Per-type summary used by the clearance status."""

    document_type: DocumentType
    uploaded: bool
    approved: bool
    status: str
    document_id: UUID | None = None
    uploaded_at: datetime | None = None
    approved_at: datetime | None = None


# ---------------------------------------------------------------------------
# Clearance
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FormSummary:
    kind: FormKind
    exists: bool
    submitted: bool
    approved: bool
    submitted_at: datetime | None = None
    approved_at: datetime | None = None
    slots: tuple[ApprovalSlot, ...] = ()


@dataclass(frozen=True)
class ClearanceStatus:
    student_id: UUID
    forms: dict[FormKind, FormSummary]
    documents: dict[DocumentType, DocumentTypeStatus]
    all_forms_submitted: bool
    all_forms_approved: bool
    all_documents_approved: bool
    clearance_complete: bool
    total_forms: int
    submitted_forms: int
    approved_forms: int
    total_documents: int
    uploaded_documents: int
    approved_documents: int
    completion_percentage: int
    completed_at: datetime | None = None


# ---------------------------------------------------------------------------
# Pending / dashboards
# ---------------------------------------------------------------------------


class PendingItemType(str, Enum):
    FORM = "form"
    DOCUMENT = "document"


@dataclass(frozen=True)
class PendingItem:
    """
    One form slot or document waiting for the querying staff member.

    ``kind`` is the form kind value or the document type value.
    """

    item_type: PendingItemType
    item_id: UUID
    kind: str
    student_id: UUID
    student_name: str | None = None
    student_department: str | None = None
    application_id: str | None = None
    slot_key: str | None = None
    submitted_at: datetime | None = None

    @property
    def key(self) -> tuple[PendingItemType, UUID]:
        return (self.item_type, self.item_id)


@dataclass(frozen=True)
class ApprovedItem:
    """A form slot or document review signed by a given staff member."""

    item_type: PendingItemType
    item_id: UUID
    kind: str
    student_id: UUID
    slot_key: str | None
    approved_at: datetime | None
    comments: str | None = None


@dataclass(frozen=True)
class ApprovalCounts:
    forms: int = 0
    documents: int = 0


@dataclass(frozen=True)
class DashboardStats:
    staff_id: UUID
    role: str | None
    pending: ApprovalCounts
    completed: ApprovalCounts
    students_under_authority: int


@dataclass(frozen=True)
class AdminOverview:
    total_students: int
    total_staff: int
    total_admins: int
    documents_by_status: dict[str, int]
    forms_submitted: dict[FormKind, int]
    forms_approved: dict[FormKind, int]
    cleared_students: int
    students_by_department: dict[str, int]


# ---------------------------------------------------------------------------
# Notifications / audit
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NotificationDraft:
    """A notification to be persisted by the sink; fields stored verbatim."""

    recipient_id: UUID
    title: str
    description: str
    status: NotificationStatus = NotificationStatus.INFO
    category: NotificationCategory = NotificationCategory.GENERAL
    related_document_id: UUID | None = None


@dataclass(frozen=True)
class NotificationRecord:
    notification_id: UUID
    recipient_id: UUID
    title: str
    description: str
    status: NotificationStatus
    category: NotificationCategory
    is_read: bool
    created_at: datetime
    related_document_id: UUID | None = None


@dataclass(frozen=True)
class AuditReceipt:
    transaction_ref: str
    block_number: int | None = None


@dataclass(frozen=True)
class AuditRecord:
    """An action handed to the audit collaborator."""

    subject_key: str
    action: str
    details: dict[str, Any] = field(default_factory=dict)
