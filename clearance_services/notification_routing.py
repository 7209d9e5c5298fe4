"""
clearance_services.notification_routing -- who hears about what.

Responsibility:
    Resolve the single staff recipient for each routed notification
    (submission, dual-form handoff, next approval-set role, document
    upload) and compose the notification drafts.

Architecture position:
    Services layer.  Reads users through ``UserSelector``; role <->
    department mapping comes from the injected ``RoleTable``.

First match:
    Every routed notification goes to exactly one staff member, the
    lowest staff number among the candidates.  No candidate means no
    notification; that is logged, not raised.
"""

from __future__ import annotations

from uuid import UUID

from clearance_kernel.domain.dtos import NotificationDraft
from clearance_kernel.domain.forms import FormDescriptor
from clearance_kernel.domain.roles import ApprovalRole, Principal, RoleTable
from clearance_kernel.domain.values import (
    DocumentStatus,
    DocumentType,
    NotificationCategory,
    NotificationStatus,
)
from clearance_kernel.selectors.user_selector import UserSelector


FORM_SUBMITTED_TITLE = "New Form Submitted"
FORM_NEEDS_REVIEW_TITLE = "Form Needs Your Review"
FORM_FULLY_APPROVED_TITLE = "Form Fully Approved"
FORM_PARTIALLY_APPROVED_TITLE = "Form Partially Approved"
DOCUMENT_UPLOADED_TITLE = "New Document Uploaded"
DOCUMENT_APPROVED_TITLE = "Document Approved"
DOCUMENT_REJECTED_TITLE = "Document Rejected"
CLEARANCE_COMPLETED_TITLE = "Clearance Process Completed"

_ROLE_LABELS = {
    ApprovalRole.DEPUTY_REGISTRAR: "Deputy Registrar",
    ApprovalRole.SCHOOL_OFFICER: "School Officer",
    ApprovalRole.DEPARTMENT_HEAD: "Head of Department",
    ApprovalRole.STUDENT_SUPPORT: "Student Support",
    ApprovalRole.FINANCE: "Finance",
    ApprovalRole.LIBRARY: "Library",
    ApprovalRole.HEALTH: "Health Services",
    ApprovalRole.LEGAL: "Legal",
}


def role_label(role: ApprovalRole | str) -> str:
    return _ROLE_LABELS.get(ApprovalRole(role), str(role))


class NotificationRouter:
    """Recipient lookup plus draft composition."""

    def __init__(self, users: UserSelector, role_table: RoleTable):
        self._users = users
        self._role_table = role_table

    # ------------------------------------------------------------------
    # Recipients
    # ------------------------------------------------------------------

    def submission_recipient(
        self, descriptor: FormDescriptor, student: Principal,
    ) -> Principal | None:
        """Submission department of the kind, or the student's own department."""
        department = descriptor.submission_department or student.department
        if not department:
            return None
        return self._users.first_staff_in_department(department)

    def dual_handoff_recipient(self, student: Principal) -> Principal | None:
        """The School Officer covering the student, once the Registrar has signed."""
        return self._users.first_staff_with_role(
            ApprovalRole.SCHOOL_OFFICER, student.department, self._role_table,
        )

    def next_role_recipient(
        self, role: ApprovalRole, student: Principal,
    ) -> Principal | None:
        """
        Staff member holding the next pending approval-set role.

        schoolOfficer is looked up in the School Officer department among
        staff managing the student's department; other roles through the
        inverse role table.
        """
        if role == ApprovalRole.SCHOOL_OFFICER:
            if not student.department:
                return None
            return self._users.first_staff_in_department(
                self._role_table.school_officer_department,
                managing=student.department,
            )
        return self._users.first_staff_with_role(role, student.department, self._role_table)

    def document_reviewer(
        self, role: ApprovalRole | None, student: Principal,
    ) -> Principal | None:
        if role is None:
            return None
        return self._users.first_staff_with_role(role, student.department, self._role_table)

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------

    @staticmethod
    def form_submitted(
        recipient_id: UUID, descriptor: FormDescriptor, student: Principal,
    ) -> NotificationDraft:
        return NotificationDraft(
            recipient_id=recipient_id,
            title=FORM_SUBMITTED_TITLE,
            description=(
                f"{student.full_name or 'A student'} submitted the {descriptor.title}."
            ),
            status=NotificationStatus.INFO,
            category=NotificationCategory.FORM_SUBMISSION,
        )

    @staticmethod
    def form_needs_review(
        recipient_id: UUID, descriptor: FormDescriptor, student: Principal,
        previous_role: ApprovalRole,
    ) -> NotificationDraft:
        return NotificationDraft(
            recipient_id=recipient_id,
            title=FORM_NEEDS_REVIEW_TITLE,
            description=(
                f"The {descriptor.title} of {student.full_name or 'a student'} was "
                f"approved by {role_label(previous_role)} and awaits your review."
            ),
            status=NotificationStatus.INFO,
            category=NotificationCategory.FORM_APPROVAL,
        )

    @staticmethod
    def form_fully_approved(student_id: UUID, descriptor: FormDescriptor) -> NotificationDraft:
        return NotificationDraft(
            recipient_id=student_id,
            title=FORM_FULLY_APPROVED_TITLE,
            description=f"Your {descriptor.title} has been fully approved.",
            status=NotificationStatus.SUCCESS,
            category=NotificationCategory.FORM_APPROVAL,
        )

    @staticmethod
    def form_partially_approved(
        student_id: UUID, descriptor: FormDescriptor, role: ApprovalRole,
    ) -> NotificationDraft:
        return NotificationDraft(
            recipient_id=student_id,
            title=FORM_PARTIALLY_APPROVED_TITLE,
            description=(
                f"Your {descriptor.title} was approved by {role_label(role)}. "
                "Further approvals are pending."
            ),
            status=NotificationStatus.INFO,
            category=NotificationCategory.FORM_APPROVAL,
        )

    @staticmethod
    def document_uploaded(
        recipient_id: UUID, document_type: DocumentType, student: Principal,
        document_id: UUID,
    ) -> NotificationDraft:
        return NotificationDraft(
            recipient_id=recipient_id,
            title=DOCUMENT_UPLOADED_TITLE,
            description=(
                f"{student.full_name or 'A student'} uploaded a "
                f"{DocumentType(document_type).value} for review."
            ),
            status=NotificationStatus.INFO,
            category=NotificationCategory.DOCUMENT_UPLOAD,
            related_document_id=document_id,
        )

    @staticmethod
    def document_reviewed(
        student_id: UUID, document_type: DocumentType, status: DocumentStatus,
        document_id: UUID, feedback: str | None,
    ) -> NotificationDraft:
        approved = status == DocumentStatus.APPROVED
        description = (
            f"Your {DocumentType(document_type).value} has been "
            f"{'approved' if approved else 'rejected'}."
        )
        if feedback:
            description = f"{description} Feedback: {feedback}"
        return NotificationDraft(
            recipient_id=student_id,
            title=DOCUMENT_APPROVED_TITLE if approved else DOCUMENT_REJECTED_TITLE,
            description=description,
            status=NotificationStatus.SUCCESS if approved else NotificationStatus.ERROR,
            category=(
                NotificationCategory.DOCUMENT_APPROVAL
                if approved
                else NotificationCategory.DOCUMENT_REJECTION
            ),
            related_document_id=document_id,
        )

    @staticmethod
    def clearance_completed(student_id: UUID) -> NotificationDraft:
        return NotificationDraft(
            recipient_id=student_id,
            title=CLEARANCE_COMPLETED_TITLE,
            description=(
                "Congratulations! All forms and documents are approved and your "
                "clearance process is complete."
            ),
            status=NotificationStatus.SUCCESS,
            category=NotificationCategory.CLEARANCE_COMPLETION,
        )


def audit_subject_key(student: Principal) -> str:
    """Audit records are keyed by application id, falling back to the student id."""
    return student.application_id or str(student.principal_id)
