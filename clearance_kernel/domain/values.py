"""
Value enums shared across the clearance kernel.

Document types and statuses, notification tags, and the action names
written to the audit collaborator.  All are closed sets; anything outside
them is rejected at the boundary.
"""

from __future__ import annotations

from enum import Enum


class DocumentType(str, Enum):
    ADMISSION_LETTER = "Admission Letter"
    JAMB_RESULT = "JAMB Result"
    JAMB_ADMISSION = "JAMB Admission"
    WAEC = "WAEC"
    BIRTH_CERTIFICATE = "Birth Certificate"
    PAYMENT_RECEIPT = "Payment Receipt"
    MEDICAL_REPORT = "Medical Report"
    PASSPORT = "Passport"
    TRANSCRIPT = "Transcript"


# The eight types the completion verdict requires; Transcript is optional.
REQUIRED_DOCUMENT_TYPES: tuple[DocumentType, ...] = (
    DocumentType.ADMISSION_LETTER,
    DocumentType.JAMB_RESULT,
    DocumentType.JAMB_ADMISSION,
    DocumentType.WAEC,
    DocumentType.BIRTH_CERTIFICATE,
    DocumentType.PAYMENT_RECEIPT,
    DocumentType.MEDICAL_REPORT,
    DocumentType.PASSPORT,
)


class DocumentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Reported for a required type with no upload at all.
NOT_UPLOADED = "not_uploaded"


class NotificationStatus(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class NotificationCategory(str, Enum):
    DOCUMENT_APPROVAL = "document_approval"
    DOCUMENT_REJECTION = "document_rejection"
    DOCUMENT_UPLOAD = "document_upload"
    DEADLINE_REMINDER = "deadline_reminder"
    ANNOUNCEMENT = "announcement"
    GENERAL = "general"
    FORM_APPROVAL = "form_approval"
    FORM_SUBMISSION = "form_submission"
    CLEARANCE_COMPLETION = "clearance_completion"


class AuditAction(str, Enum):
    """Action names recorded on the audit collaborator."""

    ACCOUNT_CREATED = "ACCOUNT_CREATED"
    FORM_SUBMITTED = "FORM_SUBMITTED"
    FORM_APPROVED = "FORM_APPROVED"
    DOCUMENT_UPLOADED = "DOCUMENT_UPLOADED"
    DOCUMENT_REVIEWED = "DOCUMENT_REVIEWED"
    CLEARANCE_COMPLETED = "CLEARANCE_COMPLETED"
