"""ORM models. Importing this package registers every table on Base.metadata."""

from clearance_kernel.models.audit_ledger import AuditLedgerEntry
from clearance_kernel.models.document import Document
from clearance_kernel.models.forms import (
    FORM_MODELS,
    AffidavitForm,
    FormBase,
    NewClearanceForm,
    PersonalRecord2Form,
    PersonalRecordForm,
    ProvAdmissionApproval,
    ProvAdmissionForm,
    model_for,
)
from clearance_kernel.models.notification import Notification
from clearance_kernel.models.user import StaffManagedDepartment, User

__all__ = [
    "User",
    "StaffManagedDepartment",
    "FormBase",
    "NewClearanceForm",
    "ProvAdmissionForm",
    "ProvAdmissionApproval",
    "PersonalRecordForm",
    "PersonalRecord2Form",
    "AffidavitForm",
    "FORM_MODELS",
    "model_for",
    "Document",
    "Notification",
    "AuditLedgerEntry",
]
