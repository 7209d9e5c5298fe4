"""
Typed Exception Hierarchy for the Clearance Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The API layer above the engine maps failures to responses.  It must do so
by TYPE, never by parsing messages:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - WRONG way to handle errors:
    try:
        engine.submit(FormKind.AFFIDAVIT, student, payload)
    except Exception as e:
        if "gate" in str(e):  # FRAGILE - message might change
            ...

Example - RIGHT way (what this module enables):
    try:
        engine.submit(FormKind.AFFIDAVIT, student, payload)
    except GateNotSatisfiedError as e:
        api_response(code=e.code, form_kind=e.form_kind)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ClearanceKernelError:

    ClearanceKernelError (base)
    |
    +-- UnauthorizedError
    |
    +-- NotFoundError
    |   +-- FormNotFoundError
    |   +-- StudentNotFoundError
    |   +-- StaffNotFoundError
    |   +-- DocumentNotFoundError
    |   +-- NotificationNotFoundError
    |
    +-- DuplicateUserError
    |
    +-- ApprovalError
    |   +-- InvalidApprovalTypeError
    |
    +-- SubmissionError
    |   +-- GateNotSatisfiedError
    |   +-- AlreadySubmittedError
    |   +-- InvalidFormPayloadError
    |
    +-- DocumentError
    |   +-- InvalidDocumentTypeError
    |   +-- InvalidReviewStatusError
    |   +-- DocumentAlreadyReviewedError
    |
    +-- CollaboratorUnavailableError
    |
    +-- AuditError
    |   +-- AuditChainBrokenError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Authority       | UNAUTHORIZED                | Actor lacks role/scope for the operation
----------------|-----------------------------|-----------------------------------------
Lookup          | FORM_NOT_FOUND              | Form id unknown for the given kind
                | STUDENT_NOT_FOUND           | Student id unknown
                | STAFF_NOT_FOUND             | Staff id unknown
                | DOCUMENT_NOT_FOUND          | Document id unknown
                | NOTIFICATION_NOT_FOUND      | Notification id unknown
                | DUPLICATE_USER              | Email/application id/staff no. taken
----------------|-----------------------------|-----------------------------------------
Approval        | INVALID_APPROVAL_TYPE       | Slot key not part of the form topology
----------------|-----------------------------|-----------------------------------------
Submission      | GATE_NOT_SATISFIED          | NewClearance not fully approved yet
                | ALREADY_SUBMITTED           | Form of that kind already submitted
                | INVALID_FORM_PAYLOAD        | Payload missing/invalid required field
----------------|-----------------------------|-----------------------------------------
Document        | INVALID_DOCUMENT_TYPE       | Type outside the accepted categories
                | INVALID_REVIEW_STATUS       | Review status not approved/rejected
                | DOCUMENT_ALREADY_REVIEWED   | Document no longer pending
----------------|-----------------------------|-----------------------------------------
Side effects    | COLLABORATOR_UNAVAILABLE    | Audit/notification sink failed (never
                |                             | surfaced, logged only)
----------------|-----------------------------|-----------------------------------------
Audit           | AUDIT_CHAIN_BROKEN          | Ledger hash chain fails validation
----------------|-----------------------------|-----------------------------------------
Concurrency     | OPTIMISTIC_LOCK_CONFLICT    | Concurrent approval on the same form
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Approval flag reset / notification edit

===============================================================================
PROPAGATION POLICY
===============================================================================

Everything except CollaboratorUnavailableError reaches the caller.  A
successful approval or submission whose notification or audit write fails
is still a success; the failure is logged with the exception attached so
the structured formatter records its code and fields.
"""


class ClearanceKernelError(Exception):
    """
    Base exception for all clearance kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "CLEARANCE_KERNEL_ERROR"


# Authority


class UnauthorizedError(ClearanceKernelError):
    """Actor lacks the role or scope for the requested operation."""

    code: str = "UNAUTHORIZED"

    def __init__(self, actor_id: str, reason: str):
        self.actor_id = actor_id
        self.reason = reason
        super().__init__(f"Actor {actor_id} unauthorized: {reason}")


# Lookup


class NotFoundError(ClearanceKernelError):
    """Base exception for missing referenced entities."""

    code: str = "NOT_FOUND"


class FormNotFoundError(NotFoundError):
    """Form with given id and kind does not exist."""

    code: str = "FORM_NOT_FOUND"

    def __init__(self, form_kind: str, form_id: str):
        self.form_kind = form_kind
        self.form_id = form_id
        super().__init__(f"{form_kind} form not found: {form_id}")


class StudentNotFoundError(NotFoundError):
    """Student with given id does not exist."""

    code: str = "STUDENT_NOT_FOUND"

    def __init__(self, student_id: str):
        self.student_id = student_id
        super().__init__(f"Student not found: {student_id}")


class StaffNotFoundError(NotFoundError):
    """Staff member with given id does not exist."""

    code: str = "STAFF_NOT_FOUND"

    def __init__(self, staff_id: str):
        self.staff_id = staff_id
        super().__init__(f"Staff not found: {staff_id}")


class DocumentNotFoundError(NotFoundError):
    """Document with given id does not exist."""

    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(f"Document not found: {document_id}")


class NotificationNotFoundError(NotFoundError):
    """Notification with given id does not exist."""

    code: str = "NOTIFICATION_NOT_FOUND"

    def __init__(self, notification_id: str):
        self.notification_id = notification_id
        super().__init__(f"Notification not found: {notification_id}")


class DuplicateUserError(ClearanceKernelError):
    """Email, application id or staff number already registered."""

    code: str = "DUPLICATE_USER"

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"A user with {field} {value!r} already exists")


# Approval


class ApprovalError(ClearanceKernelError):
    """Base exception for approval errors."""

    code: str = "APPROVAL_ERROR"


class InvalidApprovalTypeError(ApprovalError):
    """Slot key is not recognised for the form's topology."""

    code: str = "INVALID_APPROVAL_TYPE"

    def __init__(self, form_kind: str, slot_key: str | None, valid_keys: tuple[str, ...]):
        self.form_kind = form_kind
        self.slot_key = slot_key
        self.valid_keys = valid_keys
        super().__init__(
            f"Invalid approval type {slot_key!r} for {form_kind}; "
            f"expected one of {', '.join(valid_keys)}"
        )


# Submission


class SubmissionError(ClearanceKernelError):
    """Base exception for form submission errors."""

    code: str = "SUBMISSION_ERROR"


class GateNotSatisfiedError(SubmissionError):
    """NewClearance must be fully approved before this kind can be submitted."""

    code: str = "GATE_NOT_SATISFIED"

    def __init__(self, form_kind: str, student_id: str):
        self.form_kind = form_kind
        self.student_id = student_id
        super().__init__(
            f"Cannot submit {form_kind} for student {student_id}: "
            "new clearance form is not fully approved"
        )


class AlreadySubmittedError(SubmissionError):
    """A form of this kind has already been submitted by the student."""

    code: str = "ALREADY_SUBMITTED"

    def __init__(self, form_kind: str, student_id: str):
        self.form_kind = form_kind
        self.student_id = student_id
        super().__init__(f"{form_kind} form already submitted for student {student_id}")


class InvalidFormPayloadError(SubmissionError):
    """Submitted payload does not satisfy the form kind's field contract."""

    code: str = "INVALID_FORM_PAYLOAD"

    def __init__(self, form_kind: str, field_errors: list[dict]):
        self.form_kind = form_kind
        self.field_errors = field_errors
        super().__init__(
            f"Invalid {form_kind} payload: {len(field_errors)} error(s)"
        )


# Documents


class DocumentError(ClearanceKernelError):
    """Base exception for document errors."""

    code: str = "DOCUMENT_ERROR"


class InvalidDocumentTypeError(DocumentError):
    """Document type is not one of the accepted categories."""

    code: str = "INVALID_DOCUMENT_TYPE"

    def __init__(self, document_type: str):
        self.document_type = document_type
        super().__init__(f"Invalid document type: {document_type!r}")


class InvalidReviewStatusError(DocumentError):
    """Review status must be approved or rejected."""

    code: str = "INVALID_REVIEW_STATUS"

    def __init__(self, status: str):
        self.status = status
        super().__init__(
            f'Review status must be "approved" or "rejected", got {status!r}'
        )


class DocumentAlreadyReviewedError(DocumentError):
    """Only pending documents can be reviewed."""

    code: str = "DOCUMENT_ALREADY_REVIEWED"

    def __init__(self, document_id: str, status: str):
        self.document_id = document_id
        self.status = status
        super().__init__(f"Document {document_id} already {status}")


# Side effects


class CollaboratorUnavailableError(ClearanceKernelError):
    """
    Audit ledger or notification sink failed.

    Never propagated to callers: raised-and-caught or constructed purely
    for the structured log record.
    """

    code: str = "COLLABORATOR_UNAVAILABLE"

    def __init__(self, collaborator: str, reason: str):
        self.collaborator = collaborator
        self.reason = reason
        super().__init__(f"{collaborator} unavailable: {reason}")


# Audit ledger


class AuditError(ClearanceKernelError):
    """Base exception for audit ledger errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """Audit ledger hash chain validation failed."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, seq: int, expected_hash: str, actual_hash: str):
        self.seq = seq
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at seq {seq}: "
            f"expected {expected_hash}, got {actual_hash}"
        )


# Concurrency


class ConcurrencyError(ClearanceKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


# Immutability


class ImmutabilityError(ClearanceKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify a write-once field.

    Approval flags only move false -> true; notifications only change
    their read flag.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
