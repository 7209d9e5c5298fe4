"""
clearance_engines.completion -- Clearance Aggregator.

Responsibility:
    Compute a student's clearance status from their five form snapshots
    and their document records: per-form summaries, per-required-type
    document status, the three "all" verdicts, the completion verdict,
    counters and the weighted completion percentage.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - clearance_complete == all forms approved AND all eight required
      document types approved.  A pending or rejected upload never counts.
    - When a type has several uploads the best status wins:
      approved > pending > rejected.
    - The percentage is computed with exact fractions and rounded half
      up, so it is monotone in every counter.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import datetime
from fractions import Fraction
from uuid import UUID

from clearance_engines.approval import is_fully_approved
from clearance_engines.tracer import traced_engine
from clearance_kernel.domain.dtos import (
    ClearanceStatus,
    DocumentRecord,
    DocumentTypeStatus,
    FormSnapshot,
    FormSummary,
)
from clearance_kernel.domain.forms import ALL_FORM_KINDS, FormKind, descriptor_for
from clearance_kernel.domain.values import (
    NOT_UPLOADED,
    REQUIRED_DOCUMENT_TYPES,
    DocumentStatus,
    DocumentType,
)

_STATUS_RANK = {
    DocumentStatus.APPROVED: 3,
    DocumentStatus.PENDING: 2,
    DocumentStatus.REJECTED: 1,
}

_FORMS_WEIGHT = Fraction(1, 2)
_DOCUMENTS_WEIGHT = Fraction(1, 2)
_SUBMITTED_SHARE = Fraction(1, 3)
_APPROVED_SHARE = Fraction(2, 3)


def round_half_up(value: Fraction) -> int:
    return math.floor(value + Fraction(1, 2))


def completion_percentage(
    submitted_forms: int,
    approved_forms: int,
    uploaded_documents: int,
    approved_documents: int,
    total_forms: int = len(ALL_FORM_KINDS),
    total_documents: int = len(REQUIRED_DOCUMENT_TYPES),
) -> int:
    """
    Weighted completion in whole percent.

    Forms and documents weigh half each; within a half, submitted/uploaded
    counts one third and approved two thirds, each scaled by count/total.
    """
    forms_part = (
        Fraction(submitted_forms, total_forms) * 100 * _SUBMITTED_SHARE
        + Fraction(approved_forms, total_forms) * 100 * _APPROVED_SHARE
    )
    documents_part = (
        Fraction(uploaded_documents, total_documents) * 100 * _SUBMITTED_SHARE
        + Fraction(approved_documents, total_documents) * 100 * _APPROVED_SHARE
    )
    return round_half_up(forms_part * _FORMS_WEIGHT + documents_part * _DOCUMENTS_WEIGHT)


def form_approved(snapshot: FormSnapshot | None) -> bool:
    if snapshot is None:
        return False
    if snapshot.kind == FormKind.NEW_CLEARANCE:
        return is_fully_approved(descriptor_for(FormKind.NEW_CLEARANCE), snapshot.slots)
    return snapshot.approved


def summarize_form(kind: FormKind, snapshot: FormSnapshot | None) -> FormSummary:
    if snapshot is None:
        return FormSummary(kind=kind, exists=False, submitted=False, approved=False)
    return FormSummary(
        kind=kind,
        exists=True,
        submitted=snapshot.submitted,
        approved=form_approved(snapshot),
        submitted_at=snapshot.submitted_at,
        approved_at=snapshot.approved_at,
        slots=snapshot.slots,
    )


def best_document_status(
    document_type: DocumentType,
    records: Iterable[DocumentRecord],
) -> DocumentTypeStatus:
    """Summary for one type; ``not_uploaded`` when there is no upload."""
    candidates = [r for r in records if r.document_type == document_type]
    if not candidates:
        return DocumentTypeStatus(
            document_type=document_type,
            uploaded=False,
            approved=False,
            status=NOT_UPLOADED,
        )
    best = max(
        candidates,
        key=lambda r: (
            _STATUS_RANK[r.status],
            (r.reviewed_at or r.created_at) is not None,
            r.reviewed_at or r.created_at,
        ),
    )
    approved = best.status == DocumentStatus.APPROVED
    return DocumentTypeStatus(
        document_type=document_type,
        uploaded=True,
        approved=approved,
        status=best.status.value,
        document_id=best.document_id,
        uploaded_at=best.created_at,
        approved_at=best.reviewed_at if approved else None,
    )


@traced_engine("completion", "1.0", fingerprint_fields=("student_id",))
def evaluate_clearance(
    *,
    student_id: UUID,
    snapshots: Mapping[FormKind, FormSnapshot | None],
    documents: Iterable[DocumentRecord],
    completed_at: datetime | None = None,
) -> ClearanceStatus:
    records = list(documents)
    forms = {kind: summarize_form(kind, snapshots.get(kind)) for kind in ALL_FORM_KINDS}
    document_status = {
        doc_type: best_document_status(doc_type, records)
        for doc_type in REQUIRED_DOCUMENT_TYPES
    }

    submitted_forms = sum(1 for f in forms.values() if f.exists and f.submitted)
    approved_forms = sum(1 for f in forms.values() if f.approved)
    uploaded_documents = sum(1 for d in document_status.values() if d.uploaded)
    approved_documents = sum(1 for d in document_status.values() if d.approved)

    all_forms_submitted = submitted_forms == len(ALL_FORM_KINDS)
    all_forms_approved = approved_forms == len(ALL_FORM_KINDS)
    all_documents_approved = approved_documents == len(REQUIRED_DOCUMENT_TYPES)

    return ClearanceStatus(
        student_id=student_id,
        forms=forms,
        documents=document_status,
        all_forms_submitted=all_forms_submitted,
        all_forms_approved=all_forms_approved,
        all_documents_approved=all_documents_approved,
        clearance_complete=(
            all_forms_submitted and all_forms_approved and all_documents_approved
        ),
        total_forms=len(ALL_FORM_KINDS),
        submitted_forms=submitted_forms,
        approved_forms=approved_forms,
        total_documents=len(REQUIRED_DOCUMENT_TYPES),
        uploaded_documents=uploaded_documents,
        approved_documents=approved_documents,
        completion_percentage=completion_percentage(
            submitted_forms, approved_forms, uploaded_documents, approved_documents,
        ),
        completed_at=completed_at,
    )
