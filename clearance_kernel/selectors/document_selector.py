"""
Module: clearance_kernel.selectors.document_selector
Responsibility: Read path over uploaded documents: a student's uploads,
    the pending review queue for a set of document types, and the reviews
    a staff member signed.
Architecture position: Kernel > Selectors.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import func, select

from clearance_kernel.domain.dtos import (
    ApprovedItem,
    DocumentRecord,
    PendingItem,
    PendingItemType,
)
from clearance_kernel.domain.values import DocumentStatus, DocumentType
from clearance_kernel.models.document import Document
from clearance_kernel.models.user import User
from clearance_kernel.selectors.base import BaseSelector


class DocumentSelector(BaseSelector[Document]):

    def get(self, document_id: UUID) -> DocumentRecord | None:
        document = self.session.get(Document, document_id)
        return document.to_dto() if document is not None else None

    def for_student(self, student_id: UUID) -> list[DocumentRecord]:
        documents = self.session.execute(
            select(Document)
            .where(Document.owner_id == student_id)
            .order_by(Document.created_at, Document.id)
        ).scalars()
        return [d.to_dto() for d in documents]

    def pending_of_types(
        self,
        document_types: Iterable[DocumentType],
        departments: frozenset[str] | None = None,
    ) -> list[PendingItem]:
        """Pending documents of the given types; scoping as for forms."""
        type_values = sorted(DocumentType(t).value for t in document_types)
        if not type_values:
            return []
        if departments is not None and not departments:
            return []

        stmt = (
            select(Document, User)
            .join(User, User.id == Document.owner_id)
            .where(
                Document.status == DocumentStatus.PENDING.value,
                Document.document_type.in_(type_values),
            )
        )
        if departments is not None:
            stmt = stmt.where(User.department.in_(sorted(departments)))
        stmt = stmt.order_by(Document.created_at, Document.id)

        return [
            PendingItem(
                item_type=PendingItemType.DOCUMENT,
                item_id=document.id,
                kind=document.document_type,
                student_id=student.id,
                student_name=student.full_name,
                student_department=student.department,
                application_id=student.application_id,
                slot_key=None,
                submitted_at=document.created_at,
            )
            for document, student in self.session.execute(stmt).all()
        ]

    def reviewed_by(self, staff_id: UUID) -> list[ApprovedItem]:
        """Documents this staff member approved (rejections are not sign-offs)."""
        documents = self.session.execute(
            select(Document)
            .where(
                Document.reviewed_by_id == staff_id,
                Document.status == DocumentStatus.APPROVED.value,
            )
            .order_by(Document.reviewed_at, Document.id)
        ).scalars()
        return [
            ApprovedItem(
                item_type=PendingItemType.DOCUMENT,
                item_id=d.id,
                kind=d.document_type,
                student_id=d.owner_id,
                slot_key=None,
                approved_at=d.reviewed_at,
                comments=d.feedback,
            )
            for d in documents
        ]

    def count_by_status(self) -> dict[str, int]:
        rows = self.session.execute(
            select(Document.status, func.count(Document.id)).group_by(Document.status)
        ).all()
        counts = {s.value: 0 for s in DocumentStatus}
        counts.update({status: count for status, count in rows})
        return counts
