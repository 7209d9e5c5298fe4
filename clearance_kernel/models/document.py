"""
Module: clearance_kernel.models.document
Responsibility: ORM persistence for uploaded clearance documents and their
    review state.

Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - document_type and status are closed sets (check constraints).
    - A reviewed document (approved or rejected) is final: its status,
      reviewer and review timestamp cannot change again.
    - The uploaded bytes live with the upload collaborator; only their
      SHA-256 ``content_hash`` is stored here.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.orm.attributes import get_history

from clearance_kernel.db.base import Base, UUIDString
from clearance_kernel.domain.dtos import DocumentRecord
from clearance_kernel.domain.values import DocumentStatus, DocumentType
from clearance_kernel.exceptions import ImmutabilityViolationError

_TYPE_VALUES = ", ".join(f"'{t.value}'" for t in DocumentType)


class Document(Base):
    """A student's uploaded document awaiting or past review."""

    __tablename__ = "documents"

    __table_args__ = (
        CheckConstraint(
            f"document_type IN ({_TYPE_VALUES})",
            name="ck_documents_valid_type",
        ),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_documents_valid_status",
        ),
        Index("ix_documents_owner_type", "owner_id", "document_type"),
        Index("ix_documents_type_status", "document_type", "status"),
    )

    owner_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    document_type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DocumentStatus.PENDING.value,
    )
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    content_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Document {self.id} {self.document_type!r} {self.status}>"

    def to_dto(self) -> DocumentRecord:
        return DocumentRecord(
            document_id=self.id,
            owner_id=self.owner_id,
            document_type=DocumentType(self.document_type),
            status=DocumentStatus(self.status),
            title=self.title,
            description=self.description,
            feedback=self.feedback,
            reviewed_by_id=self.reviewed_by_id,
            reviewed_at=self.reviewed_at,
            content_hash=self.content_hash,
            created_at=self.created_at,
        )


@event.listens_for(Document, "before_update")
def _check_review_is_final(mapper, connection, target):
    history = get_history(target, "status")
    if history.deleted and history.deleted[0] != DocumentStatus.PENDING.value:
        raise ImmutabilityViolationError(
            "Document",
            str(target.id),
            f"review status {history.deleted[0]!r} is final",
        )
