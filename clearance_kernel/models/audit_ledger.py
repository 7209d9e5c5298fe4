"""
Module: clearance_kernel.models.audit_ledger
Responsibility: ORM persistence for the default audit collaborator, an
    append-only tamper-evident hash chain of clearance actions.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Append-only: no UPDATE or DELETE (ORM listeners).
    - Hash chain: hash = H(seq | subject_key | action | details_hash |
      prev_hash).  Validated by HashChainAuditLedger.validate_chain().
    - seq is unique and strictly increasing; it is reported to callers as
      the receipt's block number.

Failure modes:
    - ImmutabilityViolationError on any UPDATE/DELETE attempt.
    - IntegrityError when two writers race for the same seq.
"""

from datetime import datetime

from sqlalchemy import JSON, Index, Integer, String, event
from sqlalchemy.orm import Mapped, mapped_column

from clearance_kernel.db.base import Base
from clearance_kernel.exceptions import ImmutabilityViolationError


class AuditLedgerEntry(Base):
    """One link of the audit hash chain."""

    __tablename__ = "audit_ledger"

    __table_args__ = (
        Index("ix_audit_ledger_subject", "subject_key"),
        Index("ix_audit_ledger_action", "action"),
    )

    seq: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    subject_key: Mapped[str] = mapped_column(String(100), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    details: Mapped[dict] = mapped_column(JSON, nullable=False)
    details_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    recorded_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<AuditLedgerEntry seq={self.seq} {self.action} {self.subject_key}>"


@event.listens_for(AuditLedgerEntry, "before_update")
def _reject_ledger_update(mapper, connection, target):
    raise ImmutabilityViolationError(
        "AuditLedgerEntry", str(target.id), "ledger entries are append-only",
    )


@event.listens_for(AuditLedgerEntry, "before_delete")
def _reject_ledger_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        "AuditLedgerEntry", str(target.id), "ledger entries cannot be deleted",
    )
