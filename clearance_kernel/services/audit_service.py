"""
Audit collaborator -- protocol, bounded-wait dispatcher and the default
hash-chained ledger.

Responsibility:
    Every submission, approval, document review, account creation and
    clearance completion is reported to an external append-only ledger
    keyed by the student's application id.  The engine never reads the
    ledger back for a correctness decision.

Architecture position:
    Kernel > Services -- imperative shell.  ``AuditDispatcher`` is what the
    orchestration services hold; the collaborator behind it is injected.

Invariants enforced:
    - Best effort: ``AuditDispatcher.dispatch`` never raises.  Collaborator
      failures and timeouts are logged as ``CollaboratorUnavailableError``
      and the caller proceeds.
    - Bounded wait: the caller blocks at most ``timeout_seconds``.  A write
      that outlives the wait keeps running on the worker thread.
    - Hash chain (default ledger): ``hash = H(seq | subject_key | action |
      details_hash | prev_hash)``; every entry links to its predecessor.

Failure modes:
    - AuditChainBrokenError from ``HashChainAuditLedger.validate_chain()``
      when a stored hash or link does not recompute.
"""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.orm import Session

from clearance_kernel.domain.clock import Clock, SystemClock
from clearance_kernel.domain.dtos import AuditReceipt, AuditRecord
from clearance_kernel.exceptions import (
    AuditChainBrokenError,
    CollaboratorUnavailableError,
)
from clearance_kernel.logging_config import get_logger
from clearance_kernel.models.audit_ledger import AuditLedgerEntry
from clearance_kernel.utils.hashing import hash_ledger_entry, hash_payload

logger = get_logger("services.audit")


@runtime_checkable
class AuditCollaborator(Protocol):
    """Append-only ledger the engine reports actions to.

    Implementations: HashChainAuditLedger (default), external blockchain
    adapters supplied by the deployment.
    """

    def record_action(
        self,
        subject_key: str,
        action: str,
        details: dict[str, Any],
    ) -> AuditReceipt:
        """Record one action. May raise; callers treat failure as non-fatal."""
        ...


class HashChainAuditLedger:
    """
    Default collaborator: a SHA-256 hash chain in the ``audit_ledger`` table.

    Contract:
        Writes through its own session factory, one short transaction per
        record, so a ledger write never shares the caller's transaction and
        can run on the dispatcher's worker thread.

    Guarantees:
        - ``receipt.transaction_ref`` is the entry hash and
          ``receipt.block_number`` its ``seq``.
        - seq is allocated as last + 1 under a row lock on the tail entry;
          the unique constraint on seq rejects a concurrent duplicate.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    def record_action(
        self,
        subject_key: str,
        action: str,
        details: dict[str, Any],
    ) -> AuditReceipt:
        with self._session_factory() as session, session.begin():
            last = session.execute(
                select(AuditLedgerEntry)
                .order_by(AuditLedgerEntry.seq.desc())
                .limit(1)
                .with_for_update()
            ).scalar_one_or_none()

            seq = (last.seq + 1) if last is not None else 1
            prev_hash = last.hash if last is not None else None
            details_data = dict(details or {})
            details_hash = hash_payload(details_data)
            entry_hash = hash_ledger_entry(
                subject_key=subject_key,
                action=action,
                details_hash=details_hash,
                prev_hash=prev_hash,
                seq=seq,
            )

            session.add(
                AuditLedgerEntry(
                    seq=seq,
                    subject_key=subject_key,
                    action=action,
                    details=details_data,
                    details_hash=details_hash,
                    prev_hash=prev_hash,
                    hash=entry_hash,
                    recorded_at=self._clock.now(),
                )
            )
            session.flush()

        logger.info(
            "audit_ledger_entry_created",
            extra={"subject_key": subject_key, "action": action, "seq": seq},
        )
        return AuditReceipt(transaction_ref=entry_hash, block_number=seq)

    def entries_for(self, subject_key: str) -> list[AuditRecord]:
        with self._session_factory() as session:
            entries = session.execute(
                select(AuditLedgerEntry)
                .where(AuditLedgerEntry.subject_key == subject_key)
                .order_by(AuditLedgerEntry.seq)
            ).scalars().all()
            return [
                AuditRecord(subject_key=e.subject_key, action=e.action, details=dict(e.details))
                for e in entries
            ]

    def validate_chain(self) -> bool:
        """
        Validate the entire ledger.

        Raises:
            AuditChainBrokenError: If any hash or link fails to recompute.
        """
        with self._session_factory() as session:
            entries = session.execute(
                select(AuditLedgerEntry).order_by(AuditLedgerEntry.seq)
            ).scalars().all()

            prev_hash: str | None = None
            for entry in entries:
                if entry.prev_hash != prev_hash:
                    logger.critical("audit_chain_broken", extra={"seq": entry.seq})
                    raise AuditChainBrokenError(
                        entry.seq, prev_hash or "GENESIS", entry.prev_hash or "GENESIS",
                    )
                expected = hash_ledger_entry(
                    subject_key=entry.subject_key,
                    action=entry.action,
                    details_hash=hash_payload(entry.details),
                    prev_hash=entry.prev_hash,
                    seq=entry.seq,
                )
                if entry.hash != expected:
                    logger.critical("audit_chain_broken", extra={"seq": entry.seq})
                    raise AuditChainBrokenError(entry.seq, expected, entry.hash)
                prev_hash = entry.hash

        return True


class AuditDispatcher:
    """
    Fire-and-forget front for an ``AuditCollaborator``.

    The collaborator call runs on a small worker pool; the caller waits at
    most ``timeout_seconds`` for the receipt and gets None on any failure.
    """

    def __init__(
        self,
        collaborator: AuditCollaborator | None,
        timeout_seconds: float = 2.0,
        max_workers: int = 1,
    ):
        self._collaborator = collaborator
        self._timeout = timeout_seconds
        self._executor = (
            ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="clearance-audit")
            if collaborator is not None
            else None
        )

    @property
    def enabled(self) -> bool:
        return self._collaborator is not None

    def dispatch(
        self,
        subject_key: str,
        action: str | Enum,
        details: dict[str, Any] | None = None,
    ) -> AuditReceipt | None:
        action_value = action.value if isinstance(action, Enum) else action
        log_extra = {"subject_key": subject_key, "action": action_value}

        if self._collaborator is None:
            logger.debug("audit_dispatch_skipped", extra=log_extra)
            return None

        try:
            future = self._executor.submit(
                self._collaborator.record_action,
                subject_key,
                action_value,
                dict(details or {}),
            )
            receipt = future.result(timeout=self._timeout)
        except FutureTimeoutError as exc:
            self._log_failure(
                "audit_dispatch_timeout", f"no receipt within {self._timeout}s", exc, log_extra,
            )
            return None
        except Exception as exc:
            self._log_failure("audit_dispatch_failed", str(exc), exc, log_extra)
            return None

        logger.info(
            "audit_dispatched",
            extra={
                **log_extra,
                "transaction_ref": receipt.transaction_ref,
                "block_number": receipt.block_number,
            },
        )
        return receipt

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)

    @staticmethod
    def _log_failure(
        message: str,
        reason: str,
        cause: BaseException,
        log_extra: dict[str, Any],
    ) -> None:
        error = CollaboratorUnavailableError("audit", reason)
        error.__cause__ = cause
        logger.warning(message, exc_info=error, extra=log_extra)
