"""
Notification dispatcher and inbox service.

Responsibility:
    Persists notification drafts produced by the orchestration services
    (best effort) and implements the recipient-side inbox operations
    (toggle read, mark all read).

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - Best effort: ``NotificationDispatcher.dispatch`` never raises.  Each
      draft is written inside a SAVEPOINT; a sink failure rolls back only
      that savepoint and is logged as ``CollaboratorUnavailableError``.
    - Verbatim fields: recipient, title, description, status and category
      are stored exactly as drafted.
    - Only the recipient may change a notification's read flag.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from clearance_kernel.domain.clock import Clock, SystemClock
from clearance_kernel.domain.dtos import NotificationDraft, NotificationRecord
from clearance_kernel.exceptions import (
    CollaboratorUnavailableError,
    NotificationNotFoundError,
    UnauthorizedError,
)
from clearance_kernel.logging_config import get_logger
from clearance_kernel.models.notification import Notification
from clearance_kernel.services.base import BaseService

logger = get_logger("services.notification")


@runtime_checkable
class NotificationSink(Protocol):
    """Where notification drafts end up."""

    def create(self, draft: NotificationDraft) -> None:
        ...


class OrmNotificationSink:
    """Default sink: one ``notifications`` row per draft, in the caller's session."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def create(self, draft: NotificationDraft) -> None:
        self._session.add(
            Notification(
                recipient_id=draft.recipient_id,
                title=draft.title,
                description=draft.description,
                status=draft.status.value,
                category=draft.category.value,
                related_document_id=draft.related_document_id,
                is_read=False,
                created_at=self._clock.now(),
            )
        )
        self._session.flush()


class NotificationDispatcher:
    """
    Hands drafts to a sink without letting a failure escape.

    Contract:
        ``dispatch`` returns True when the sink accepted the draft and
        False when it failed; the outer transaction is unaffected either
        way.
    """

    def __init__(
        self,
        session: Session,
        sink: NotificationSink | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._sink = sink if sink is not None else OrmNotificationSink(session, clock)

    def dispatch(self, draft: NotificationDraft) -> bool:
        log_extra = {
            "recipient_id": str(draft.recipient_id),
            "title": draft.title,
            "category": draft.category.value,
        }
        try:
            with self._session.begin_nested():
                self._sink.create(draft)
        except Exception as exc:
            error = CollaboratorUnavailableError("notification", str(exc))
            error.__cause__ = exc
            logger.warning("notification_dispatch_failed", exc_info=error, extra=log_extra)
            return False

        logger.info("notification_dispatched", extra=log_extra)
        return True


class NotificationService(BaseService[Notification]):
    """Recipient-side inbox mutations. Reads go through NotificationSelector."""

    def toggle_read(self, notification_id: UUID, recipient_id: UUID) -> NotificationRecord:
        notification = self.session.get(Notification, notification_id)
        if notification is None:
            raise NotificationNotFoundError(str(notification_id))
        if notification.recipient_id != recipient_id:
            raise UnauthorizedError(
                str(recipient_id), "notification belongs to another recipient",
            )

        notification.is_read = not notification.is_read
        self.session.flush()

        logger.info(
            "notification_read_toggled",
            extra={"notification_id": str(notification_id), "is_read": notification.is_read},
        )
        return notification.to_dto()

    def mark_all_read(self, recipient_id: UUID) -> int:
        """Mark every unread notification of ``recipient_id`` read; returns the count."""
        unread = self.session.execute(
            select(Notification).where(
                Notification.recipient_id == recipient_id,
                Notification.is_read.is_(False),
            )
        ).scalars().all()
        for notification in unread:
            notification.is_read = True
        self.session.flush()

        logger.info(
            "notifications_marked_read",
            extra={"recipient_id": str(recipient_id), "count": len(unread)},
        )
        return len(unread)
