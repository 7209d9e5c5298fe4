"""
Module: clearance_kernel.selectors.notification_selector
Responsibility: Read path over a recipient's notification inbox.
Architecture position: Kernel > Selectors.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select

from clearance_kernel.domain.dtos import NotificationRecord
from clearance_kernel.models.notification import Notification
from clearance_kernel.selectors.base import BaseSelector


class NotificationSelector(BaseSelector[Notification]):

    def for_recipient(
        self,
        recipient_id: UUID,
        limit: int | None = None,
        unread_only: bool = False,
    ) -> list[NotificationRecord]:
        """Newest first."""
        stmt = select(Notification).where(Notification.recipient_id == recipient_id)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        stmt = stmt.order_by(Notification.created_at.desc(), Notification.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        return [n.to_dto() for n in self.session.execute(stmt).scalars()]

    def unread_count(self, recipient_id: UUID) -> int:
        return self.session.execute(
            select(func.count(Notification.id)).where(
                Notification.recipient_id == recipient_id,
                Notification.is_read.is_(False),
            )
        ).scalar_one()
