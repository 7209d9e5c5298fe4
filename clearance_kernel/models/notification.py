"""
Module: clearance_kernel.models.notification
Responsibility: ORM persistence for user notifications.

Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - Write-once except ``is_read``: a ``before_update`` listener rejects
      changes to any other column.
    - status and category are closed sets (check constraints).
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.orm.attributes import get_history

from clearance_kernel.db.base import Base, UUIDString
from clearance_kernel.domain.dtos import NotificationRecord
from clearance_kernel.domain.values import NotificationCategory, NotificationStatus
from clearance_kernel.exceptions import ImmutabilityViolationError

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in NotificationStatus)
_CATEGORY_VALUES = ", ".join(f"'{c.value}'" for c in NotificationCategory)

_MUTABLE_FIELDS = frozenset({"is_read"})


class Notification(Base):
    """A message to a single recipient."""

    __tablename__ = "notifications"

    __table_args__ = (
        CheckConstraint(
            f"status IN ({_STATUS_VALUES})",
            name="ck_notifications_valid_status",
        ),
        CheckConstraint(
            f"category IN ({_CATEGORY_VALUES})",
            name="ck_notifications_valid_category",
        ),
        Index("ix_notifications_recipient_read", "recipient_id", "is_read"),
        Index("ix_notifications_recipient_created", "recipient_id", "created_at"),
    )

    recipient_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    related_document_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("documents.id"), nullable=True,
    )
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Notification {self.id} to={self.recipient_id} {self.title!r}>"

    def to_dto(self) -> NotificationRecord:
        return NotificationRecord(
            notification_id=self.id,
            recipient_id=self.recipient_id,
            title=self.title,
            description=self.description,
            status=NotificationStatus(self.status),
            category=NotificationCategory(self.category),
            is_read=self.is_read,
            created_at=self.created_at,
            related_document_id=self.related_document_id,
        )


@event.listens_for(Notification, "before_update")
def _check_notification_immutability(mapper, connection, target):
    for attr in mapper.column_attrs:
        if attr.key in _MUTABLE_FIELDS:
            continue
        if get_history(target, attr.key).has_changes():
            raise ImmutabilityViolationError(
                "Notification",
                str(target.id),
                f"{attr.key} is write-once",
            )
