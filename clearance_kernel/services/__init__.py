"""Kernel services: write-side shells over the ORM. Services flush, never commit."""

from clearance_kernel.services.audit_service import (
    AuditCollaborator,
    AuditDispatcher,
    HashChainAuditLedger,
)
from clearance_kernel.services.directory_service import UserDirectory
from clearance_kernel.services.notification_service import (
    NotificationDispatcher,
    NotificationService,
    NotificationSink,
    OrmNotificationSink,
)

__all__ = [
    "AuditCollaborator",
    "AuditDispatcher",
    "HashChainAuditLedger",
    "NotificationDispatcher",
    "NotificationService",
    "NotificationSink",
    "OrmNotificationSink",
    "UserDirectory",
]
