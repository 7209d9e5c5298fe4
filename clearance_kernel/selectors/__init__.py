"""Read-only query selectors. Selectors return DTOs, never ORM instances."""

from clearance_kernel.selectors.document_selector import DocumentSelector
from clearance_kernel.selectors.form_selector import FormSelector
from clearance_kernel.selectors.notification_selector import NotificationSelector
from clearance_kernel.selectors.user_selector import UserSelector

__all__ = [
    "DocumentSelector",
    "FormSelector",
    "NotificationSelector",
    "UserSelector",
]
