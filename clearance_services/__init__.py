"""
clearance_services -- Package init and public API.

Responsibility:
    Orchestration services that compose the pure engines
    (clearance_engines/) with database sessions, selectors and the
    notification/audit side effects.  ``ClearanceEngine`` wires them
    together and is the import surface for the HTTP layer.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

    Dependency direction (enforced by tests/architecture/test_layer_boundary.py):
        clearance_services/ -> clearance_engines/  (allowed)
        clearance_services/ -> clearance_kernel/   (allowed)
        clearance_services/ -> clearance_config/   (allowed)
        clearance_engines/  -> clearance_services/ (FORBIDDEN)
        clearance_kernel/   -> clearance_services/ (FORBIDDEN)
"""

from clearance_services.approval_service import ApprovalService
from clearance_services.completion_service import CompletionService
from clearance_services.document_service import DocumentService
from clearance_services.engine import ClearanceEngine
from clearance_services.notification_routing import NotificationRouter
from clearance_services.pending_service import PendingQueryService
from clearance_services.submission_service import FormSubmissionService

__all__ = [
    "ApprovalService",
    "ClearanceEngine",
    "CompletionService",
    "DocumentService",
    "FormSubmissionService",
    "NotificationRouter",
    "PendingQueryService",
]
