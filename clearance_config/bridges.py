"""
Config -> Kernel Bridges.

Functions that convert ``ClearanceConfig`` into kernel inputs.  They live
in clearance_config (the producer) because the kernel must never import
clearance_config.

Usage:
    from clearance_config.bridges import (
        build_audit_dispatcher,
        build_document_routing,
        build_role_table,
    )

    config = get_active_config()
    role_table = build_role_table(config)
    routing = build_document_routing(config)
    audit = build_audit_dispatcher(config, HashChainAuditLedger(session_factory))
"""

from __future__ import annotations

from clearance_config.schema import ClearanceConfig
from clearance_kernel.domain.roles import ApprovalRole, RoleTable
from clearance_kernel.domain.values import DocumentType
from clearance_kernel.services.audit_service import AuditCollaborator, AuditDispatcher


def build_role_table(config: ClearanceConfig) -> RoleTable:
    table = config.role_table
    return RoleTable(
        fixed_departments={
            department: ApprovalRole(role) for department, role in table.fixed_departments
        },
        hod_suffix=table.hod_suffix,
        school_officer_department=table.school_officer_department,
    )


def build_document_routing(config: ClearanceConfig) -> dict[DocumentType, ApprovalRole]:
    """Invert the role -> types routing into a type -> reviewer role map."""
    return {
        DocumentType(doc_type): ApprovalRole(role)
        for role, doc_types in config.documents.routing
        for doc_type in doc_types
    }


def build_audit_dispatcher(
    config: ClearanceConfig,
    collaborator: AuditCollaborator | None,
) -> AuditDispatcher:
    """
    Wrap ``collaborator`` with the configured wait bound.

    The dispatcher owns a worker pool; build it once per process and
    share it between engines.
    """
    side_effects = config.side_effects
    return AuditDispatcher(
        collaborator if side_effects.audit_enabled else None,
        timeout_seconds=side_effects.audit_timeout_seconds,
        max_workers=side_effects.audit_max_workers,
    )
