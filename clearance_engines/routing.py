"""
clearance_engines.routing -- Pending-queue plans per resolved role.

Responsibility:
    Turn a staff member's resolved role into a ``PendingPlan``: which form
    slots and which document types they review, and the department scope
    the queue is restricted to.  The plan is executed by the selectors.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Routing rules (derived from the form registry):
    - A role reviews every form kind that has a slot for it.
    - On the dual-approval form the schoolOfficer slot is only queued
      once the deputyRegistrar slot is approved.
    - Documents are routed by the configured type -> role table.
    - Unresolved staff get an empty plan.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from clearance_kernel.domain.dtos import PendingItem
from clearance_kernel.domain.forms import (
    FORM_REGISTRY,
    ApprovalTopology,
    FormKind,
)
from clearance_kernel.domain.roles import ApprovalRole, ResolvedRole
from clearance_kernel.domain.values import DocumentType

# Dual-topology slots that must already be approved before a slot is queued.
DUAL_PREREQUISITES: dict[ApprovalRole, tuple[ApprovalRole, ...]] = {
    ApprovalRole.SCHOOL_OFFICER: (ApprovalRole.DEPUTY_REGISTRAR,),
}


@dataclass(frozen=True)
class FormRule:
    kind: FormKind
    slot_role: ApprovalRole
    prerequisites: tuple[ApprovalRole, ...] = ()


@dataclass(frozen=True)
class PendingPlan:
    """What one staff member's pending queue is made of."""

    role: ApprovalRole | None
    scope: frozenset[str] | None
    form_rules: tuple[FormRule, ...] = ()
    document_types: tuple[DocumentType, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.form_rules and not self.document_types


def plan_for(
    resolved: ResolvedRole,
    document_routing: Mapping[DocumentType, ApprovalRole],
) -> PendingPlan:
    if not resolved.is_resolved:
        return PendingPlan(role=None, scope=frozenset())

    role = resolved.role
    rules: list[FormRule] = []
    for kind, descriptor in FORM_REGISTRY.items():
        if role not in descriptor.slot_roles:
            continue
        prerequisites = (
            DUAL_PREREQUISITES.get(role, ())
            if descriptor.topology == ApprovalTopology.DUAL
            else ()
        )
        rules.append(FormRule(kind=kind, slot_role=role, prerequisites=prerequisites))

    document_types = tuple(
        doc_type for doc_type in DocumentType if document_routing.get(doc_type) == role
    )
    return PendingPlan(
        role=role,
        scope=resolved.scope,
        form_rules=tuple(rules),
        document_types=document_types,
    )


def reviewer_role_for(
    document_type: DocumentType,
    document_routing: Mapping[DocumentType, ApprovalRole],
) -> ApprovalRole | None:
    return document_routing.get(DocumentType(document_type))


def dedupe_items(items: Iterable[PendingItem]) -> list[PendingItem]:
    """Drop repeats of the same (item type, id), keeping the first occurrence."""
    seen: set = set()
    unique: list[PendingItem] = []
    for item in items:
        if item.key in seen:
            continue
        seen.add(item.key)
        unique.append(item)
    return unique
