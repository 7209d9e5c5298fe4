"""
clearance_engines.approval -- Pure approval-slot evaluation.

Responsibility:
    Validate a slot key against a form's topology, decide whether an
    actor may stamp a slot, stamp it on an immutable ``FormSnapshot``,
    recompute overall approval and the next pending role, and evaluate
    the NewClearance submission gate.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import clearance_kernel/domain/ types and logging.

Invariants enforced:
    - Overall approval holds iff every topology slot is present and
      approved, independent of the order the slots were stamped in.
    - Approval is one-directional: stamping never clears a slot; a
      re-stamp of an approved slot refreshes actor, time and comments.
    - The overall approval timestamp is set only on the false -> true
      transition.
    - Purity: the stamping time is a parameter, never read from a clock.

Failure modes:
    - ``resolve_slot`` returns None for an unknown key; the calling
      service turns that into InvalidApprovalTypeError.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from uuid import UUID

from clearance_engines.tracer import traced_engine
from clearance_kernel.domain.dtos import ApprovalOutcome, ApprovalSlot, FormSnapshot
from clearance_kernel.domain.forms import (
    ApprovalTopology,
    FormDescriptor,
    FormKind,
    descriptor_for,
)
from clearance_kernel.domain.roles import ApprovalRole, Principal, ResolvedRole


def resolve_slot(descriptor: FormDescriptor, slot_key: str | None) -> ApprovalRole | None:
    """
    Map a caller-supplied slot key to the slot's role.

    Single-approval forms accept their owning role name or None; the other
    topologies require one of their slot role names.
    """
    if slot_key is None:
        return descriptor.owner_role
    try:
        role = ApprovalRole(slot_key)
    except ValueError:
        return None
    return role if role in descriptor.slot_roles else None


def can_approve(
    actor: Principal,
    resolved: ResolvedRole,
    slot_role: ApprovalRole,
    student_department: str | None,
) -> bool:
    """
    Admins may stamp any slot.  Staff must hold the slot's role and, for
    department-scoped roles, cover the student's department.
    """
    if actor.is_admin:
        return True
    if not actor.is_staff:
        return False
    return resolved.role == slot_role and resolved.covers(student_department)


def is_fully_approved(descriptor: FormDescriptor, slots: tuple[ApprovalSlot, ...]) -> bool:
    by_role = {slot.role: slot for slot in slots}
    return all(
        role.value in by_role and by_role[role.value].approved
        for role in descriptor.slot_roles
    )


def next_pending_role(descriptor: FormDescriptor, slots: tuple[ApprovalSlot, ...]) -> str | None:
    """First unapproved slot in topology order, None when all are approved."""
    if descriptor.topology == ApprovalTopology.APPROVAL_SET:
        ordered = sorted(slots, key=lambda s: s.position)
        for slot in ordered:
            if not slot.approved:
                return slot.role
        return None

    by_role = {slot.role: slot for slot in slots}
    for role in descriptor.slot_roles:
        slot = by_role.get(role.value)
        if slot is None or not slot.approved:
            return role.value
    return None


@traced_engine("approval", "1.0", fingerprint_fields=("slot_role", "staff_id"))
def stamp_slot(
    snapshot: FormSnapshot,
    *,
    slot_role: ApprovalRole,
    staff_id: UUID,
    at: datetime,
    comments: str | None = None,
) -> ApprovalOutcome:
    """
    Stamp ``slot_role`` on ``snapshot`` and recompute the overall state.

    Preconditions:
        ``slot_role`` is one of the snapshot kind's slot roles (callers
        validate with ``resolve_slot`` first).

    Postconditions:
        The returned snapshot differs from the input only in the stamped
        slot and, on the false -> true transition, ``approved`` /
        ``approved_at``.
    """
    descriptor = descriptor_for(snapshot.kind)
    previous = snapshot.slot(slot_role.value)
    if previous is None:
        raise ValueError(f"{snapshot.kind.value} has no {slot_role.value} slot")

    slots = tuple(
        s.stamped(staff_id, at, comments) if s.role == slot_role.value else s
        for s in snapshot.slots
    )
    overall = is_fully_approved(descriptor, slots)
    newly_approved = overall and not snapshot.approved

    updated = replace(
        snapshot,
        slots=slots,
        approved=overall or snapshot.approved,
        approved_at=at if newly_approved else snapshot.approved_at,
    )
    return ApprovalOutcome(
        snapshot=updated,
        slot_role=slot_role.value,
        was_approved=previous.approved,
        newly_approved=newly_approved,
        next_pending_role=next_pending_role(descriptor, slots),
    )


def gate_satisfied(new_clearance: FormSnapshot | None) -> bool:
    """True when the student's NewClearance exists with both fixed approvals."""
    if new_clearance is None or new_clearance.kind != FormKind.NEW_CLEARANCE:
        return False
    return is_fully_approved(descriptor_for(FormKind.NEW_CLEARANCE), new_clearance.slots)
