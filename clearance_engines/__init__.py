"""
Module: clearance_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines used by
    the orchestration services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import clearance_kernel/domain/ and clearance_kernel.logging_config.
    MUST NOT import clearance_services or clearance_config.

Invariants enforced:
    - Purity: engines never read a clock; timestamps are parameters.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from clearance_engines.approval import stamp_slot
    from clearance_engines.routing import plan_for
    from clearance_engines.completion import evaluate_clearance
"""

from clearance_engines.approval import (
    can_approve,
    gate_satisfied,
    is_fully_approved,
    next_pending_role,
    resolve_slot,
    stamp_slot,
)
from clearance_engines.completion import (
    best_document_status,
    completion_percentage,
    evaluate_clearance,
    round_half_up,
)
from clearance_engines.routing import (
    FormRule,
    PendingPlan,
    dedupe_items,
    plan_for,
    reviewer_role_for,
)
from clearance_engines.tracer import traced_engine

__all__ = [
    "can_approve",
    "gate_satisfied",
    "is_fully_approved",
    "next_pending_role",
    "resolve_slot",
    "stamp_slot",
    "best_document_status",
    "completion_percentage",
    "evaluate_clearance",
    "round_half_up",
    "FormRule",
    "PendingPlan",
    "dedupe_items",
    "plan_for",
    "reviewer_role_for",
    "traced_engine",
]
