"""
clearance_services.pending_service -- Pending-Items Query and dashboards.

Responsibility:
    Answer "what is waiting for this staff member" by resolving their
    role, building a ``PendingPlan`` and executing it through the form and
    document selectors.  Also serves the signed-by-me list, the staff
    dashboard counters and the admin overview.

Architecture position:
    Services layer.  Read-only: never flushes.
"""

from __future__ import annotations

from collections.abc import Mapping

from sqlalchemy.orm import Session

from clearance_engines.routing import PendingPlan, dedupe_items, plan_for
from clearance_kernel.domain.dtos import (
    AdminOverview,
    ApprovalCounts,
    ApprovedItem,
    DashboardStats,
    PendingItem,
    PendingItemType,
)
from clearance_kernel.domain.roles import ApprovalRole, Principal, PrincipalKind, RoleTable
from clearance_kernel.domain.values import DocumentType
from clearance_kernel.exceptions import UnauthorizedError
from clearance_kernel.logging_config import get_logger
from clearance_kernel.selectors.document_selector import DocumentSelector
from clearance_kernel.selectors.form_selector import FormSelector
from clearance_kernel.selectors.user_selector import UserSelector

logger = get_logger("services.pending")


class PendingQueryService:

    def __init__(
        self,
        session: Session,
        role_table: RoleTable,
        document_routing: Mapping[DocumentType, ApprovalRole],
    ):
        self._role_table = role_table
        self._routing = document_routing
        self._forms = FormSelector(session)
        self._documents = DocumentSelector(session)
        self._users = UserSelector(session)

    def plan(self, staff: Principal) -> PendingPlan:
        if not (staff.is_staff or staff.is_admin):
            raise UnauthorizedError(
                str(staff.principal_id), "only staff have a pending queue",
            )
        return plan_for(self._role_table.resolve_principal(staff), self._routing)

    def pending_for(self, staff: Principal) -> list[PendingItem]:
        """
        Forms and documents waiting for ``staff``.

        Unresolved departments (and admins, who hold no approval role)
        get an empty list.  Items are unique by (item type, id).
        """
        plan = self.plan(staff)
        if plan.is_empty:
            logger.debug(
                "pending_plan_empty",
                extra={"staff_id": str(staff.principal_id), "department": staff.department},
            )
            return []

        items: list[PendingItem] = []
        for rule in plan.form_rules:
            items.extend(
                self._forms.pending_form_items(
                    rule.kind,
                    rule.slot_role,
                    prerequisite_roles=rule.prerequisites,
                    departments=plan.scope,
                )
            )
        items.extend(
            self._documents.pending_of_types(plan.document_types, departments=plan.scope)
        )
        unique = dedupe_items(items)

        logger.debug(
            "pending_items_resolved",
            extra={
                "staff_id": str(staff.principal_id),
                "role": plan.role.value if plan.role else None,
                "item_count": len(unique),
            },
        )
        return unique

    def approved_by(self, staff: Principal) -> list[ApprovedItem]:
        items = self._forms.approved_by(staff.principal_id)
        items.extend(self._documents.reviewed_by(staff.principal_id))
        items.sort(key=_signed_order)
        return items

    def dashboard_stats(self, staff: Principal) -> DashboardStats:
        plan = self.plan(staff)
        pending = self.pending_for(staff)
        signed = self.approved_by(staff)
        resolved = self._role_table.resolve_principal(staff)
        return DashboardStats(
            staff_id=staff.principal_id,
            role=plan.role.value if plan.role else None,
            pending=_counts(pending),
            completed=_counts(signed),
            students_under_authority=len(self._users.students_under_authority(resolved)),
        )

    def admin_overview(self) -> AdminOverview:
        by_role = self._users.count_by_role()
        return AdminOverview(
            total_students=by_role[PrincipalKind.STUDENT.value],
            total_staff=by_role[PrincipalKind.STAFF.value],
            total_admins=by_role[PrincipalKind.ADMIN.value],
            documents_by_status=self._documents.count_by_status(),
            forms_submitted=self._forms.count_submitted(),
            forms_approved=self._forms.count_approved(),
            cleared_students=self._users.count_cleared_students(),
            students_by_department=self._users.students_by_department(),
        )


def _signed_order(item: ApprovedItem) -> tuple:
    # Undated stamps sort last.
    if item.approved_at is None:
        return (1,)
    return (0, item.approved_at)


def _counts(items) -> ApprovalCounts:
    forms = sum(1 for i in items if i.item_type == PendingItemType.FORM)
    return ApprovalCounts(forms=forms, documents=len(items) - forms)
