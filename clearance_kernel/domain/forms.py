"""
Form Registry -- typed descriptors of the five clearance form kinds.

Responsibility:
    Declares, for every ``FormKind``, its approval topology, the roles that
    own its approval slots, whether submission is gated on NewClearance,
    and which department receives the "New Form Submitted" notification.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Engines and services look form
    behaviour up here instead of branching on kind names.

Topologies:
    DUAL          NewClearance: two fixed slots, deputyRegistrar and
                  schoolOfficer, both required, order independent.
    APPROVAL_SET  ProvisionalAdmission: seven role slots seeded at
                  creation in a fixed order; next pending = first false.
    SINGLE        PersonalRecord, PersonalRecord2, Affidavit: one flag,
                  owned by a single role.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from clearance_kernel.domain.roles import ApprovalRole


class FormKind(str, Enum):
    NEW_CLEARANCE = "newClearance"
    PROV_ADMISSION = "provAdmission"
    PERSONAL_RECORD = "personalRecord"
    PERSONAL_RECORD_2 = "personalRecord2"
    AFFIDAVIT = "affidavit"


class ApprovalTopology(str, Enum):
    DUAL = "dual"
    APPROVAL_SET = "approval_set"
    SINGLE = "single"


DUAL_SLOT_ROLES: tuple[ApprovalRole, ...] = (
    ApprovalRole.DEPUTY_REGISTRAR,
    ApprovalRole.SCHOOL_OFFICER,
)

APPROVAL_SET_ROLES: tuple[ApprovalRole, ...] = (
    ApprovalRole.SCHOOL_OFFICER,
    ApprovalRole.DEPUTY_REGISTRAR,
    ApprovalRole.DEPARTMENT_HEAD,
    ApprovalRole.STUDENT_SUPPORT,
    ApprovalRole.FINANCE,
    ApprovalRole.LIBRARY,
    ApprovalRole.HEALTH,
)


@dataclass(frozen=True)
class FormDescriptor:
    """
    Static description of one form kind.

    ``submission_department`` is the department notified on submission;
    None means the student's own declared department.
    """

    kind: FormKind
    title: str
    topology: ApprovalTopology
    slot_roles: tuple[ApprovalRole, ...]
    gated: bool
    submission_department: str | None

    @property
    def valid_slot_keys(self) -> tuple[str, ...]:
        return tuple(role.value for role in self.slot_roles)

    @property
    def owner_role(self) -> ApprovalRole | None:
        """The single owning role of a SINGLE-topology form."""
        if self.topology != ApprovalTopology.SINGLE:
            return None
        return self.slot_roles[0]


FORM_REGISTRY: dict[FormKind, FormDescriptor] = {
    FormKind.NEW_CLEARANCE: FormDescriptor(
        kind=FormKind.NEW_CLEARANCE,
        title="New Clearance Form",
        topology=ApprovalTopology.DUAL,
        slot_roles=DUAL_SLOT_ROLES,
        gated=False,
        submission_department="Registrar",
    ),
    FormKind.PROV_ADMISSION: FormDescriptor(
        kind=FormKind.PROV_ADMISSION,
        title="Provisional Admission Form",
        topology=ApprovalTopology.APPROVAL_SET,
        slot_roles=APPROVAL_SET_ROLES,
        gated=True,
        submission_department=None,
    ),
    FormKind.PERSONAL_RECORD: FormDescriptor(
        kind=FormKind.PERSONAL_RECORD,
        title="Personal Record Form",
        topology=ApprovalTopology.SINGLE,
        slot_roles=(ApprovalRole.STUDENT_SUPPORT,),
        gated=True,
        submission_department="Student Support",
    ),
    FormKind.PERSONAL_RECORD_2: FormDescriptor(
        kind=FormKind.PERSONAL_RECORD_2,
        title="Personal Record 2 Form",
        topology=ApprovalTopology.SINGLE,
        slot_roles=(ApprovalRole.DEPUTY_REGISTRAR,),
        gated=True,
        submission_department="Registrar",
    ),
    FormKind.AFFIDAVIT: FormDescriptor(
        kind=FormKind.AFFIDAVIT,
        title="Affidavit Form",
        topology=ApprovalTopology.SINGLE,
        slot_roles=(ApprovalRole.LEGAL,),
        gated=True,
        submission_department="Legal",
    ),
}

ALL_FORM_KINDS: tuple[FormKind, ...] = tuple(FormKind)
GATED_FORM_KINDS: tuple[FormKind, ...] = tuple(
    kind for kind, desc in FORM_REGISTRY.items() if desc.gated
)


def descriptor_for(kind: FormKind | str) -> FormDescriptor:
    """Look up a descriptor; raises ValueError for an unknown kind."""
    return FORM_REGISTRY[FormKind(kind)]
