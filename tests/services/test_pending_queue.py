"""
Tests for PendingQueryService -- pending queues, signed-by-me lists,
dashboards and the admin overview.

Covers:
- the dual form reaches the School Officer only after the Registrar signs
- department scope for School Officers and department heads
- approval-set slots leave exactly the signer's queue
- documents routed by type
- unresolved staff and admins have empty queues; students are refused
- approved_by, dashboard_stats, admin_overview counters
"""

import pytest

from clearance_kernel.domain.dtos import PendingItemType
from clearance_kernel.domain.forms import APPROVAL_SET_ROLES, FormKind
from clearance_kernel.domain.values import DocumentType
from clearance_kernel.exceptions import UnauthorizedError


def form_ids(items, kind=None):
    return [
        i.item_id for i in items
        if i.item_type == PendingItemType.FORM and (kind is None or i.kind == kind.value)
    ]


@pytest.fixture
def new_clearance(engine, cast, payloads):
    return engine.submit(FormKind.NEW_CLEARANCE, cast.student, payloads[FormKind.NEW_CLEARANCE])


class TestDualQueue:

    def test_registrar_sees_fresh_submission(self, engine, cast, new_clearance):
        items = engine.pending_for(cast.registrar)

        assert form_ids(items) == [new_clearance.form_id]
        assert items[0].slot_key == "deputyRegistrar"
        assert items[0].student_name == "Ada Obi"
        assert items[0].application_id == "APP-0001"

    def test_school_officer_waits_for_registrar(self, engine, cast, new_clearance):
        assert engine.pending_for(cast.school_officer) == []

        engine.approve(
            new_clearance.form_id, FormKind.NEW_CLEARANCE, cast.registrar, "deputyRegistrar",
        )

        assert form_ids(engine.pending_for(cast.school_officer)) == [new_clearance.form_id]
        assert engine.pending_for(cast.registrar) == []

    def test_officer_first_stamp_never_queues_registrar_twice(self, engine, cast, new_clearance):
        engine.approve(
            new_clearance.form_id, FormKind.NEW_CLEARANCE, cast.school_officer, "schoolOfficer",
        )

        assert form_ids(engine.pending_for(cast.registrar)) == [new_clearance.form_id]
        assert engine.pending_for(cast.school_officer) == []

    def test_other_departments_officer_never_sees_it(self, engine, cast, new_clearance):
        engine.approve(
            new_clearance.form_id, FormKind.NEW_CLEARANCE, cast.registrar, "deputyRegistrar",
        )

        assert engine.pending_for(cast.other_school_officer) == []

    def test_cleared_form_leaves_every_queue(self, engine, cast, cleared_gate):
        assert engine.pending_for(cast.registrar) == []
        assert engine.pending_for(cast.school_officer) == []


class TestApprovalSetQueue:

    @pytest.fixture
    def prov_admission(self, engine, cast, payloads, cleared_gate):
        return engine.submit(
            FormKind.PROV_ADMISSION, cast.student, payloads[FormKind.PROV_ADMISSION],
        )

    def test_every_slot_holder_sees_it(self, engine, cast, prov_admission):
        for role in APPROVAL_SET_ROLES:
            queue = engine.pending_for(cast.holder_of(role))
            assert form_ids(queue, FormKind.PROV_ADMISSION) == [prov_admission.form_id], role

    def test_signing_removes_only_own_slot(self, engine, cast, prov_admission):
        engine.approve(prov_admission.form_id, FormKind.PROV_ADMISSION, cast.finance, "finance")

        assert form_ids(engine.pending_for(cast.finance)) == []
        assert form_ids(engine.pending_for(cast.library)) == [prov_admission.form_id]

    def test_hod_scope(self, engine, cast, prov_admission):
        other_hod = engine.register_staff(
            "Prof Gear", "hod.me@uni.test", "Mechanical Engineering HOD", "S-031",
        )

        assert engine.pending_for(other_hod) == []
        assert form_ids(engine.pending_for(cast.hod)) == [prov_admission.form_id]

    def test_legal_does_not_review_prov_admission(self, engine, cast, prov_admission):
        assert engine.pending_for(cast.legal) == []


class TestSingleQueue:

    def test_affidavit_reaches_legal(self, engine, cast, payloads, cleared_gate):
        submitted = engine.submit(FormKind.AFFIDAVIT, cast.student, payloads[FormKind.AFFIDAVIT])

        assert form_ids(engine.pending_for(cast.legal)) == [submitted.form_id]

        engine.approve(submitted.form_id, FormKind.AFFIDAVIT, cast.legal)

        assert engine.pending_for(cast.legal) == []


class TestDocumentQueue:

    def test_routed_by_type(self, engine, cast):
        waec = engine.upload_document(cast.student, DocumentType.WAEC, "WAEC 2022")
        receipt = engine.upload_document(cast.student, "Payment Receipt", "School fees")

        officer_queue = engine.pending_for(cast.school_officer)
        finance_queue = engine.pending_for(cast.finance)

        assert [i.item_id for i in officer_queue] == [waec.document_id]
        assert officer_queue[0].item_type == PendingItemType.DOCUMENT
        assert officer_queue[0].kind == "WAEC"
        assert [i.item_id for i in finance_queue] == [receipt.document_id]

    def test_scoped_document_queue(self, engine, cast):
        engine.upload_document(cast.other_student, DocumentType.JAMB_RESULT, "JAMB")

        assert engine.pending_for(cast.school_officer) == []
        assert len(engine.pending_for(cast.other_school_officer)) == 1

    def test_reviewed_document_leaves_queue(self, engine, cast):
        doc = engine.upload_document(cast.student, DocumentType.MEDICAL_REPORT, "Checkup")

        engine.review_document(doc.document_id, cast.health, "approved")

        assert engine.pending_for(cast.health) == []

    def test_library_has_no_document_types(self, engine, cast):
        for doc_type in DocumentType:
            engine.upload_document(cast.student, doc_type, doc_type.value)

        assert engine.pending_for(cast.library) == []


class TestEmptyQueues:

    def test_unresolved_department(self, engine, cast, new_clearance):
        caterer = engine.register_staff("Cook", "cook@uni.test", "Catering", "S-090", [])

        assert engine.pending_for(caterer) == []

    def test_admin_has_no_approval_role(self, engine, cast, new_clearance):
        assert engine.pending_for(cast.admin) == []

    def test_student_refused(self, engine, cast):
        with pytest.raises(UnauthorizedError):
            engine.pending_for(cast.student)


class TestApprovedBy:

    def test_forms_and_documents_in_signing_order(self, engine, cast, payloads, clock):
        nc = engine.submit(FormKind.NEW_CLEARANCE, cast.student, payloads[FormKind.NEW_CLEARANCE])
        letter = engine.upload_document(cast.student, DocumentType.ADMISSION_LETTER, "Letter")

        clock.advance(10)
        engine.review_document(letter.document_id, cast.registrar, "approved")
        clock.advance(10)
        engine.approve(nc.form_id, FormKind.NEW_CLEARANCE, cast.registrar, "deputyRegistrar")

        signed = engine.approved_by(cast.registrar)

        assert [i.item_id for i in signed] == [letter.document_id, nc.form_id]
        assert signed[1].slot_key == "deputyRegistrar"

    def test_rejections_are_not_signoffs(self, engine, cast):
        doc = engine.upload_document(cast.student, DocumentType.WAEC, "WAEC")

        engine.review_document(doc.document_id, cast.school_officer, "rejected", "blurred scan")

        assert engine.approved_by(cast.school_officer) == []


class TestDashboards:

    def test_dashboard_counts(self, engine, cast, payloads):
        nc = engine.submit(FormKind.NEW_CLEARANCE, cast.student, payloads[FormKind.NEW_CLEARANCE])
        engine.submit(
            FormKind.NEW_CLEARANCE, cast.other_student, payloads[FormKind.NEW_CLEARANCE],
        )
        engine.upload_document(cast.student, DocumentType.ADMISSION_LETTER, "Letter")
        engine.approve(nc.form_id, FormKind.NEW_CLEARANCE, cast.registrar, "deputyRegistrar")

        stats = engine.dashboard_stats(cast.registrar)

        assert stats.role == "deputyRegistrar"
        assert (stats.pending.forms, stats.pending.documents) == (1, 1)
        assert (stats.completed.forms, stats.completed.documents) == (1, 0)
        assert stats.students_under_authority == 2

    def test_scoped_dashboard(self, engine, cast):
        stats = engine.dashboard_stats(cast.school_officer)

        assert stats.role == "schoolOfficer"
        assert stats.students_under_authority == 1

    def test_admin_overview(self, engine, cast, payloads, cleared_gate):
        engine.upload_document(cast.student, DocumentType.WAEC, "WAEC")

        overview = engine.admin_overview()

        assert overview.total_students == 2
        assert overview.total_staff == 9
        assert overview.total_admins == 1
        assert overview.forms_submitted[FormKind.NEW_CLEARANCE] == 1
        assert overview.forms_approved[FormKind.NEW_CLEARANCE] == 1
        assert overview.forms_submitted[FormKind.AFFIDAVIT] == 0
        assert overview.documents_by_status == {"pending": 1, "approved": 0, "rejected": 0}
        assert overview.cleared_students == 0
        assert overview.students_by_department == {
            "Computer Science": 1, "Mechanical Engineering": 1,
        }
