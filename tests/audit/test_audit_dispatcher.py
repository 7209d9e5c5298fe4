"""
Tests for AuditDispatcher -- best-effort, bounded-wait audit writes.

Covers:
- receipts pass through from the collaborator
- no collaborator: dispatch is skipped and returns None
- collaborator failure and timeout: None, logged as COLLABORATOR_UNAVAILABLE
- config bridge: audit_enabled false yields a disabled dispatcher
"""

import dataclasses

from clearance_config.bridges import build_audit_dispatcher
from clearance_kernel.domain.values import AuditAction
from clearance_kernel.services.audit_service import AuditCollaborator, AuditDispatcher
from tests.conftest import (
    FailingAuditCollaborator,
    RecordingAuditCollaborator,
    SlowAuditCollaborator,
)


class TestDispatch:

    def test_receipt_returned(self, audit_dispatcher, audit_ledger):
        receipt = audit_dispatcher.dispatch(
            "APP-0001", AuditAction.FORM_SUBMITTED, {"form_kind": "newClearance"},
        )

        assert receipt.block_number == 1
        assert audit_ledger.records == [
            ("APP-0001", "FORM_SUBMITTED", {"form_kind": "newClearance"}),
        ]

    def test_plain_string_action(self, audit_dispatcher, audit_ledger):
        audit_dispatcher.dispatch("APP-0001", "CUSTOM_ACTION")

        assert audit_ledger.records == [("APP-0001", "CUSTOM_ACTION", {})]

    def test_details_are_copied(self, audit_dispatcher, audit_ledger):
        details = {"k": "v"}

        audit_dispatcher.dispatch("APP-0001", AuditAction.FORM_APPROVED, details)
        details["k"] = "changed"

        assert audit_ledger.records[0][2] == {"k": "v"}

    def test_recording_collaborator_satisfies_protocol(self, audit_ledger):
        assert isinstance(audit_ledger, AuditCollaborator)


class TestDisabled:

    def test_skipped_without_collaborator(self, captured_logs):
        dispatcher = AuditDispatcher(None)

        assert not dispatcher.enabled
        assert dispatcher.dispatch("APP-0001", AuditAction.FORM_SUBMITTED) is None
        assert [r["message"] for r in captured_logs()] == ["audit_dispatch_skipped"]
        dispatcher.shutdown()


class TestFailures:

    def test_failure_is_logged_not_raised(self, captured_logs):
        ledger = FailingAuditCollaborator()
        dispatcher = AuditDispatcher(ledger, timeout_seconds=1.0)
        try:
            assert dispatcher.dispatch("APP-0001", AuditAction.FORM_APPROVED) is None
        finally:
            dispatcher.shutdown()

        record = next(r for r in captured_logs() if r["message"] == "audit_dispatch_failed")
        assert ledger.calls == 1
        assert record["level"] == "WARNING"
        assert record["exc_code"] == "COLLABORATOR_UNAVAILABLE"
        assert record["exc_collaborator"] == "audit"
        assert record["subject_key"] == "APP-0001"

    def test_timeout_returns_none(self, captured_logs):
        slow = SlowAuditCollaborator()
        dispatcher = AuditDispatcher(slow, timeout_seconds=0.05)
        try:
            assert dispatcher.dispatch("APP-0001", AuditAction.FORM_APPROVED) is None
        finally:
            slow.release.set()
            dispatcher.shutdown()

        record = next(r for r in captured_logs() if r["message"] == "audit_dispatch_timeout")
        assert record["exc_code"] == "COLLABORATOR_UNAVAILABLE"
        assert "0.05" in record["exc_reason"]


class TestConfigBridge:

    def test_enabled_by_default(self, default_config):
        dispatcher = build_audit_dispatcher(default_config, RecordingAuditCollaborator())
        try:
            assert dispatcher.enabled
        finally:
            dispatcher.shutdown()

    def test_disabled_by_config(self, default_config):
        config = dataclasses.replace(
            default_config,
            side_effects=dataclasses.replace(default_config.side_effects, audit_enabled=False),
        )
        ledger = RecordingAuditCollaborator()

        dispatcher = build_audit_dispatcher(config, ledger)

        assert not dispatcher.enabled
        assert dispatcher.dispatch("APP-0001", AuditAction.FORM_SUBMITTED) is None
        assert ledger.records == []
