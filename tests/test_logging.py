"""Tests for the structured logging system (clearance_kernel/logging_config.py)."""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from clearance_kernel.domain.forms import FormKind
from clearance_kernel.domain.roles import ApprovalRole
from clearance_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests, then restore the suite's config."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "clearance_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info(
            "form_slot_approved", extra={"slot_key": "finance", "restamp": False},
        )

        record = _parse_log(stream)
        assert record["slot_key"] == "finance"
        assert record["restamp"] is False

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(student_id="stu-1", actor_id="staff-9")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["student_id"] == "stu-1"
        assert record["actor_id"] == "staff-9"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        try:
            raise ValueError("boom")
        except ValueError:
            logger.error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "traceback" in record

    def test_kernel_exception_code_extracted(self):
        """Kernel exceptions carry a .code and their structured fields."""
        from clearance_kernel.exceptions import GateNotSatisfiedError

        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        try:
            raise GateNotSatisfiedError("affidavit", "stu-1")
        except GateNotSatisfiedError:
            logger.warning("gate_rejected", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "GATE_NOT_SATISFIED"
        assert record["exc_type"] == "GateNotSatisfiedError"
        assert record["exc_form_kind"] == "affidavit"
        assert record["exc_student_id"] == "stu-1"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "student_id" not in record
        assert "form_id" not in record

    def test_uuid_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info("with_uuid", extra={"form_id_value": uid})

        assert _parse_log(stream)["form_id_value"] == str(uid)

    def test_enums_serialized_by_value(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info(
            "routed", extra={"form_kind": FormKind.AFFIDAVIT, "role": ApprovalRole.HEALTH},
        )

        record = _parse_log(stream)
        assert record["form_kind"] == "affidavit"
        assert record["role"] == "health"

    def test_sets_serialized_sorted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info(
            "scope", extra={"departments": frozenset({"Physics", "Computer Science"})},
        )

        assert _parse_log(stream)["departments"] == ["Computer Science", "Physics"]

    def test_datetimes_serialized_as_iso(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        completed_at = datetime(2024, 9, 1, 9, 30, tzinfo=timezone.utc)
        get_logger("test").info(
            "clearance_completed",
            extra={"completed_at": completed_at, "intake": date(2024, 9, 1)},
        )

        entry = _parse_log(stream)
        assert entry["completed_at"] == "2024-09-01T09:30:00+00:00"
        assert entry["intake"] == "2024-09-01"

    def test_unknown_types_fall_back_to_str(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("fee", extra={"amount": Decimal("12.50")})

        assert _parse_log(stream)["amount"] == "12.50"

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        # default level is INFO, so the debug line is dropped
        logs = _parse_all_logs(stream)
        assert len(logs) == 2
        for record in logs:
            assert {"ts", "level", "logger", "message"} <= set(record)


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", form_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "form_id": "y"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(actor_id="outer")
        with LogContext.bind(actor_id="inner"):
            assert LogContext.get_all()["actor_id"] == "inner"
        assert LogContext.get_all()["actor_id"] == "outer"

    def test_bind_restores_none(self):
        assert "student_id" not in LogContext.get_all()
        with LogContext.bind(student_id="temp"):
            assert LogContext.get_all()["student_id"] == "temp"
        assert "student_id" not in LogContext.get_all()

    def test_bind_stringifies_uuids(self):
        uid = uuid4()
        with LogContext.bind(form_id=uid):
            assert LogContext.get_all()["form_id"] == str(uid)

    def test_bind_restores_on_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(form_id="f-1"):
                raise RuntimeError("inside")
        assert "form_id" not in LogContext.get_all()

    def test_additive_set(self):
        LogContext.set(correlation_id="a")
        LogContext.set(student_id="b")
        ctx = LogContext.get_all()
        assert ctx["correlation_id"] == "a"
        assert ctx["student_id"] == "b"

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            actor_id="a",
            student_id="s",
            form_id="f",
            trace_id="t",
        )
        ctx = LogContext.get_all()
        assert len(ctx) == 5
        assert ctx["trace_id"] == "t"


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Tests for initialization."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        handlers = logging.getLogger("clearance_kernel").handlers
        assert h1 in handlers
        assert h2 not in handlers

    def test_get_logger_returns_child(self):
        logger = get_logger("services.approval")
        assert logger.name == "clearance_kernel.services.approval"

    def test_logger_hierarchy(self):
        """Child loggers inherit the clearance_kernel root config."""
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "clearance_kernel.deep.nested.module"
