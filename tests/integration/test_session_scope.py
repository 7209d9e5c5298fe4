"""
Module-level engine and session_scope wiring.

Covers:
- get_engine / get_session before initialization
- session_scope commits on success and rolls back on error
- ClearanceEngine.from_config over a session_scope session
"""

import pytest
from sqlalchemy import func, select

from clearance_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from clearance_kernel.domain.clock import DeterministicClock
from clearance_kernel.models.user import User
from clearance_services.engine import ClearanceEngine


@pytest.fixture
def module_engine():
    reset_engine()
    engine = init_engine_from_url("sqlite://")
    create_tables()
    yield engine
    reset_engine()


def user_count() -> int:
    with session_scope() as session:
        return session.execute(select(func.count(User.id))).scalar_one()


class TestUninitialized:

    def test_get_engine_raises(self):
        reset_engine()

        with pytest.raises(RuntimeError, match="not initialized"):
            get_engine()
        with pytest.raises(RuntimeError):
            get_session()


class TestSessionScope:

    def test_commit_on_success(self, module_engine, default_config):
        with session_scope() as session:
            engine = ClearanceEngine.from_config(session, default_config, clock=DeterministicClock())
            engine.register_student("Ada Obi", "ada@uni.test", "Computer Science", "APP-0001")

        assert user_count() == 1

    def test_rollback_on_error(self, module_engine, default_config, captured_logs):
        with pytest.raises(RuntimeError):
            with session_scope() as session:
                engine = ClearanceEngine.from_config(session, default_config)
                engine.register_student("Ada Obi", "ada@uni.test", "Computer Science", "APP-0001")
                session.flush()
                raise RuntimeError("request failed")

        assert user_count() == 0
        assert any(r["message"] == "transaction_rolled_back" for r in captured_logs())

    def test_from_config_wires_routing(self, module_engine, default_config):
        with session_scope() as session:
            engine = ClearanceEngine.from_config(session, default_config)

            assert engine.role_table.fixed_departments["Legal"].value == "legal"
            assert len(engine.document_routing) == 9
            assert not engine.audit.enabled
