"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write-side service.  Concrete services receive a SQLAlchemy
    ``Session`` and use ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or roll back the outer transaction.  ``session_scope()``
    (or the test harness) owns commit/rollback.  Savepoints
    (``session.begin_nested()``) are allowed for best-effort side effects.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from clearance_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide query-only methods -- those belong in
          ``clearance_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
