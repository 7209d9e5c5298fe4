"""Database layer - engine, session scope and declarative base."""

from clearance_kernel.db.base import UUID, Base, UUIDString
from clearance_kernel.db.types import UTCDateTime
from clearance_kernel.db.engine import (
    build_engine,
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "build_engine",
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "Base",
    "UUIDString",
    "UTCDateTime",
    "UUID",
]
