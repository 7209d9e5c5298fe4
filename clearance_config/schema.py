"""
Clearance configuration schema.

Frozen dataclasses the YAML configuration is parsed into.  The loader
produces them, ``bridges`` converts them into kernel inputs
(``RoleTable``, document routing) and ``get_active_config()`` hands the
assembled ``ClearanceConfig`` to the application.

Mappings are stored as tuples of pairs so every config object stays
hashable and its checksum deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RoleTableConfig:
    """Department -> canonical role table."""

    fixed_departments: tuple[tuple[str, str], ...]  # (department, role)
    hod_suffix: str = " HOD"
    school_officer_department: str = "School Officer"


@dataclass(frozen=True)
class DocumentConfig:
    """Which role reviews which document types."""

    routing: tuple[tuple[str, tuple[str, ...]], ...]  # (role, document types)


@dataclass(frozen=True)
class SideEffectConfig:
    audit_enabled: bool = True
    audit_timeout_seconds: float = 2.0
    audit_max_workers: int = 1


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = "sqlite:///clearance.db"
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10


@dataclass(frozen=True)
class ClearanceConfig:
    """The assembled runtime configuration."""

    config_id: str
    version: int
    role_table: RoleTableConfig
    documents: DocumentConfig
    side_effects: SideEffectConfig = field(default_factory=SideEffectConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    checksum: str = ""
