"""
Configuration Loader (``clearance_config.loader``).

Responsibility
--------------
Loads the clearance YAML file and parses it into typed
``clearance_config.schema`` dataclasses.  Runtime callers use
``clearance_config.get_active_config()``, never this module directly.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required sections have no silent defaults.
* Role names and document types are validated against the kernel's
  closed enums; a document type may be routed to at most one role.
* ``compute_checksum`` produces a deterministic SHA-256 identity of the
  parsed source.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unknown role / document type, duplicate routing  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from clearance_config.schema import (
    ClearanceConfig,
    DatabaseConfig,
    DocumentConfig,
    RoleTableConfig,
    SideEffectConfig,
)
from clearance_kernel.domain.roles import ApprovalRole
from clearance_kernel.domain.values import DocumentType


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _parse_role(value: Any, where: str) -> str:
    try:
        return ApprovalRole(value).value
    except ValueError:
        raise ValueError(f"{where}: unknown approval role {value!r}") from None


def _parse_document_type(value: Any, where: str) -> str:
    try:
        return DocumentType(value).value
    except ValueError:
        raise ValueError(f"{where}: unknown document type {value!r}") from None


def parse_role_table(data: dict[str, Any]) -> RoleTableConfig:
    fixed = data["fixed_departments"]
    if not isinstance(fixed, dict):
        raise ValueError("role_table.fixed_departments must be a mapping")

    hod_suffix = data.get("hod_suffix", " HOD")
    if not hod_suffix:
        raise ValueError("role_table.hod_suffix must be non-empty")

    return RoleTableConfig(
        fixed_departments=tuple(
            (str(department), _parse_role(role, f"role_table.{department}"))
            for department, role in sorted(fixed.items())
        ),
        hod_suffix=hod_suffix,
        school_officer_department=data.get("school_officer_department", "School Officer"),
    )


def parse_documents(data: dict[str, Any]) -> DocumentConfig:
    routing = data["routing"]
    if not isinstance(routing, dict):
        raise ValueError("documents.routing must be a mapping")

    seen: dict[str, str] = {}
    entries: list[tuple[str, tuple[str, ...]]] = []
    for role_name, types in sorted(routing.items()):
        role = _parse_role(role_name, "documents.routing")
        parsed = tuple(
            _parse_document_type(t, f"documents.routing.{role}") for t in (types or ())
        )
        for doc_type in parsed:
            if doc_type in seen:
                raise ValueError(
                    f"documents.routing: {doc_type!r} routed to both "
                    f"{seen[doc_type]} and {role}"
                )
            seen[doc_type] = role
        entries.append((role, parsed))
    return DocumentConfig(routing=tuple(entries))


def parse_side_effects(data: dict[str, Any]) -> SideEffectConfig:
    timeout = float(data.get("audit_timeout_seconds", 2.0))
    if timeout <= 0:
        raise ValueError("side_effects.audit_timeout_seconds must be positive")
    workers = int(data.get("audit_max_workers", 1))
    if workers < 1:
        raise ValueError("side_effects.audit_max_workers must be at least 1")
    return SideEffectConfig(
        audit_enabled=bool(data.get("audit_enabled", True)),
        audit_timeout_seconds=timeout,
        audit_max_workers=workers,
    )


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    return DatabaseConfig(
        url=data.get("url", DatabaseConfig.url),
        echo=bool(data.get("echo", False)),
        pool_size=int(data.get("pool_size", 5)),
        max_overflow=int(data.get("max_overflow", 10)),
    )


def parse_config(data: dict[str, Any]) -> ClearanceConfig:
    """Parse a full configuration document."""
    return ClearanceConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        role_table=parse_role_table(data["role_table"]),
        documents=parse_documents(data["documents"]),
        side_effects=parse_side_effects(data.get("side_effects") or {}),
        database=parse_database(data.get("database") or {}),
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> ClearanceConfig:
    return parse_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
