"""
clearance_config -- single public entrypoint for clearance configuration.

Responsibility:
    Provides the only way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files or environment variables directly.

Architecture position:
    Configuration.  Sits above ``clearance_kernel`` and below
    ``clearance_services``.  The kernel never imports this package;
    ``bridges`` translate config into kernel inputs.

Environment:
    CLEARANCE_CONFIG_PATH     path of a YAML file replacing defaults.yaml
    CLEARANCE_DATABASE_URL    overrides ``database.url``

Failure modes:
    - ``FileNotFoundError`` -- CLEARANCE_CONFIG_PATH points nowhere.
    - ``ValueError`` / ``KeyError`` -- the YAML does not parse into the
      schema.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``CLEARANCE_CONFIG_TRACE`` log entry carrying config_id, version and
    checksum.
"""

from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path

from clearance_config.loader import compute_checksum, load_config
from clearance_config.schema import (
    ClearanceConfig,
    DatabaseConfig,
    DocumentConfig,
    RoleTableConfig,
    SideEffectConfig,
)
from clearance_kernel.logging_config import get_logger

_logger = get_logger("config")

CONFIG_PATH_ENV = "CLEARANCE_CONFIG_PATH"
DATABASE_URL_ENV = "CLEARANCE_DATABASE_URL"

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | str | None = None) -> ClearanceConfig:
    """The only public configuration entrypoint.

    Resolution order for the file: ``config_path`` argument, then
    CLEARANCE_CONFIG_PATH, then the packaged defaults.  The database URL
    is then overridden by CLEARANCE_DATABASE_URL when set.
    """
    path = Path(config_path or os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)
    config = load_config(path)

    database_url = os.environ.get(DATABASE_URL_ENV)
    if database_url:
        config = replace(config, database=replace(config.database, url=database_url))

    _logger.info(
        "CLEARANCE_CONFIG_TRACE",
        extra={
            "trace_type": "CLEARANCE_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "config_path": str(path),
            "fixed_department_count": len(config.role_table.fixed_departments),
        },
    )
    return config


__all__ = [
    "get_active_config",
    "compute_checksum",
    "ClearanceConfig",
    "DatabaseConfig",
    "DocumentConfig",
    "RoleTableConfig",
    "SideEffectConfig",
    "CONFIG_PATH_ENV",
    "DATABASE_URL_ENV",
    "DEFAULT_CONFIG_PATH",
]
