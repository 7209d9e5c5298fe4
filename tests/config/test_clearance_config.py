"""
Tests for clearance_config -- YAML loading, validation and bridges.

Covers:
- packaged defaults parse and bridge into the kernel's RoleTable and
  document routing
- CLEARANCE_CONFIG_PATH and CLEARANCE_DATABASE_URL overrides
- deterministic checksum
- parse errors for unknown roles, unknown document types, duplicate
  routing, missing sections and bad side-effect bounds
"""

from __future__ import annotations

import copy

import pytest
import yaml

from clearance_config import (
    CONFIG_PATH_ENV,
    DATABASE_URL_ENV,
    DEFAULT_CONFIG_PATH,
    compute_checksum,
    get_active_config,
)
from clearance_config.bridges import build_document_routing, build_role_table
from clearance_config.loader import load_yaml_file, parse_config
from clearance_kernel.domain.roles import ApprovalRole
from clearance_kernel.domain.values import DocumentType


@pytest.fixture
def default_data():
    return load_yaml_file(DEFAULT_CONFIG_PATH)


def write_config(tmp_path, data) -> str:
    path = tmp_path / "clearance.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestDefaults:

    def test_identity(self, default_config):
        assert default_config.config_id == "clearance-default"
        assert default_config.version == 1
        assert len(default_config.checksum) == 64

    def test_side_effects(self, default_config):
        side_effects = default_config.side_effects
        assert side_effects.audit_enabled is True
        assert side_effects.audit_timeout_seconds == 2.0
        assert side_effects.audit_max_workers == 1

    def test_role_table_bridge(self, default_config):
        table = build_role_table(default_config)

        assert table.fixed_departments["Registrar"] == ApprovalRole.DEPUTY_REGISTRAR
        assert table.fixed_departments["Legal"] == ApprovalRole.LEGAL
        assert table.hod_suffix == " HOD"
        assert table.school_officer_department == "School Officer"

    def test_document_routing_bridge(self, default_config):
        routing = build_document_routing(default_config)

        assert set(routing) == set(DocumentType)
        assert routing[DocumentType.TRANSCRIPT] == ApprovalRole.DEPARTMENT_HEAD
        assert routing[DocumentType.WAEC] == ApprovalRole.SCHOOL_OFFICER
        assert routing[DocumentType.PASSPORT] == ApprovalRole.STUDENT_SUPPORT


class TestOverrides:

    def test_config_path_env(self, tmp_path, monkeypatch, default_data):
        default_data["config_id"] = "campus-b"
        monkeypatch.setenv(CONFIG_PATH_ENV, write_config(tmp_path, default_data))

        assert get_active_config().config_id == "campus-b"

    def test_explicit_path_beats_env(self, tmp_path, monkeypatch, default_data):
        default_data["config_id"] = "from-env"
        monkeypatch.setenv(CONFIG_PATH_ENV, write_config(tmp_path, default_data))

        assert get_active_config(DEFAULT_CONFIG_PATH).config_id == "clearance-default"

    def test_database_url_env(self, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV, "postgresql://clearance@db/clearance")

        config = get_active_config(DEFAULT_CONFIG_PATH)

        assert config.database.url == "postgresql://clearance@db/clearance"
        assert config.database.pool_size == 5

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")

    def test_trace_logged(self, captured_logs):
        config = get_active_config(DEFAULT_CONFIG_PATH)

        record = next(r for r in captured_logs() if r["message"] == "CLEARANCE_CONFIG_TRACE")
        assert record["checksum"] == config.checksum
        assert record["config_id"] == "clearance-default"


class TestChecksum:

    def test_deterministic(self, default_data):
        assert compute_checksum(default_data) == compute_checksum(copy.deepcopy(default_data))

    def test_changes_with_content(self, default_data):
        changed = copy.deepcopy(default_data)
        changed["side_effects"]["audit_timeout_seconds"] = 5.0

        assert compute_checksum(changed) != compute_checksum(default_data)


class TestParseErrors:

    def test_unknown_fixed_role(self, default_data):
        default_data["role_table"]["fixed_departments"]["Bursary"] = "bursar"

        with pytest.raises(ValueError, match="unknown approval role"):
            parse_config(default_data)

    def test_unknown_document_type(self, default_data):
        default_data["documents"]["routing"]["finance"].append("Bank Statement")

        with pytest.raises(ValueError, match="unknown document type"):
            parse_config(default_data)

    def test_document_routed_twice(self, default_data):
        default_data["documents"]["routing"]["legal"] = ["Passport"]

        with pytest.raises(ValueError, match="routed to both"):
            parse_config(default_data)

    def test_missing_role_table(self, default_data):
        del default_data["role_table"]

        with pytest.raises(KeyError):
            parse_config(default_data)

    def test_empty_hod_suffix(self, default_data):
        default_data["role_table"]["hod_suffix"] = ""

        with pytest.raises(ValueError, match="hod_suffix"):
            parse_config(default_data)

    @pytest.mark.parametrize("key,value", [
        ("audit_timeout_seconds", 0),
        ("audit_max_workers", 0),
    ])
    def test_side_effect_bounds(self, default_data, key, value):
        default_data["side_effects"][key] = value

        with pytest.raises(ValueError, match=key):
            parse_config(default_data)

    def test_optional_sections_default(self, default_data):
        del default_data["side_effects"]
        del default_data["database"]

        config = parse_config(default_data)

        assert config.side_effects.audit_enabled is True
        assert config.database.url == "sqlite:///clearance.db"
