"""Tests for settings loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from trustroute.config import CONFIG_ENV_VAR, Settings, load_settings, resolve_config_path


class TestLoadSettings:
    """Test JSON settings with per-key defaults."""

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path / "missing.json")

        assert settings == Settings()
        assert settings.source == "defaults"
        assert settings.escalation.high_value_limit == 100000.0

    def test_partial_overrides(self, tmp_path: Path) -> None:
        """Keys present in the file override; everything else keeps defaults."""
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps(
                {
                    "detection": {"fuzzy_matching": False},
                    "confidence": {"completions_for_proven": 5},
                    "escalation": {
                        "high_value_limit": 5000,
                        "depth_thresholds": {"executive": 9},
                        "max_emergency_depth": 12,
                        "liability": {"full_min_value": 20000},
                    },
                    "ranking": {"workload_penalty": 0.25},
                    "flags": {"delegation_enabled": True},
                }
            )
        )
        settings = load_settings(path)

        assert settings.source == str(path)
        assert settings.detection.fuzzy_matching is False
        assert settings.detection.minimum_keyword_matches == 2
        assert settings.confidence.completions_for_proven == 5
        assert settings.confidence.proven == 0.95
        assert settings.escalation.high_value_limit == 5000
        assert settings.escalation.depth_thresholds.executive == 9
        assert settings.escalation.depth_thresholds.supervisor == 3
        assert settings.escalation.liability.full_min_value == 20000
        assert settings.escalation.liability.shared_min_value == 5000.0
        assert settings.ranking.workload_penalty == 0.25
        assert settings.flag_overrides == {"delegation_enabled": True}

    def test_emergency_contacts(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps(
                {
                    "escalation": {
                        "emergency_contacts": [
                            {"authority": "manager", "contact_id": "pager@example.com"}
                        ]
                    }
                }
            )
        )
        contacts = load_settings(path).escalation.emergency_contacts

        assert len(contacts) == 1
        assert contacts[0].contact_id == "pager@example.com"
        assert contacts[0].response_time_sla_minutes == 60

    def test_malformed_json_uses_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{not json")

        assert load_settings(path) == Settings()

    def test_invalid_values_use_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"confidence": {"initial": 2.0}}))

        assert load_settings(path) == Settings()

    def test_env_var_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "env.json"
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

        assert resolve_config_path() == path
        assert resolve_config_path(tmp_path / "explicit.json") == tmp_path / "explicit.json"
