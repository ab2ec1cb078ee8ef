"""Tests for the trustroute CLI."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from trustroute.cli import main

SECURITY_AGENT = """---
name: Security Engineer
description: Finds and fixes vulnerabilities
---
Performs security audits, threat modeling and OWASP vulnerability scanning.
Handles authentication and encryption.
"""

TESTING_AGENT = """---
name: Test Writer
---
Writes pytest unit tests with coverage and testing assertions.
"""


def _write_agents(tmp_path: Path) -> tuple[Path, Path]:
    security = tmp_path / "security.md"
    security.write_text(SECURITY_AGENT)
    testing = tmp_path / "testing.md"
    testing.write_text(TESTING_AGENT)
    return security, testing


def test_version() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_bootstrap_json(tmp_path: Path) -> None:
    security, testing = _write_agents(tmp_path)
    runner = CliRunner()
    result = runner.invoke(main, ["bootstrap", "--json", str(security), str(testing)])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert [entry["agent_id"] for entry in payload] == ["security-engineer", "test-writer"]
    assert "security" in payload[0]["capabilities"]
    assert "testing" in payload[1]["specializations"]


def test_bootstrap_table(tmp_path: Path) -> None:
    security, _ = _write_agents(tmp_path)
    runner = CliRunner()
    result = runner.invoke(main, ["bootstrap", str(security)])

    assert result.exit_code == 0
    assert "Bootstrapped Agents" in result.output


def test_bootstrap_missing_file(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["bootstrap", str(tmp_path / "nope.md")])
    assert result.exit_code != 0


def test_rank(tmp_path: Path) -> None:
    security, testing = _write_agents(tmp_path)
    runner = CliRunner()
    result = runner.invoke(
        main, ["rank", "testing", "--agent", str(security), "--agent", str(testing)]
    )

    assert result.exit_code == 0
    assert "test-writer" in result.output


def test_rank_no_match(tmp_path: Path) -> None:
    security, _ = _write_agents(tmp_path)
    runner = CliRunner()
    result = runner.invoke(main, ["rank", "deployment", "--agent", str(security)])

    assert result.exit_code == 0
    assert "No agent offers" in result.output


def test_firebreak_passes() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["firebreak", "planner", "coder"])

    assert result.exit_code == 0
    assert "PASSED" in result.output


def test_firebreak_blocked() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["firebreak", "planner", "coder", "--depth", "8"])

    assert result.exit_code == 0
    assert "BLOCKED" in result.output
    assert "emergency" in result.output


def test_flags_default() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["flags"])

    assert result.exit_code == 0
    assert "Feature Flags" in result.output
    assert "yes" not in result.output


def test_flags_with_config(tmp_path: Path) -> None:
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"flags": {"delegation_enabled": True}}))
    runner = CliRunner()
    result = runner.invoke(main, ["--config", str(config), "flags"])

    assert result.exit_code == 0
    assert "yes" in result.output


def test_flags_import_malformed(tmp_path: Path) -> None:
    """A broken import file is reported as a usage error, not a traceback."""
    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    out_of_range = tmp_path / "bad.json"
    out_of_range.write_text(json.dumps({"predictive_routing": {"rollout_percentage": 150}}))
    runner = CliRunner()

    for path in (broken, out_of_range):
        result = runner.invoke(main, ["flags", "--import", str(path)])

        assert result.exit_code == 2
        assert "Invalid value for '--import'" in result.output
