"""
Tests for the ThinkGate command-line interface.
"""

import json

import pytest
from click.testing import CliRunner

from main import cli, parse_param


@pytest.fixture
def runner():
    return CliRunner()


class TestCli:
    """Smoke tests for the CLI commands."""

    def test_functions(self, runner):
        """Test listing the operations."""
        result = runner.invoke(cli, ["functions"])

        assert result.exit_code == 0
        assert "tough_reasoning" in result.output
        assert "intelligent_thinking_history" in result.output

    def test_run(self, runner, evidence_file):
        """Test a full replay and thinking run."""
        result = runner.invoke(cli, ["run", "Fix login", "--evidence", str(evidence_file), "--max-iterations", "2"])

        assert result.exit_code == 0, result.output
        assert "Task: Fix login" in result.output
        assert "Evidence: 4 entries" in result.output
        assert "## Intelligent Thinking Result" in result.output

    def test_run_json(self, runner, evidence_file):
        """Test JSON output of a run."""
        result = runner.invoke(cli, ["run", "Fix login", "--evidence", str(evidence_file), "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["decided_by"] in {"can_decide", "convergence", "budget_exhausted", "stopped"}
        assert data["summary"]["total_entries"] == 4
        assert 0.0 <= data["confidence"] <= 1.0

    def test_run_rejects_bad_evidence(self, runner, tmp_path):
        """Test that a malformed evidence file exits with an error."""
        path = tmp_path / "bad.json"
        path.write_text('{"not": "a list"}', encoding="utf-8")

        result = runner.invoke(cli, ["run", "task", "--evidence", str(path)])

        assert result.exit_code == 1
        assert "Invalid parameters" in result.output

    def test_call(self, runner, evidence_file):
        """Test running one operation over replayed evidence."""
        result = runner.invoke(cli, ["call", "exploration_summary", "--evidence", str(evidence_file)])

        assert result.exit_code == 0, result.output
        assert "**Total Explorations**: 4" in result.output

    def test_call_with_params(self, runner):
        """Test passing operation arguments."""
        result = runner.invoke(cli, ["call", "tough_reasoning", "--param", "max_iterations=2"])

        assert result.exit_code == 0, result.output
        assert "**Iterations:** 2" in result.output

    def test_call_unknown(self, runner):
        """Test an unknown operation exits non-zero."""
        result = runner.invoke(cli, ["call", "nope"])

        assert result.exit_code == 1
        assert "Unknown reasoning function: nope" in result.output

    def test_call_bad_param(self, runner):
        """Test that a malformed --param is a usage error."""
        result = runner.invoke(cli, ["call", "tough_reasoning", "--param", "novalue"])

        assert result.exit_code == 2


class TestParseParam:
    """Tests for key=value parsing."""

    def test_json_values(self):
        assert parse_param("max_iterations=3") == ("max_iterations", 3)
        assert parse_param("flag=true") == ("flag", True)

    def test_plain_strings(self):
        assert parse_param("query=src/app.py") == ("query", "src/app.py")
