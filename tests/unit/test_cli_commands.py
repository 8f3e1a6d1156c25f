"""Unit tests for the CLI: Typer command registration and basic behavior.

Exercises CLI app registration, help output, and a small end-to-end flow via
typer.testing.CliRunner against a temporary store.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from freightline.cli.app import app

runner = CliRunner()

_COMMANDS = [
    "warehouse-add",
    "stage-add",
    "publish",
    "approve",
    "promote",
    "verify",
    "available",
    "history",
    "freight-id",
]


def _last_line(output: str) -> str:
    return output.strip().splitlines()[-1].strip()


# ---------------------------------------------------------------------------
# Test: CLI help and registration
# ---------------------------------------------------------------------------


class TestCliApp:
    """The CLI must register all expected commands and show help."""

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        # Typer's no_args_is_help may exit with 0 or 2 depending on version
        assert result.exit_code in (0, 2)
        assert "usage" in result.output.lower()

    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in _COMMANDS:
            assert command in result.output

    @pytest.mark.parametrize("command", _COMMANDS)
    def test_command_help(self, command: str):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0


# ---------------------------------------------------------------------------
# Test: commands against a temporary store
# ---------------------------------------------------------------------------


class TestCliFlow:
    @pytest.fixture
    def invoke(self, tmp_path: Path):
        store = tmp_path / "cli.db"

        def _invoke(*args: str):
            return runner.invoke(app, ["--store", str(store), *args])

        return _invoke

    @pytest.fixture
    def seeded(self, invoke) -> str:
        """Register w1 -> dev (direct) -> qa (after 1h in dev) and publish one Freight."""
        assert invoke("warehouse-add", "w1", "--git", "https://github.com/example/app").exit_code == 0
        assert invoke("stage-add", "dev", "-w", "w1", "--direct").exit_code == 0
        assert invoke("stage-add", "qa", "-w", "w1", "--upstream", "dev", "--soak", "1h").exit_code == 0
        result = invoke("publish", "w1", "--commit", "https://github.com/example/app@c1")
        assert result.exit_code == 0, result.output
        return _last_line(result.output)

    def test_publish_prints_freight_id(self, invoke, seeded: str):
        result = invoke("freight-id", "w1", "--commit", "https://github.com/example/app.git@c1")
        assert result.exit_code == 0
        assert _last_line(result.output) == seeded

    def test_freight_id_show_parts(self, invoke):
        result = invoke("freight-id", "w1", "--artifact", "bundle:nightly:7", "--show-parts")
        assert result.exit_code == 0
        assert "bundle:nightly:7" in result.output

    def test_availability_and_approval(self, invoke, seeded: str):
        dev = invoke("available", "dev", "--names-only")
        assert dev.exit_code == 0
        assert seeded in dev.output

        qa = invoke("available", "qa", "--names-only")
        assert qa.exit_code == 0
        assert seeded not in qa.output

        assert invoke("approve", seeded, "--stage", "qa").exit_code == 0
        assert seeded in invoke("available", "qa", "--names-only").output

    def test_promote_verify_history(self, invoke, seeded: str):
        assert invoke("promote", "dev", seeded).exit_code == 0
        verify = invoke("verify", "dev", "--id", "v1", "--phase", "Successful")
        assert verify.exit_code == 0, verify.output
        history = invoke("history", "dev")
        assert history.exit_code == 0
        assert "v1" in history.output

    def test_promotion_of_unavailable_freight_fails(self, invoke, seeded: str):
        result = invoke("promote", "qa", seeded)
        assert result.exit_code == 1
        assert "rejected" in result.output.lower()

    def test_unknown_stage(self, invoke, seeded: str):
        result = invoke("available", "prod")
        assert result.exit_code == 1

    def test_stage_without_sources_is_usage_error(self, invoke, seeded: str):
        result = invoke("stage-add", "prod", "-w", "w1")
        assert result.exit_code == 2

    def test_bad_strategy_is_usage_error(self, invoke, seeded: str):
        result = invoke("stage-add", "prod", "-w", "w1", "-u", "qa", "--strategy", "Most")
        assert result.exit_code == 2

    def test_bad_artifact_is_usage_error(self, invoke, seeded: str):
        result = invoke("publish", "w1", "--image", "ghcr.io/example/app")
        assert result.exit_code == 2

    def test_publish_from_unsubscribed_repo_fails(self, invoke, seeded: str):
        result = invoke("publish", "w1", "--commit", "https://github.com/example/other@c1")
        assert result.exit_code == 1
        assert "does not subscribe" in result.output

    def test_stage_for_unknown_warehouse(self, invoke):
        result = invoke("stage-add", "dev", "-w", "ghost", "--direct")
        assert result.exit_code == 1
