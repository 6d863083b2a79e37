"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
They don't validate correctness deeply - just that commands work.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

# Project root
PROJECT_ROOT = Path(__file__).parent.parent.parent


def run_cli_command(
    args: list[str],
    data_dir: Path,
    stdin: str = "",
    timeout: int = 30,
) -> tuple[int, str, str]:
    """
    Run a CLI command and return exit code, stdout, stderr.

    Args:
        args: Arguments after 'python -m src.cli.practice'
        data_dir: Isolated data directory for snapshots and history
        stdin: Text fed to interactive prompts
        timeout: Maximum time to wait

    Returns:
        Tuple of (exit_code, stdout, stderr)
    """
    env = {
        **os.environ,
        "PRACTICE_DATA_DIR": str(data_dir),
        "PRACTICE_STORAGE_BACKEND": "json",
        "PRACTICE_LOG_LEVEL": "WARNING",
        "COLUMNS": "160",
    }
    env.pop("PRACTICE_EVALUATION_URL", None)

    result = subprocess.run(
        [sys.executable, "-m", "src.cli.practice", *args],
        cwd=PROJECT_ROOT,
        input=stdin,
        capture_output=True,
        text=True,
        timeout=timeout,
        env=env,
    )

    return result.returncode, result.stdout, result.stderr


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def bank(tmp_path):
    """Small question bank on disk."""
    path = tmp_path / "bank.json"
    path.write_text(
        json.dumps(
            {
                "course_id": "ccna",
                "questions": [
                    {
                        "id": "q1",
                        "question": "What does OSPF use to choose routes?",
                        "sample_answer": "OSPF computes shortest paths using link costs.",
                        "difficulty": "easy",
                        "week": "week-1",
                        "source": "notes/ospf_basics.pdf",
                    },
                    {
                        "id": "q2",
                        "question": "Why split a network into VLANs?",
                        "sample_answer": "VLANs separate broadcast domains and isolate traffic.",
                        "difficulty": "medium",
                        "week": "week-2",
                        "source": "notes/vlan_design.pdf",
                    },
                ],
            }
        ),
        encoding="utf-8",
    )
    return path


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self, data_dir):
        """Main help should display without errors."""
        code, stdout, stderr = run_cli_command(["--help"], data_dir)

        assert code == 0, f"Help failed: {stderr}"
        assert "Commands" in stdout
        for command in ("run", "recover", "history", "analytics", "recommend", "goal"):
            assert command in stdout

    def test_run_help(self, data_dir):
        code, stdout, stderr = run_cli_command(["run", "--help"], data_dir)

        assert code == 0, f"Help failed: {stderr}"
        assert "--focus" in stdout


class TestEmptyState:
    """Commands on a fresh data directory."""

    def test_history_empty(self, data_dir):
        code, stdout, stderr = run_cli_command(["history"], data_dir)

        assert code == 0, f"history failed: {stderr}"
        assert "No sessions yet" in stdout

    def test_recover_nothing(self, data_dir):
        code, stdout, stderr = run_cli_command(["recover"], data_dir)

        assert code == 0, f"recover failed: {stderr}"
        assert "No interrupted session" in stdout

    def test_analytics_empty(self, data_dir):
        code, stdout, stderr = run_cli_command(["analytics"], data_dir)

        assert code == 0, f"analytics failed: {stderr}"
        assert "Sessions: 0" in stdout

    def test_goal_set_and_show(self, data_dir):
        code, stdout, stderr = run_cli_command(["goal", "3"], data_dir)

        assert code == 0, f"goal failed: {stderr}"
        assert "Daily goal set to 3" in stdout
        assert "0/3" in stdout

    def test_goal_rejects_zero(self, data_dir):
        code, stdout, _ = run_cli_command(["goal", "0"], data_dir)

        assert code == 1
        assert "at least 1" in stdout


class TestSessionFlow:
    """End-to-end runs through the interactive loop."""

    def test_run_completes_and_archives(self, data_dir, bank):
        code, stdout, stderr = run_cli_command(
            ["run", str(bank), "--num", "2", "--focus", "recent-content"],
            data_dir,
            stdin="OSPF picks routes by shortest path cost\nVLANs split broadcast domains\n",
        )

        assert code == 0, f"run failed: {stderr}"
        assert "Question 1/2" in stdout
        assert "Session Summary" in stdout

        code, stdout, stderr = run_cli_command(["history"], data_dir)
        assert code == 0, f"history failed: {stderr}"
        assert "Session History" in stdout

        code, stdout, stderr = run_cli_command(["analytics"], data_dir)
        assert code == 0, f"analytics failed: {stderr}"
        assert "Sessions: 1" in stdout

    def test_quit_then_recover(self, data_dir, bank):
        code, stdout, stderr = run_cli_command(
            ["run", str(bank), "--num", "2", "--no-ai"],
            data_dir,
            stdin="first answer\n:quit\n",
        )
        assert code == 0, f"run failed: {stderr}"
        assert "Session paused" in stdout

        code, stdout, stderr = run_cli_command(["recover"], data_dir, stdin="second answer\n")
        assert code == 0, f"recover failed: {stderr}"
        assert "Recovered open-questions session (1/2 answered)" in stdout
        assert "Session Summary" in stdout

    def test_run_with_no_matching_questions(self, data_dir, bank):
        code, stdout, _ = run_cli_command(["run", str(bank), "--week", "week-9"], data_dir)

        assert code == 1
        assert "Could not start session" in stdout

    def test_run_with_missing_bank(self, data_dir, tmp_path):
        code, _, _ = run_cli_command(["run", str(tmp_path / "missing.json")], data_dir)
        assert code != 0
