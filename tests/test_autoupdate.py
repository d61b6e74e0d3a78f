#!/usr/bin/env python3
"""Tests for running podman auto-update"""

import subprocess
from unittest.mock import patch

from poddash.autoupdate import run_auto_update


def test_success():
    completed = subprocess.CompletedProcess(["podman", "auto-update"], 0, stdout="UNIT  CONTAINER  UPDATED\n")

    with patch("subprocess.run", return_value=completed) as run:
        output, error = run_auto_update("/usr/bin/podman")

    assert output == "UNIT  CONTAINER  UPDATED\n"
    assert error == ""
    assert run.call_args[0][0] == ["/usr/bin/podman", "auto-update"]
    assert run.call_args[1]["stderr"] == subprocess.STDOUT


def test_non_zero_exit_keeps_output():
    """Test that a failing command reports its status along with what it printed"""
    completed = subprocess.CompletedProcess(["podman", "auto-update"], 125, stdout="Error: no socket\n")

    with patch("subprocess.run", return_value=completed):
        output, error = run_auto_update()

    assert output == "Error: no socket\n"
    assert error == "exit status 125"


def test_missing_binary(tmp_path):
    """Test a real exec failure for a binary that does not exist"""
    output, error = run_auto_update(str(tmp_path / "no-such-podman"))

    assert output == ""
    assert "no-such-podman" in error


def test_timeout():
    exc = subprocess.TimeoutExpired(["podman", "auto-update"], 5, output=b"partial\n")

    with patch("subprocess.run", side_effect=exc):
        output, error = run_auto_update(timeout=5)

    assert output == "partial\n"
    assert error == "timed out after 5s"
