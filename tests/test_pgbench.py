"""Tests for the pgbench runner"""

import subprocess

import pytest

from workshop_setup.domain.models.credentials import DatabaseCredentials
from workshop_setup.infrastructure import pgbench as pgbench_module
from workshop_setup.infrastructure.pgbench import PgbenchRunner
from workshop_setup.infrastructure.retry import PermanentFailure

CREDS = DatabaseCredentials(
    host="idr-instance.abc.rds.amazonaws.com",
    port=5432,
    username="postgres",
    password="pw",
    dbname="bench",
)


class TestPgbenchRunner:
    """Tests for PgbenchRunner"""

    def test_build_command(self):
        """Test the pgbench -i command line"""
        assert PgbenchRunner().build_command(CREDS, 200) == [
            "pgbench", "-i", "-s", "200",
            "-h", "idr-instance.abc.rds.amazonaws.com",
            "-p", "5432",
            "-U", "postgres",
            "-d", "bench",
        ]

    def test_initialize_success(self, monkeypatch):
        """Test the password is passed through the child environment only"""
        captured = {}

        def fake_run(command, **kwargs):
            captured["command"] = command
            captured["env"] = kwargs["env"]
            return subprocess.CompletedProcess(command, 0, stdout="done", stderr="")

        monkeypatch.setattr(pgbench_module.subprocess, "run", fake_run)

        assert PgbenchRunner().initialize(CREDS, scale=10) is True
        assert captured["env"]["PGPASSWORD"] == "pw"
        assert "pw" not in captured["command"]

    def test_initialize_non_zero_exit(self, monkeypatch):
        """Test a failing pgbench run reports failure"""
        monkeypatch.setattr(
            pgbench_module.subprocess,
            "run",
            lambda command, **kwargs: subprocess.CompletedProcess(command, 1, stdout="", stderr="connection refused"),
        )
        assert PgbenchRunner().initialize(CREDS) is False

    def test_initialize_timeout(self, monkeypatch):
        """Test a timed out run reports failure"""

        def fake_run(command, **kwargs):
            raise subprocess.TimeoutExpired(command, kwargs["timeout"])

        monkeypatch.setattr(pgbench_module.subprocess, "run", fake_run)
        assert PgbenchRunner(timeout=1).initialize(CREDS) is False

    def test_missing_executable_is_permanent(self, monkeypatch):
        """Test a missing pgbench binary raises PermanentFailure"""

        def fake_run(command, **kwargs):
            raise FileNotFoundError(command[0])

        monkeypatch.setattr(pgbench_module.subprocess, "run", fake_run)
        with pytest.raises(PermanentFailure, match="pgbench not found"):
            PgbenchRunner().initialize(CREDS)
