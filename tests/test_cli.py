"""Tests for genie_resilience/cli/main.py."""

import httpx
import pytest
from typer.testing import CliRunner

from genie_resilience.cli import main as cli

runner = CliRunner()


@pytest.fixture
def mock_client(monkeypatch):
    """Route probe requests to a handler set by the test."""
    state = {"handler": lambda request: httpx.Response(200)}

    def make_client(timeout):
        transport = httpx.MockTransport(lambda request: state["handler"](request))
        return httpx.AsyncClient(transport=transport, timeout=timeout)

    monkeypatch.setattr(cli, "_make_client", make_client)
    return state


@pytest.fixture
def no_sleep(monkeypatch):
    """Patch the executor factory used by probe so retries don't wait."""
    real_factory = cli.http_executor

    async def sleep(seconds):
        return None

    monkeypatch.setattr(cli, "http_executor", lambda **kw: real_factory(sleep=sleep, **kw))


class TestSchedule:
    def test_default_schedule(self):
        result = runner.invoke(cli.app, ["schedule"])

        assert result.exit_code == 0
        assert "6 attempts" in result.stdout
        assert "16000" in result.stdout
        assert "34100" in result.stdout  # worst case: 1000..16000 plus 10% jitter

    def test_cap_row_shown(self):
        result = runner.invoke(cli.app, ["schedule", "-n", "6", "--jitter", "0"])

        assert result.exit_code == 0
        assert "30000-30000" in result.stdout

    def test_huge_retry_budget(self):
        result = runner.invoke(cli.app, ["schedule", "-n", "1100", "--jitter", "0"])

        assert result.exit_code == 0
        assert "1100 " in result.stdout

    def test_custom_schedule_without_jitter(self):
        result = runner.invoke(
            cli.app, ["schedule", "-n", "3", "--base-delay", "100", "--jitter", "0"]
        )

        assert result.exit_code == 0
        assert "100-100" in result.stdout
        assert "400-400" in result.stdout
        assert "700" in result.stdout  # worst-case total 100+200+400

    def test_zero_retries(self):
        result = runner.invoke(cli.app, ["schedule", "-n", "0"])

        assert result.exit_code == 0
        assert "exactly once" in result.stdout

    def test_invalid_policy(self):
        result = runner.invoke(cli.app, ["schedule", "--jitter", "2"])

        assert result.exit_code == 1
        assert "Invalid policy" in result.stdout

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("GENIE_RETRY_MAX_RETRIES", "2")

        result = runner.invoke(cli.app, ["schedule"])

        assert "3 attempts" in result.stdout


class TestSettings:
    def test_prints_settings(self):
        result = runner.invoke(cli.app, ["settings"])

        assert result.exit_code == 0
        assert "max_retries" in result.stdout
        assert "batch_concurrency" in result.stdout


class TestProbe:
    def test_success(self, mock_client, no_sleep):
        result = runner.invoke(cli.app, ["probe", "https://example.com/health", "-q"])

        assert result.exit_code == 0
        assert "200 OK" in result.stdout

    def test_recovers_after_unavailable(self, mock_client, no_sleep):
        statuses = iter([503, 200])
        mock_client["handler"] = lambda request: httpx.Response(next(statuses))

        result = runner.invoke(cli.app, ["probe", "https://example.com/health", "-n", "2"])

        assert result.exit_code == 0
        assert "Retries: 1" in result.stdout

    def test_final_failure_exit_code(self, mock_client, no_sleep):
        mock_client["handler"] = lambda request: httpx.Response(404)

        result = runner.invoke(cli.app, ["probe", "https://example.com/missing", "-q"])

        assert result.exit_code == 1
        assert "Probe failed" in result.stdout
        assert "Retry Summary" not in result.stdout

    def test_final_failure_prints_summary(self, mock_client, no_sleep):
        mock_client["handler"] = lambda request: httpx.Response(503)

        result = runner.invoke(cli.app, ["probe", "https://example.com/health", "-n", "2"])

        assert result.exit_code == 1
        assert "Probe failed" in result.stdout
        assert "Failed: 1 (exhausted: 1)" in result.stdout
        assert "Attempts: 3" in result.stdout
