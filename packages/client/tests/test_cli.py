"""CLI tests — click's CliRunner with the HTTP layer swapped for MockTransport."""

import httpx
import pytest
from click.testing import CliRunner

from projectpulse import __version__
from projectpulse.api.client import ApiClient
from projectpulse.cli import main as cli_module
from projectpulse.realtime.notifications import Toast


@pytest.fixture()
def runner():
    return CliRunner()


@pytest.fixture()
def mock_api(monkeypatch):
    """Route every ApiClient the CLI builds through a MockTransport."""
    seen: list[httpx.Request] = []
    responses = {"status": 200, "json": [{"id": "p1", "name": "Apollo"}]}

    def handler(request):
        seen.append(request)
        if responses["status"] >= 400:
            return httpx.Response(responses["status"], text="nope")
        return httpx.Response(responses["status"], json=responses["json"])

    def factory(base_url, token=None, timeout=30.0):
        return ApiClient(base_url, token=token, timeout=timeout, transport=httpx.MockTransport(handler))

    monkeypatch.setattr(cli_module, "ApiClient", factory)
    return seen, responses


def test_version(runner):
    result = runner.invoke(cli_module.main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_get_prints_json(runner, mock_api):
    seen, _ = mock_api
    result = runner.invoke(
        cli_module.main,
        ["--api-url", "http://test", "--token", "tok", "get", "/api/projects", "-p", "teamId=t1"],
    )
    assert result.exit_code == 0, result.output
    assert '"name": "Apollo"' in result.output
    assert seen[-1].url.path == "/api/projects"
    assert dict(seen[-1].url.params) == {"teamId": "t1"}
    assert seen[-1].headers["Authorization"] == "Bearer tok"


def test_get_error_exits_nonzero(runner, mock_api):
    _, responses = mock_api
    responses["status"] = 404
    result = runner.invoke(cli_module.main, ["--api-url", "http://test", "get", "/api/nothing"])
    assert result.exit_code == 1


def test_get_non_json_body_exits_nonzero(runner, monkeypatch):
    def spa_fallback(request):
        return httpx.Response(200, html="<!DOCTYPE html><html></html>")

    def factory(base_url, token=None, timeout=30.0):
        return ApiClient(base_url, token=token, timeout=timeout, transport=httpx.MockTransport(spa_fallback))

    monkeypatch.setattr(cli_module, "ApiClient", factory)
    result = runner.invoke(cli_module.main, ["--api-url", "http://test", "get", "/api/missing"])
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Invalid JSON response" in result.output


def test_get_rejects_malformed_param(runner, mock_api):
    result = runner.invoke(cli_module.main, ["--api-url", "http://test", "get", "/api/tasks", "-p", "oops"])
    assert result.exit_code == 2
    assert "key=value" in result.output


def test_echo_notifier_prints_toast(capsys):
    cli_module.EchoNotifier().notify(Toast("Task Updated", "Task information has been updated"))
    out = capsys.readouterr().out
    assert "Task Updated" in out
    assert "Task information has been updated" in out
