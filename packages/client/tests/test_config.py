"""Settings tests — env loading and derived WebSocket URL."""

import pytest
from pydantic import ValidationError

from projectpulse.config import Settings


def test_defaults():
    s = Settings()
    assert s.reconnect_delay_seconds == 5.0
    assert s.websocket_url == "ws://localhost:5000/ws"


def test_https_maps_to_wss():
    s = Settings(api_url="https://pm.example.com")
    assert s.websocket_url == "wss://pm.example.com/ws"


def test_explicit_ws_url_wins():
    s = Settings(ws_url="ws://other:9000/events")
    assert s.websocket_url == "ws://other:9000/events"


def test_ws_path_gets_leading_slash():
    assert Settings(ws_path="live").websocket_url.endswith("/live")


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("PROJECTPULSE_API_URL", "http://api.internal:8080")
    monkeypatch.setenv("PROJECTPULSE_RECONNECT_DELAY_SECONDS", "2.5")
    s = Settings()
    assert s.api_url == "http://api.internal:8080"
    assert s.reconnect_delay_seconds == 2.5
    assert s.websocket_url == "ws://api.internal:8080/ws"


def test_rejects_non_http_api_url():
    with pytest.raises(ValidationError):
        Settings(api_url="ftp://nope")


def test_rejects_non_positive_delay():
    with pytest.raises(ValidationError):
        Settings(reconnect_delay_seconds=0)


def test_configure_logging_json(capsys):
    import structlog

    from projectpulse.log import configure_logging

    configure_logging("DEBUG", json=True)
    structlog.get_logger("projectpulse.test").info("config.loaded", env="test")
    err = capsys.readouterr().err
    assert '"event": "config.loaded"' in err
    configure_logging("INFO")
