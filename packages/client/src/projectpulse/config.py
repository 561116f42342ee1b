"""Client configuration via environment variables.

Uses pydantic-settings to load config from env vars with PROJECTPULSE_ prefix.
No config files, just env vars (12-factor app style).

Learn: The WebSocket URL is derived from the API URL the same way a browser
derives it from location.protocol: http → ws, https → wss. Set
PROJECTPULSE_WS_URL to point at a different host.
"""

from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All client configuration. Set via PROJECTPULSE_* env vars."""

    # REST API
    api_url: str = "http://localhost:5000"
    request_timeout_seconds: float = Field(default=30.0, gt=0)

    # WebSocket
    ws_path: str = "/ws"
    ws_url: Optional[str] = None  # overrides the derived URL
    reconnect_delay_seconds: float = Field(default=5.0, gt=0)

    # Auth (bearer token for REST, ?token= for the socket)
    auth_token: str = ""

    # Runtime
    environment: str = "development"
    log_level: str = "INFO"
    log_json: bool = False

    model_config = {"env_prefix": "PROJECTPULSE_"}

    @model_validator(mode="after")
    def validate_urls(self):
        """Reject API URLs that can't be mapped to a WebSocket scheme."""
        scheme = urlsplit(self.api_url).scheme
        if scheme not in ("http", "https"):
            raise ValueError(
                f"PROJECTPULSE_API_URL must be http(s), got {self.api_url!r}"
            )
        if not self.ws_path.startswith("/"):
            self.ws_path = "/" + self.ws_path
        return self

    @property
    def websocket_url(self) -> str:
        """WebSocket endpoint URL (ws:// or wss://)."""
        if self.ws_url:
            return self.ws_url
        parts = urlsplit(self.api_url)
        scheme = "wss" if parts.scheme == "https" else "ws"
        return urlunsplit((scheme, parts.netloc, self.ws_path, "", ""))


# Singleton: import this everywhere
settings = Settings()
