"""Realtime session — the one object that owns the connection.

Learn: Nothing in projectpulse is a module-level singleton except config.
A RealtimeSession wires together exactly one of each collaborator and is
passed to whatever needs them:

    QueryCache ◀── EventRouter ◀── ConnectionManager (WebSocket)
        ▲
        └── read() ── ApiClient (REST)

Entering the session starts the connection; leaving it stops the retry
task, closes the socket and the HTTP client. Two sessions never share a
socket or a cache. The socket reads its token from the ApiClient, so a
REST 401 that clears the token also drops it from the next reconnect.
"""

from typing import Any, Optional

import structlog

from projectpulse.api.client import ApiClient, ApiError
from projectpulse.api.resources import NotificationApi, ResourceApi, resources
from projectpulse.cache.query_cache import QueryCache
from projectpulse.config import Settings, settings as default_settings
from projectpulse.events.types import EntityKind
from projectpulse.realtime.connection import ConnectFactory, ConnectionManager
from projectpulse.realtime.notifications import LogNotifier, Notifier, error_toast
from projectpulse.realtime.router import EventRouter

logger = structlog.get_logger()


class RealtimeSession:
    """Cache + router + connection + REST client for one user context."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        notifier: Optional[Notifier] = None,
        api: Optional[ApiClient] = None,
        connect: Optional[ConnectFactory] = None,
    ):
        self.settings = settings or default_settings
        self.notifier = notifier or LogNotifier()
        self.cache = QueryCache()
        self.router = EventRouter(self.cache, self.notifier)
        self.api = api or ApiClient(
            self.settings.api_url,
            token=self.settings.auth_token,
            timeout=self.settings.request_timeout_seconds,
        )
        self.connection = ConnectionManager(
            self.settings.websocket_url,
            self.router,
            reconnect_delay=self.settings.reconnect_delay_seconds,
            connect=connect,
            token=lambda: self.api.token,
        )
        self._resources = resources(self.api)
        self.notifications = NotificationApi(self.api)

    async def __aenter__(self) -> "RealtimeSession":
        self.connection.start()
        logger.info(
            "session.started",
            api_url=self.settings.api_url,
            ws_url=self.connection.url,
        )
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self.connection.stop()
        await self.api.aclose()
        logger.info("session.closed")

    @property
    def connected(self) -> bool:
        return self.connection.connected

    def resource(self, kind: EntityKind) -> ResourceApi:
        return self._resources[kind]

    async def read(self, path: str, **params: Any) -> Any:
        """Cached GET. Refetches only if the entry is missing or invalidated."""
        key = (path, params) if params else (path,)
        return await self.cache.fetch(key, self.api.query_fn())

    async def mutate(self, method: str, path: str, data: Any = None) -> Any:
        """Send a mutation. Failures toast once and re-raise; no retry.

        The cache is NOT touched here: the server broadcasts an event for
        every successful mutation and the router invalidates from that.
        """
        try:
            return await self.api.request(method, path, data=data)
        except ApiError as e:
            logger.warning(
                "session.mutation_failed",
                method=method,
                path=path,
                status=e.status_code,
            )
            self.notifier.notify(error_toast())
            raise
