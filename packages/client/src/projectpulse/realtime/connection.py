"""Connection manager — one WebSocket, reconnected forever.

Learn: State machine:

    DISCONNECTED ──start()──▶ CONNECTING ──handshake ok──▶ CONNECTED
         ▲                        │                            │
         │                        └──── connect failed ────────┤
         │                                                     ▼
         └──────────── sleep(reconnect_delay) ◀──────── close / error

There is exactly ONE retry task per manager. It owns the whole loop, so at
most one reconnect is ever pending no matter how many close/error signals
the transport produces. The delay is fixed (5s by default): no exponential
backoff and no retry cap. The manager keeps trying until stop() is called.

Errors never surface as exceptions. They are logged, and the only visible
effect is `state` / `connected` going false. Rendering that is up to the
caller (see add_state_listener).

Frames are handed to EventRouter.handle_raw() one at a time, in the order
they arrive. The next frame is not read until the router returns.
"""

import asyncio
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Protocol, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import structlog
from websockets.asyncio.client import connect as ws_connect

from projectpulse.realtime.router import EventRouter

logger = structlog.get_logger()

DEFAULT_RECONNECT_DELAY = 5.0


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class Socket(Protocol):
    """What the manager needs from an open connection."""

    def __aiter__(self) -> AsyncIterator[Union[str, bytes]]: ...

    async def close(self) -> Any: ...


ConnectFactory = Callable[[str], Awaitable[Socket]]
SleepFunc = Callable[[float], Awaitable[Any]]
StateListener = Callable[[ConnectionState], None]
TokenSource = Union[str, Callable[[], Optional[str]], None]


def with_token(url: str, token: Optional[str]) -> str:
    """Append ?token=<token>, passed through for servers that check it."""
    if not token:
        return url
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query) if k != "token"]
    query.append(("token", token))
    return urlunsplit(parts._replace(query=urlencode(query)))


class ConnectionManager:
    """Owns the WebSocket and its reconnect loop.

    Usage:
        manager = ConnectionManager("ws://localhost:5000/ws", router)
        manager.start()
        ...
        await manager.stop()

    or:
        async with ConnectionManager(url, router) as manager:
            ...

    `token` may be a string or a zero-argument callable. RealtimeSession
    passes a callable reading ApiClient.token, so a token cleared by a REST
    401 is not sent on the next reconnect.
    """

    def __init__(
        self,
        url: str,
        router: EventRouter,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        connect: Optional[ConnectFactory] = None,
        token: TokenSource = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        if reconnect_delay <= 0:
            raise ValueError("reconnect_delay must be positive")
        self.url = url
        self.router = router
        self.reconnect_delay = reconnect_delay
        self.attempts = 0
        self._connect = connect or ws_connect
        self._token = token
        self._sleep = sleep
        self._state = ConnectionState.DISCONNECTED
        self._socket: Optional[Socket] = None
        self._task: Optional[asyncio.Task] = None
        self._state_listeners: list[StateListener] = []

    # ─── Public surface ───────────────────────────────────

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def token(self) -> Optional[str]:
        """Token for the next attempt. A callable source is re-read every time."""
        if callable(self._token):
            return self._token()
        return self._token

    @property
    def connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def add_state_listener(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    def start(self) -> None:
        """Begin connecting. Idempotent while the retry task is alive."""
        if self.running:
            return
        self._set_state(ConnectionState.CONNECTING)
        self._task = asyncio.create_task(self._run(), name="projectpulse-connection")

    async def stop(self) -> None:
        """Cancel the retry task and close the socket."""
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        socket, self._socket = self._socket, None
        if socket is not None:
            await self._close_socket(socket)
        self._set_state(ConnectionState.DISCONNECTED)
        logger.info("connection.stopped", attempts=self.attempts)

    async def __aenter__(self) -> "ConnectionManager":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    # ─── Retry loop ───────────────────────────────────────

    async def _run(self) -> None:
        while True:
            self._set_state(ConnectionState.CONNECTING)
            await self._connect_once()
            self._set_state(ConnectionState.DISCONNECTED)
            logger.info("connection.reconnect_scheduled", delay=self.reconnect_delay)
            await self._sleep(self.reconnect_delay)

    async def _connect_once(self) -> None:
        """One connection lifetime: open, pump frames, close."""
        self.attempts += 1
        try:
            socket = await self._connect(with_token(self.url, self.token))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                "connection.failed", url=self.url, attempt=self.attempts, error=str(e)
            )
            return

        self._socket = socket
        self._set_state(ConnectionState.CONNECTED)
        logger.info("connection.opened", url=self.url, attempt=self.attempts)
        try:
            async for frame in socket:
                self.router.handle_raw(frame)
            logger.info("connection.closed", url=self.url)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("connection.error", url=self.url, error=str(e))
        finally:
            if self._socket is socket:
                self._socket = None
                await self._close_socket(socket)

    async def _close_socket(self, socket: Socket) -> None:
        try:
            await socket.close()
        except Exception as e:
            logger.debug("connection.close_error", error=str(e))

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        self._state = state
        for listener in list(self._state_listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("connection.state_listener_error", state=state.value)
