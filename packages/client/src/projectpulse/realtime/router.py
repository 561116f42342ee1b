"""Event router — one WebSocket frame in, cache commands + a toast out.

Learn: handle_raw() is the only entry point the connection uses. For each
frame it runs to completion before the next one is read:

    decode → plan_invalidation → apply to QueryCache → toast → listeners

Frames are applied strictly in arrival order. There is no dedupe and no
reordering: a duplicate server event just invalidates the same keys twice,
which is harmless.

Failures never escape. A frame that can't be decoded is logged and dropped
(no retry, no dead-letter queue). A notifier or listener that raises is
logged and skipped so one bad subscriber can't stall the stream.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Union

import structlog

from projectpulse.cache.query_cache import QueryCache
from projectpulse.events.message import (
    ControlMessage,
    EventMessage,
    MessageDecodeError,
    decode_message,
)
from projectpulse.realtime.invalidation import CacheCommand, plan_invalidation
from projectpulse.realtime.notifications import LogNotifier, Notifier, build_toast

logger = structlog.get_logger()

EventListener = Callable[[EventMessage], None]


@dataclass
class RouterStats:
    """Runtime counters for monitoring."""
    received: int = 0
    dispatched: int = 0
    dropped: int = 0
    control: int = 0


class EventRouter:
    """Applies server events to a QueryCache."""

    def __init__(self, cache: QueryCache, notifier: Optional[Notifier] = None):
        self.cache = cache
        self.notifier = notifier or LogNotifier()
        self.stats = RouterStats()
        self.last_message: Optional[EventMessage] = None
        self.client_id: Optional[str] = None
        self._listeners: list[EventListener] = []

    def add_listener(self, listener: EventListener) -> Callable[[], None]:
        """Call listener after each dispatched event. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def handle_raw(self, frame: Union[str, bytes]) -> None:
        """Handle one raw frame. Never raises for bad input."""
        self.stats.received += 1
        try:
            message = decode_message(frame)
        except MessageDecodeError as e:
            self.stats.dropped += 1
            logger.warning("router.message_dropped", error=str(e))
            return

        if isinstance(message, ControlMessage):
            self._handle_control(message)
            return

        self.dispatch(message)

    def dispatch(self, message: EventMessage) -> list[CacheCommand]:
        """Apply one decoded event. Returns the commands that were applied."""
        commands = plan_invalidation(message)
        for command in commands:
            self._apply(command)

        self.last_message = message
        self.stats.dispatched += 1
        logger.debug(
            "router.dispatched",
            type=message.type.value,
            entity_id=message.entity_id,
            commands=len(commands),
        )

        try:
            self.notifier.notify(build_toast(message))
        except Exception:
            logger.exception("router.notifier_error", type=message.type.value)

        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception:
                logger.exception("router.listener_error", type=message.type.value)

        return commands

    def _apply(self, command: CacheCommand) -> None:
        if command.op == "remove":
            self.cache.remove(command.key, exact=False)
        else:
            self.cache.invalidate(command.key)

    def _handle_control(self, message: ControlMessage) -> None:
        self.stats.control += 1
        if message.client_id:
            self.client_id = message.client_id
        logger.info("router.control", type=message.type, client_id=message.client_id)
