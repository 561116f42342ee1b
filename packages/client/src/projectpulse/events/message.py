"""Wire decoding — raw WebSocket text frame → typed message.

Learn: Two shapes arrive on the socket:
- Entity events: {"type": "PROJECT_UPDATED", "payload": {"id": "p1", ...}}
- Control frames: {"type": "CONNECTION_ESTABLISHED", "clientId": "k3j..."}

decode_message() returns an EventMessage or a ControlMessage, and raises
MessageDecodeError for anything else. The router catches that error, logs it
and drops the frame; nothing here retries.
"""

import json
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from projectpulse.events.types import (
    CONTROL_TYPES,
    EntityKind,
    EventAction,
    EventType,
    UnknownEventType,
    parse_event_type,
)


class MessageDecodeError(ValueError):
    """Raised when a frame can't be turned into a message."""


class EventMessage(BaseModel):
    """A decoded entity event."""

    type: EventType
    payload: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @field_validator("payload", mode="before")
    @classmethod
    def null_payload_is_empty(cls, v):
        return {} if v is None else v

    @property
    def kind(self) -> EntityKind:
        return self.type.kind

    @property
    def action(self) -> EventAction:
        return self.type.action

    @property
    def entity_id(self) -> Optional[str]:
        """Id of the entity the event is about.

        Falls back to the kind's own id field ("taskId" for TASK): the
        server sends task step updates as {"taskId": ..., "steps": [...]}.
        """
        value = self.payload.get("id")
        if value in (None, ""):
            value = self.payload.get(self_alias(self.kind))
        return _as_id(value)

    @property
    def status(self) -> Optional[str]:
        value = self.payload.get("status")
        if isinstance(value, str) and value:
            return value
        return None

    def field_id(self, name: str) -> Optional[str]:
        """Read an id-valued payload field (e.g. "projectId") as a string."""
        return _as_id(self.payload.get(name))


class ControlMessage(BaseModel):
    """Connection-level frame sent by the server (not an entity event)."""

    type: str
    client_id: Optional[str] = Field(default=None, alias="clientId")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


Message = Union[EventMessage, ControlMessage]


def self_alias(kind: EntityKind) -> str:
    """Payload field some server events use for the entity's own id."""
    return f"{kind.value.lower()}Id"


def _as_id(value: Any) -> Optional[str]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, (str, int)):
        return str(value)
    return None


def decode_message(text: Union[str, bytes]) -> Message:
    """Decode one WebSocket frame.

    Raises MessageDecodeError when the frame is not a JSON object with a
    known string "type" and an object (or missing/null) "payload".
    """
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MessageDecodeError(f"Frame is not UTF-8: {e}") from e

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise MessageDecodeError(f"Frame is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise MessageDecodeError(f"Frame must be a JSON object, got {type(raw).__name__}")

    msg_type = raw.get("type")
    if not isinstance(msg_type, str):
        raise MessageDecodeError("Frame has no string 'type'")

    try:
        if msg_type in CONTROL_TYPES:
            return ControlMessage.model_validate(raw)
        parse_event_type(msg_type)
        return EventMessage.model_validate(
            {"type": msg_type, "payload": raw.get("payload")}
        )
    except UnknownEventType as e:
        raise MessageDecodeError(str(e)) from e
    except ValidationError as e:
        raise MessageDecodeError(f"Invalid {msg_type} frame: {e}") from e
