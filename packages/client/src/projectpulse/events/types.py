"""Event type catalogue.

Learn: Every event type is <ENTITY>_<ACTION>, one CREATED/UPDATED/DELETED
triple per entity kind. Each EventType member knows its own kind and action,
which is what the invalidation table dispatches on. Nothing else in the
client switches over the 36 string values.
"""

from enum import Enum


class UnknownEventType(ValueError):
    """Raised when a frame names an event type outside the catalogue."""


class EntityKind(str, Enum):
    """Domain nouns whose collection and per-id reads are cached."""

    COMPANY = "COMPANY"
    DEPARTMENT = "DEPARTMENT"
    USER = "USER"
    TEAM = "TEAM"
    PROJECT = "PROJECT"
    EPIC = "EPIC"
    STORY = "STORY"
    TASK = "TASK"
    COMMENT = "COMMENT"
    ATTACHMENT = "ATTACHMENT"
    LOCATION = "LOCATION"
    DEVICE = "DEVICE"


class EventAction(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"


class EventType(str, Enum):
    """Every event the server broadcasts."""

    # ─── Organisation ────────────────────────────────────

    COMPANY_CREATED = "COMPANY_CREATED"
    COMPANY_UPDATED = "COMPANY_UPDATED"
    COMPANY_DELETED = "COMPANY_DELETED"

    DEPARTMENT_CREATED = "DEPARTMENT_CREATED"
    DEPARTMENT_UPDATED = "DEPARTMENT_UPDATED"
    DEPARTMENT_DELETED = "DEPARTMENT_DELETED"

    USER_CREATED = "USER_CREATED"
    USER_UPDATED = "USER_UPDATED"
    USER_DELETED = "USER_DELETED"

    TEAM_CREATED = "TEAM_CREATED"
    TEAM_UPDATED = "TEAM_UPDATED"
    TEAM_DELETED = "TEAM_DELETED"

    # ─── Work hierarchy ──────────────────────────────────

    PROJECT_CREATED = "PROJECT_CREATED"
    PROJECT_UPDATED = "PROJECT_UPDATED"
    PROJECT_DELETED = "PROJECT_DELETED"

    EPIC_CREATED = "EPIC_CREATED"
    EPIC_UPDATED = "EPIC_UPDATED"
    EPIC_DELETED = "EPIC_DELETED"

    STORY_CREATED = "STORY_CREATED"
    STORY_UPDATED = "STORY_UPDATED"
    STORY_DELETED = "STORY_DELETED"

    TASK_CREATED = "TASK_CREATED"
    TASK_UPDATED = "TASK_UPDATED"
    TASK_DELETED = "TASK_DELETED"

    # ─── Collaboration ───────────────────────────────────

    COMMENT_CREATED = "COMMENT_CREATED"
    COMMENT_UPDATED = "COMMENT_UPDATED"
    COMMENT_DELETED = "COMMENT_DELETED"

    ATTACHMENT_CREATED = "ATTACHMENT_CREATED"
    ATTACHMENT_UPDATED = "ATTACHMENT_UPDATED"
    ATTACHMENT_DELETED = "ATTACHMENT_DELETED"

    # ─── Assets ──────────────────────────────────────────

    LOCATION_CREATED = "LOCATION_CREATED"
    LOCATION_UPDATED = "LOCATION_UPDATED"
    LOCATION_DELETED = "LOCATION_DELETED"

    DEVICE_CREATED = "DEVICE_CREATED"
    DEVICE_UPDATED = "DEVICE_UPDATED"
    DEVICE_DELETED = "DEVICE_DELETED"

    @property
    def kind(self) -> EntityKind:
        return EntityKind(self.value.rsplit("_", 1)[0])

    @property
    def action(self) -> EventAction:
        return EventAction(self.value.rsplit("_", 1)[1])


def event_type_for(kind: EntityKind, action: EventAction) -> EventType:
    """Look up the event type for a kind/action pair."""
    return EventType(f"{kind.value}_{action.value}")


def parse_event_type(value: str) -> EventType:
    """Parse a wire string into an EventType.

    Raises UnknownEventType for anything outside the catalogue.
    """
    try:
        return EventType(value)
    except ValueError:
        raise UnknownEventType(f"Unknown event type: {value!r}")


# ─── Control frames (not entity events) ──────────────────

CONNECTION_ESTABLISHED = "CONNECTION_ESTABLISHED"

CONTROL_TYPES = frozenset({CONNECTION_ESTABLISHED})
