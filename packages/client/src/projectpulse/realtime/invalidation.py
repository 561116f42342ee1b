"""Invalidation table — which cache entries each event touches.

Learn: Instead of a switch over 36 event types, every entity kind has one
EntityRoute row. plan_invalidation() reads the row and produces an ordered
list of CacheCommands:

1. invalidate the kind's collection ("/api/tasks")
2. the entity itself ("/api/tasks/t1"):
   - CREATED/UPDATED → invalidate (refetch on next read)
   - DELETED         → remove (evict; never serve a deleted row)
3. the ancestor cascade: for each (payload field, ancestor kind) pair,
   invalidate the ancestor collection and, if the payload carries the
   ancestor's id, that ancestor's entry too.

The cascade exists because parents carry derived aggregates (an epic's
completion percentage is computed from its stories). Ancestor collections
are invalidated even when the payload lacks the ancestor id.

Pure functions, no I/O. The router applies the commands.
"""

from dataclasses import dataclass
from typing import Literal, Optional

from projectpulse.events.message import EventMessage, self_alias
from projectpulse.events.types import EntityKind, EventAction

CacheOp = Literal["invalidate", "remove"]


@dataclass(frozen=True)
class EntityRoute:
    """How one entity kind maps onto REST paths and the hierarchy."""

    kind: EntityKind
    path: str
    label: str
    ancestors: tuple[tuple[str, EntityKind], ...] = ()
    done_status: Optional[str] = None

    @property
    def self_alias(self) -> str:
        return self_alias(self.kind)

    def item_path(self, entity_id: str) -> str:
        return f"{self.path}/{entity_id}"


@dataclass(frozen=True)
class CacheCommand:
    op: CacheOp
    key: str


# ─── The table ───────────────────────────────────────────

ENTITY_ROUTES: dict[EntityKind, EntityRoute] = {
    route.kind: route
    for route in (
        EntityRoute(EntityKind.COMPANY, "/api/companies", "Company"),
        EntityRoute(EntityKind.DEPARTMENT, "/api/departments", "Department"),
        EntityRoute(EntityKind.USER, "/api/users", "User"),
        EntityRoute(EntityKind.TEAM, "/api/teams", "Team"),
        EntityRoute(
            EntityKind.PROJECT, "/api/projects", "Project",
            done_status="COMPLETED",
        ),
        EntityRoute(
            EntityKind.EPIC, "/api/epics", "Epic",
            ancestors=(("projectId", EntityKind.PROJECT),),
            done_status="COMPLETED",
        ),
        EntityRoute(
            EntityKind.STORY, "/api/stories", "Story",
            ancestors=(
                ("epicId", EntityKind.EPIC),
                ("projectId", EntityKind.PROJECT),
            ),
            done_status="DONE",
        ),
        EntityRoute(
            EntityKind.TASK, "/api/tasks", "Task",
            ancestors=(
                ("storyId", EntityKind.STORY),
                ("epicId", EntityKind.EPIC),
                ("projectId", EntityKind.PROJECT),
            ),
            done_status="DONE",
        ),
        EntityRoute(EntityKind.COMMENT, "/api/comments", "Comment"),
        EntityRoute(EntityKind.ATTACHMENT, "/api/attachments", "Attachment"),
        EntityRoute(EntityKind.LOCATION, "/api/locations", "Location"),
        EntityRoute(EntityKind.DEVICE, "/api/devices", "Device"),
    )
}


def route_for(kind: EntityKind) -> EntityRoute:
    return ENTITY_ROUTES[kind]


def plan_invalidation(message: EventMessage) -> list[CacheCommand]:
    """Turn one event into the ordered cache commands it implies."""
    route = route_for(message.kind)
    commands = [CacheCommand("invalidate", route.path)]

    entity_id = message.entity_id
    if entity_id is not None:
        op: CacheOp = "remove" if message.action == EventAction.DELETED else "invalidate"
        commands.append(CacheCommand(op, route.item_path(entity_id)))

    for field_name, ancestor_kind in route.ancestors:
        ancestor = route_for(ancestor_kind)
        commands.append(CacheCommand("invalidate", ancestor.path))
        ancestor_id = message.field_id(field_name)
        if ancestor_id is not None:
            commands.append(CacheCommand("invalidate", ancestor.item_path(ancestor_id)))

    return commands
