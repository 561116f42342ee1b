"""Per-resource REST helpers built on ApiClient.

Learn: Paths come from the same ENTITY_ROUTES table the invalidation
layer uses, so the path a helper writes to is the path an event
invalidates. Filters are passed as snake_case keyword arguments and sent
camelCased, the way the server expects them:

    await resources(client)[EntityKind.TASK].list(story_id="s1")
    # GET /api/tasks?storyId=s1
"""

from typing import Any

from projectpulse.api.client import ApiClient
from projectpulse.events.types import EntityKind
from projectpulse.realtime.invalidation import route_for


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


class ResourceApi:
    """CRUD helpers for one entity kind."""

    def __init__(self, client: ApiClient, kind: EntityKind):
        self.client = client
        self.kind = kind
        self.path = route_for(kind).path

    def item_path(self, entity_id: str) -> str:
        return f"{self.path}/{entity_id}"

    async def list(self, **filters: Any) -> Any:
        params = {camel_case(k): v for k, v in filters.items()}
        return await self.client.get(self.path, params=params)

    async def get(self, entity_id: str) -> Any:
        return await self.client.get(self.item_path(entity_id))

    async def create(self, data: dict[str, Any]) -> Any:
        return await self.client.post(self.path, data)

    async def update(self, entity_id: str, data: dict[str, Any]) -> Any:
        return await self.client.put(self.item_path(entity_id), data)

    async def delete(self, entity_id: str) -> Any:
        return await self.client.delete(self.item_path(entity_id))


class TeamApi(ResourceApi):
    """Teams also manage a member list."""

    async def members(self, team_id: str) -> Any:
        return await self.client.get(f"{self.item_path(team_id)}/members")

    async def add_member(self, team_id: str, user_id: str) -> Any:
        return await self.client.post(f"{self.item_path(team_id)}/members/{user_id}")

    async def remove_member(self, team_id: str, user_id: str) -> Any:
        return await self.client.delete(f"{self.item_path(team_id)}/members/{user_id}")


class AttachedResourceApi(ResourceApi):
    """Comments and attachments hang off another entity (entityType + entityId)."""

    async def list_for(self, entity_type: str, entity_id: str) -> Any:
        return await self.list(entity_type=entity_type, entity_id=entity_id)


class AttachmentApi(AttachedResourceApi):
    """Attachments are immutable: upload a new one and delete the old."""

    async def update(self, entity_id: str, data: dict[str, Any]) -> Any:
        raise NotImplementedError("attachments cannot be updated; create a new one instead")


class NotificationApi:
    """User notifications (not an entity kind; no events are broadcast)."""

    path = "/api/notifications"

    def __init__(self, client: ApiClient):
        self.client = client

    async def list(self) -> Any:
        return await self.client.get(self.path)

    async def mark_as_read(self, notification_id: str) -> Any:
        return await self.client.post(f"{self.path}/{notification_id}/read")

    async def delete(self, notification_id: str) -> Any:
        return await self.client.delete(f"{self.path}/{notification_id}")


_SPECIAL: dict[EntityKind, type[ResourceApi]] = {
    EntityKind.TEAM: TeamApi,
    EntityKind.COMMENT: AttachedResourceApi,
    EntityKind.ATTACHMENT: AttachmentApi,
}


def resource_api(client: ApiClient, kind: EntityKind) -> ResourceApi:
    return _SPECIAL.get(kind, ResourceApi)(client, kind)


def resources(client: ApiClient) -> dict[EntityKind, ResourceApi]:
    """One helper per entity kind."""
    return {kind: resource_api(client, kind) for kind in EntityKind}
