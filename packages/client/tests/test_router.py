"""EventRouter tests — frames in, cache state + toasts out.

Learn: Each test seeds the cache with the entries a UI would have loaded,
feeds raw frames to handle_raw(), then inspects the cache.
"""

import json

import pytest

from projectpulse.events.types import EntityKind, EventAction, event_type_for
from projectpulse.realtime.invalidation import ENTITY_ROUTES


def frame(event_type, **payload) -> str:
    return json.dumps({"type": str(getattr(event_type, "value", event_type)), "payload": payload})


def seed(cache, *paths):
    for path in paths:
        cache.set_query_data(path, {"path": path})


# ═══════════════════════════════════════════════════════════
# Invalidation / eviction
# ═══════════════════════════════════════════════════════════


@pytest.mark.parametrize("kind", list(EntityKind))
@pytest.mark.parametrize("action", [EventAction.CREATED, EventAction.UPDATED])
def test_create_update_invalidates_collection_and_item(router, cache, kind, action):
    route = ENTITY_ROUTES[kind]
    seed(cache, route.path, f"{route.path}/x1")

    router.handle_raw(frame(event_type_for(kind, action), id="x1"))

    assert cache.is_invalidated(route.path)
    assert cache.is_invalidated(f"{route.path}/x1")


@pytest.mark.parametrize("kind", list(EntityKind))
def test_delete_evicts_item(router, cache, kind):
    route = ENTITY_ROUTES[kind]
    seed(cache, route.path, f"{route.path}/x1")

    router.handle_raw(frame(event_type_for(kind, EventAction.DELETED), id="x1"))

    assert f"{route.path}/x1" not in cache
    assert cache.is_invalidated(route.path)


def test_task_event_cascades_to_ancestors(router, cache):
    seed(
        cache,
        "/api/tasks", "/api/tasks/t1",
        "/api/stories", "/api/stories/s1",
        "/api/epics", "/api/epics/e1",
        "/api/projects", "/api/projects/p1",
        "/api/projects/p2",
    )

    router.handle_raw(
        frame("TASK_UPDATED", id="t1", storyId="s1", epicId="e1", projectId="p1")
    )

    for path in (
        "/api/tasks", "/api/tasks/t1",
        "/api/stories", "/api/stories/s1",
        "/api/epics", "/api/epics/e1",
        "/api/projects", "/api/projects/p1",
    ):
        assert cache.is_invalidated(path), path
    assert not cache.is_invalidated("/api/projects/p2")


def test_unrelated_entries_untouched(router, cache):
    seed(cache, "/api/devices", "/api/teams")
    router.handle_raw(frame("DEVICE_UPDATED", id="d1"))
    assert cache.is_invalidated("/api/devices")
    assert not cache.is_invalidated("/api/teams")


def test_filtered_collections_are_invalidated(router, cache):
    cache.set_query_data(("/api/tasks", {"storyId": "s1"}), [])
    router.handle_raw(frame("TASK_CREATED", id="t2", storyId="s1"))
    assert cache.is_invalidated(("/api/tasks", {"storyId": "s1"}))


# ═══════════════════════════════════════════════════════════
# Toasts
# ═══════════════════════════════════════════════════════════


def test_project_completed_scenario(router, cache, notifier):
    """PROJECT_UPDATED with status COMPLETED → both keys stale, completion toast."""
    seed(cache, "/api/projects", "/api/projects/p1")

    router.handle_raw('{"type":"PROJECT_UPDATED","payload":{"id":"p1","status":"COMPLETED"}}')

    assert cache.is_invalidated("/api/projects")
    assert cache.is_invalidated("/api/projects/p1")
    assert notifier.last.title == "Project Status: COMPLETED"
    assert "completed" in notifier.last.description
    assert notifier.last.variant == "success"


def test_one_toast_per_event(router, notifier):
    router.handle_raw(frame("COMMENT_CREATED", id="c1"))
    router.handle_raw(frame("COMMENT_DELETED", id="c1"))
    assert [t.title for t in notifier.toasts] == ["Comment Created", "Comment Deleted"]


# ═══════════════════════════════════════════════════════════
# Bad input + robustness
# ═══════════════════════════════════════════════════════════


@pytest.mark.parametrize(
    "raw",
    ["{not json", "null", '{"type": "WHATEVER"}', '{"type": "TASK_UPDATED", "payload": "x"}'],
)
def test_malformed_frame_is_dropped_silently(router, cache, notifier, raw):
    seed(cache, "/api/tasks")

    router.handle_raw(raw)  # must not raise

    assert not cache.is_invalidated("/api/tasks")
    assert cache.keys() == [("/api/tasks",)]
    assert notifier.toasts == []
    assert router.stats.dropped == 1
    assert router.last_message is None


def test_control_frame_records_client_id(router, notifier):
    router.handle_raw('{"type": "CONNECTION_ESTABLISHED", "clientId": "k3j9"}')
    assert router.client_id == "k3j9"
    assert router.stats.control == 1
    assert router.stats.dropped == 0
    assert notifier.toasts == []


def test_messages_applied_in_arrival_order(router):
    seen = []
    router.add_listener(lambda m: seen.append(m.entity_id))
    for i in range(5):
        router.handle_raw(frame("TASK_UPDATED", id=f"t{i}"))
    assert seen == ["t0", "t1", "t2", "t3", "t4"]
    assert router.last_message.entity_id == "t4"
    assert router.stats.dispatched == 5


def test_duplicates_are_applied_again(router, cache):
    seed(cache, "/api/epics/e1")
    router.handle_raw(frame("EPIC_UPDATED", id="e1"))
    cache.set_query_data("/api/epics/e1", {"refetched": True})
    router.handle_raw(frame("EPIC_UPDATED", id="e1"))
    assert cache.is_invalidated("/api/epics/e1")


def test_failing_listener_does_not_stop_router(router, cache):
    def explode(message):
        raise RuntimeError("listener bug")

    seen = []
    router.add_listener(explode)
    router.add_listener(lambda m: seen.append(m.type))
    seed(cache, "/api/teams")

    router.handle_raw(frame("TEAM_UPDATED", id="t1"))

    assert cache.is_invalidated("/api/teams")
    assert len(seen) == 1


def test_unsubscribe_listener(router):
    seen = []
    unsubscribe = router.add_listener(lambda m: seen.append(m))
    unsubscribe()
    router.handle_raw(frame("TEAM_UPDATED", id="t1"))
    assert seen == []
