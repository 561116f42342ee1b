#!/usr/bin/env python3
"""
ProjectPulse Quickstart — watch a cached read go stale and refresh.

Opens a realtime session, reads a project through the cache, updates it
over REST, and waits for the server's PROJECT_UPDATED event to invalidate
the cached copy. The next read refetches.

Run with: python examples/quickstart.py <project-id>

Requires: pip install -e .
Server must be running: http://localhost:5000 (PROJECTPULSE_API_URL)
"""

import asyncio
import sys

from projectpulse.events.types import EventType
from projectpulse.realtime.notifications import CollectingNotifier
from projectpulse.session import RealtimeSession


async def main(project_id: str) -> None:
    notifier = CollectingNotifier()
    updated = asyncio.Event()

    async with RealtimeSession(notifier=notifier) as session:
        session.router.add_listener(
            lambda m: updated.set()
            if m.type is EventType.PROJECT_UPDATED and m.entity_id == project_id
            else None
        )

        # ── Wait for the socket ──────────────────────────────────────
        print("1. Connecting...")
        for _ in range(50):
            if session.connected:
                break
            await asyncio.sleep(0.1)
        else:
            print(f"   Could not connect to {session.connection.url}")
            sys.exit(1)
        print(f"   Connected ({session.connection.url})")

        # ── Cached read ──────────────────────────────────────────────
        path = f"/api/projects/{project_id}"
        project = await session.read(path)
        print(f"\n2. Read {project['name']} (status {project['status']})")

        # ── Mutate over REST ─────────────────────────────────────────
        print("\n3. Setting status to IN_PROGRESS...")
        await session.mutate("PUT", path, {"status": "IN_PROGRESS"})

        # ── Event invalidates the cache ──────────────────────────────
        await asyncio.wait_for(updated.wait(), timeout=10)
        print(f"   Event received, cache entry stale: {session.cache.is_invalidated(path)}")
        for toast in notifier.toasts:
            print(f"   Toast: {toast.title} — {toast.description}")

        # ── Next read refetches ──────────────────────────────────────
        project = await session.read(path)
        print(f"\n4. Re-read {project['name']} (status {project['status']})")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python examples/quickstart.py <project-id>")
        sys.exit(2)
    asyncio.run(main(sys.argv[1]))
