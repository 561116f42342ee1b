"""Real-time infrastructure — WebSocket events → cache invalidation.

Learn: Events flow in one direction:
1. Server mutation succeeds → server broadcasts {type, payload} on /ws
2. ConnectionManager reads the frame → EventRouter.handle_raw()
3. EventRouter plans invalidation commands from the ENTITY_ROUTES table,
   applies them to the QueryCache, and emits a toast

The next read of any invalidated key refetches over REST.
"""
