"""ProjectPulse — real-time client for the project-management API.

Keeps a local query cache of REST reads in step with the server by
listening to its WebSocket event stream: every CREATED / UPDATED / DELETED
event invalidates (or evicts) the affected cache entries so the next read
fetches fresh data.
"""

__version__ = "0.1.0"
