"""
WebSocket connection manager for the live notification feed.

Tracks active connections per user. While a user has at least one open
connection, a poller re-runs the notification feed query and pushes the
snapshot to every connection whenever it changes.
"""

from typing import Any, Callable, Dict, Set
import asyncio
import json
import logging

from fastapi import WebSocket

logger = logging.getLogger(__name__)

SnapshotLoader = Callable[[str], dict[str, Any]]


class ConnectionManager:
    """Manages WebSocket connections and feed pollers per user."""

    def __init__(self, load_snapshot: SnapshotLoader, poll_seconds: float = 5.0):
        # user_id -> set of active WebSocket connections
        self._connections: Dict[str, Set[WebSocket]] = {}
        # user_id -> running poller task
        self._pollers: Dict[str, asyncio.Task] = {}
        # user_id -> last snapshot pushed
        self._last: Dict[str, dict[str, Any]] = {}
        self._load_snapshot = load_snapshot
        self._poll_seconds = poll_seconds
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, user_id: str):
        """Accept and register a new WebSocket connection."""
        await websocket.accept()
        async with self._lock:
            self._connections.setdefault(user_id, set()).add(websocket)
            last = self._last.get(user_id)
            if user_id not in self._pollers:
                self._pollers[user_id] = asyncio.create_task(self._poll(user_id))

        # Late joiners get the current snapshot straight away
        if last is not None:
            await websocket.send_text(json.dumps(last))

    async def disconnect(self, websocket: WebSocket, user_id: str):
        """Remove a WebSocket connection; stop polling when none remain."""
        poller = None
        async with self._lock:
            if user_id in self._connections:
                self._connections[user_id].discard(websocket)
                if not self._connections[user_id]:
                    del self._connections[user_id]
                    self._last.pop(user_id, None)
                    poller = self._pollers.pop(user_id, None)
        if poller and poller is not asyncio.current_task():
            poller.cancel()

    async def send_to_user(self, user_id: str, message: dict):
        """Send a message to all connections for a specific user."""
        async with self._lock:
            connections = self._connections.get(user_id, set()).copy()

        if not connections:
            return

        data = json.dumps(message)
        closed = []

        for ws in connections:
            try:
                await ws.send_text(data)
            except Exception:
                # Connection closed or errored
                closed.append(ws)

        for ws in closed:
            await self.disconnect(ws, user_id)

    async def push_snapshot(self, user_id: str) -> bool:
        """Load the feed for a user and push it if it changed. Returns True if pushed."""
        snapshot = await asyncio.to_thread(self._load_snapshot, user_id)
        if snapshot == self._last.get(user_id):
            return False
        self._last[user_id] = snapshot
        await self.send_to_user(user_id, snapshot)
        return True

    async def _poll(self, user_id: str):
        try:
            while self.get_connected_count(user_id):
                try:
                    await self.push_snapshot(user_id)
                except Exception:
                    logger.exception("Live feed refresh failed for user %s", user_id)
                await asyncio.sleep(self._poll_seconds)
        finally:
            async with self._lock:
                if self._pollers.get(user_id) is asyncio.current_task():
                    del self._pollers[user_id]

    def get_connected_count(self, user_id: str) -> int:
        """Get the number of active connections for a user."""
        return len(self._connections.get(user_id, set()))

    def get_total_connections(self) -> int:
        """Get total number of active connections across all users."""
        return sum(len(conns) for conns in self._connections.values())
