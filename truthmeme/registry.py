"""In-memory index of live WebSocket connections per room and per user."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket
from fastapi.websockets import WebSocketState

logger = logging.getLogger(__name__)


def _is_open(ws: WebSocket) -> bool:
    return ws.client_state == WebSocketState.CONNECTED and ws.application_state == WebSocketState.CONNECTED


class ConnectionRegistry:
    """Tracks which sockets belong to which room and fans events out to them.

    Single-process only. Every method runs on the event loop thread, so the
    two maps need no lock.
    """

    def __init__(self) -> None:
        self._room_connections: Dict[str, Set[WebSocket]] = {}
        self._user_connections: Dict[int, WebSocket] = {}

    def bind(self, room_id: str, user_id: int, ws: WebSocket) -> None:
        """Add *ws* to *room_id* and make it the active socket of *user_id*.

        A previous socket of the same user is dropped from the user map but
        left open and left in its rooms.
        """
        self._room_connections.setdefault(room_id, set()).add(ws)
        previous = self._user_connections.get(user_id)
        if previous is not None and previous is not ws:
            logger.debug("Replacing connection of user %s", user_id)
        self._user_connections[user_id] = ws
        logger.debug("Bound user %s to room %s", user_id, room_id)

    def unbind(self, ws: WebSocket) -> None:
        """Forget *ws* everywhere; rooms left empty are pruned."""
        for room_id in list(self._room_connections):
            sockets = self._room_connections[room_id]
            sockets.discard(ws)
            if not sockets:
                del self._room_connections[room_id]

        for user_id, bound in list(self._user_connections.items()):
            if bound is ws:
                del self._user_connections[user_id]

    async def broadcast(self, room_id: str, event: Dict[str, Any]) -> int:
        """Send *event* as JSON to every open socket in *room_id*.

        Sockets that are not open are skipped and send failures are swallowed;
        the return value is the number of sockets the event was handed to.
        """
        sockets = self._room_connections.get(room_id)
        if not sockets:
            return 0

        message = json.dumps(event)
        delivered = 0
        for ws in list(sockets):
            if not _is_open(ws):
                continue
            try:
                await ws.send_text(message)
            except Exception:
                # Peer went away between the state check and the send.
                logger.debug("Dropped %s event for a closed socket in room %s", event.get("type"), room_id)
                continue
            delivered += 1
        return delivered

    # -------------------- Inspection helpers -------------------- #

    def room_connections(self, room_id: str) -> Set[WebSocket]:
        return set(self._room_connections.get(room_id, ()))

    def connection_for(self, user_id: int) -> Optional[WebSocket]:
        return self._user_connections.get(user_id)

    def rooms(self) -> Set[str]:
        return set(self._room_connections)


__all__ = ["ConnectionRegistry"]
