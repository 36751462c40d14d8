"""Websocket fan-out for room broadcasts."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from framework.events import Audience, Broadcast, Outcome
from framework.serialize import to_serializable

logger = logging.getLogger(__name__)


class RoomHub:
    """
    In-memory registry of websocket connections per room.

    - A participant may hold several connections (tabs); all of them receive
      broadcasts addressed to that participant.
    - OTHERS means every connection owned by a different participant.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._connections: dict[str, dict[WebSocket, str]] = defaultdict(dict)

    async def connect(self, room_id: str, participant_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections[room_id][websocket] = participant_id

    async def disconnect(self, room_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            connections = self._connections.get(room_id)
            if not connections:
                return
            connections.pop(websocket, None)
            if not connections:
                self._connections.pop(room_id, None)

    async def player_count(self, room_id: str) -> int:
        async with self._lock:
            return len(set(self._connections.get(room_id, {}).values()))

    async def broadcast_player_count(self, room_id: str) -> None:
        count = await self.player_count(room_id)
        await self._send_many(await self._targets(room_id, None, Audience.ROOM), "player-count", count)

    async def publish(
        self,
        room_id: str,
        participant_id: str,
        outcome: Outcome,
        *,
        delay_sec: float = 0.0,
    ) -> None:
        """Deliver an outcome's broadcasts in order, pausing before delayed ones."""
        for broadcast in outcome.broadcasts:
            if broadcast.delayed and delay_sec > 0:
                await asyncio.sleep(delay_sec)
            await self.deliver(room_id, participant_id, broadcast)

    async def deliver(self, room_id: str, participant_id: str, broadcast: Broadcast) -> None:
        targets = await self._targets(room_id, participant_id, broadcast.audience)
        await self._send_many(targets, broadcast.event, broadcast.payload)

    async def _targets(self, room_id: str, participant_id: str | None, audience: Audience) -> list[WebSocket]:
        async with self._lock:
            connections = dict(self._connections.get(room_id, {}))
        if audience is Audience.ROOM:
            return list(connections)
        if audience is Audience.SELF:
            return [websocket for websocket, owner in connections.items() if owner == participant_id]
        return [websocket for websocket, owner in connections.items() if owner != participant_id]

    async def _send_many(self, targets: list[WebSocket], event: str, payload: Any) -> None:
        message = {"event": event, "payload": to_serializable(payload)}
        for websocket in targets:
            try:
                await websocket.send_json(message)
            except (WebSocketDisconnect, RuntimeError) as exc:
                # Closed sockets are dropped by their own handler on disconnect.
                logger.debug("Dropped %s message for closed websocket: %s", event, exc)
