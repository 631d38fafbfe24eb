from __future__ import annotations

import asyncio

from fastapi import WebSocket


class WorldWebSocketHub:
    """In-process fan-out of commit notifications to WebSocket subscribers.

    Every subscriber sees every commit (`broadcast`). Sockets opened with an
    identity can also be addressed directly (`send_to`), which is how a client
    learns its own player row after connecting.

    Payloads should be JSON-serializable dicts. Row data itself is read from
    the change stream (`/changes`), not pushed here.
    """

    def __init__(self) -> None:
        self._subscribers: dict[WebSocket, str | None] = {}
        self._lock = asyncio.Lock()

    async def subscribe(self, websocket: WebSocket, *, identity: str | None = None) -> None:
        await websocket.accept()
        async with self._lock:
            self._subscribers[websocket] = identity

    async def unsubscribe(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._subscribers.pop(websocket, None)

    async def broadcast(self, payload: dict[str, object]) -> None:
        async with self._lock:
            targets = list(self._subscribers)
        await self._send(targets, payload)

    async def send_to(self, identity: str, payload: dict[str, object]) -> None:
        async with self._lock:
            targets = [ws for ws, who in self._subscribers.items() if who == identity]
        await self._send(targets, payload)

    async def _send(self, targets: list[WebSocket], payload: dict[str, object]) -> None:
        dead: list[WebSocket] = []
        for ws in targets:
            try:
                await ws.send_json(payload)
            except Exception:
                dead.append(ws)

        if dead:
            async with self._lock:
                for ws in dead:
                    self._subscribers.pop(ws, None)


hub = WorldWebSocketHub()
