"""
Live visitor stream for Presence Platform.

Responsibilities:
    - Accept WebSocket connections from landing pages
    - Turn join / heartbeat / leave messages into register calls
    - Broadcast the active count whenever a visitor joins or leaves
    - Drop connections that can no longer be written to

Notes:
    - The register is synchronous (psycopg backend), so every register call
      runs in the threadpool to keep the event loop free.
    - The broadcast count comes from the register, not from the number of
      open sockets, so HTTP heartbeats and stream visitors are counted
      together.
    - Connections are per process; with several workers each worker only
      broadcasts to its own sockets.
"""

import logging
from typing import Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from ..errors import StoreUnavailable
from ..register.presence_register import PresenceRegister
from ..schemas import ActiveVisitorsMessage, VisitorMessage

log = logging.getLogger("presence.live")


class LiveVisitorHub:
    def __init__(self, register: PresenceRegister):
        self.register = register
        self.connections: Dict[str, WebSocket] = {}

    def _message(self, type_: str, active_count: int, visitor_id: Optional[str] = None) -> dict:
        msg = ActiveVisitorsMessage(
            type=type_,
            active_count=active_count,
            visitor_id=visitor_id,
            timestamp=self.register.clock(),
        )
        return msg.model_dump(mode="json", by_alias=True, exclude_none=True)

    async def _count(self) -> int:
        return await run_in_threadpool(self.register.count_active)

    async def broadcast(self, type_: str, visitor_id: Optional[str] = None) -> None:
        """Send the current count to every open connection."""
        payload = self._message(type_, await self._count(), visitor_id)
        dead = []
        for vid, ws in list(self.connections.items()):
            try:
                await ws.send_json(payload)
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                log.warning("Failed to send to %s: %s", vid, exc)
                dead.append(vid)

        for vid in dead:
            self.connections.pop(vid, None)
            await run_in_threadpool(self.register.leave, vid)

    async def _handle(self, websocket: WebSocket, msg: VisitorMessage, current: Optional[str]) -> Optional[str]:
        vid = str(msg.visitor_id)
        if msg.type == "join":
            if current is not None and current != vid and self.connections.get(current) is websocket:
                # Rejoin under a new id: the old id leaves first.
                self.connections.pop(current, None)
                await run_in_threadpool(self.register.leave, current)
                log.info("Visitor %s replaced by %s on the same stream", current, vid)
                await self.broadcast("visitor_left", current)
            self.connections[vid] = websocket
            await run_in_threadpool(self.register.record_heartbeat, vid, msg.page)
            log.info("Visitor %s joined", vid)
            await self.broadcast("visitor_joined", vid)
            return vid

        if msg.type == "heartbeat":
            await run_in_threadpool(self.register.record_heartbeat, vid, msg.page)
            await websocket.send_json(self._message("active_count", await self._count()))
            return current

        # leave
        self.connections.pop(vid, None)
        await run_in_threadpool(self.register.leave, vid)
        log.info("Visitor %s left", vid)
        await self.broadcast("visitor_left", vid)
        # Only a sender that is no longer in the connection map missed the broadcast.
        if not any(ws is websocket for ws in self.connections.values()):
            await websocket.send_json(self._message("visitor_left", await self._count(), vid))
        return None if vid == current else current

    async def serve(self, websocket: WebSocket) -> None:
        """Run one client connection until it disconnects."""
        await websocket.accept()
        current: Optional[str] = None
        log.info("New visitor stream connection established")
        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    msg = VisitorMessage.model_validate_json(raw)
                except ValidationError as exc:
                    log.warning("Ignoring malformed visitor message: %s", exc.errors())
                    continue
                current = await self._handle(websocket, msg, current)
        except WebSocketDisconnect:
            log.info("Visitor stream connection closed")
        except StoreUnavailable:
            log.error("Presence store unavailable; closing visitor stream")
            await websocket.close(code=1011)
        finally:
            owned = [vid for vid, ws in self.connections.items() if ws is websocket]
            for vid in owned:
                self.connections.pop(vid, None)
            if current is not None and current in owned:
                try:
                    await run_in_threadpool(self.register.leave, current)
                    await self.broadcast("visitor_left", current)
                except StoreUnavailable:
                    log.error("Presence store unavailable during cleanup for %s", current)
