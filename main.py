"""
Main API module for Presence Platform.

Responsibilities:
    - Ingest visitor heartbeats over HTTP and over a live WebSocket stream
    - Report how many visitors are active within the presence window
    - Let a visitor leave explicitly
    - Translate store outages into 503 instead of a misleading zero

Architecture:
    - App Factory pattern (create_app) for test isolation and DI.
    - In-memory store by default; Postgres selected via PRESENCE_STORAGE_BACKEND.
    - PresenceRegister owns the expiry rule; routes only call it.

LLM Prompt Example:
    "Explain how to structure a FastAPI service with an application factory,
    an injected store, and an exception handler that maps backend outages
    to 503."
"""

import logging
from typing import Optional

from fastapi import FastAPI, Header, Request, WebSocket
from fastapi.responses import JSONResponse

from presence_platform.config import settings
from presence_platform.errors import StoreUnavailable
from presence_platform.live.hub import LiveVisitorHub
from presence_platform.register.presence_register import Clock, PresenceRegister, utcnow
from presence_platform.schemas import (
    ActiveCountResponse,
    ActiveUsersResponse,
    HeartbeatRequest,
    HeartbeatResponse,
    LeaveResponse,
)
from presence_platform.storage.base import BasePresenceStore
from presence_platform.storage.storage_factory import get_store


def create_app(store: Optional[BasePresenceStore] = None, clock: Clock = utcnow) -> FastAPI:
    """
    Factory function to build and configure a new FastAPI app instance.

    Args:
        store (BasePresenceStore, optional): Injected backend; when omitted the
            storage factory picks one from the environment.
        clock (Callable[[], datetime]): Time source for the register.

    Returns:
        FastAPI: A configured application with its own register and live hub.
    """
    app = FastAPI(
        title="Presence Platform",
        description="Active visitor tracking with lazy expiry",
        docs_url="/docs",
    )
    log = logging.getLogger("presence")

    if not logging.getLogger().handlers:
        logging.basicConfig(level=settings.LOG_LEVEL)

    # ----------------------------------------------------------------
    # Per-app instances (isolated for tests, swappable for production)
    # ----------------------------------------------------------------
    if store is None:
        store = get_store()
        log.info("Presence storage backend: %s", type(store).__name__)
    register = PresenceRegister(store=store, clock=clock)
    hub = LiveVisitorHub(register)

    app.state.register = register
    app.state.hub = hub

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
        log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=503, content={"detail": exc.message})

    # Health check
    @app.get("/health_presence")
    def health_presence():
        return {"status": "ok"}

    # ----------------------------------------------------------------
    # Routes
    # ----------------------------------------------------------------
    @app.get("/presence/active-count", response_model=ActiveCountResponse, response_model_by_alias=True)
    def active_count() -> ActiveCountResponse:
        """
        Number of visitors seen within the presence window.

        Expired visitors are deleted as a side effect of this call.
        """
        return ActiveCountResponse(active_count=register.count_active())

    @app.get("/analytics/active-users", response_model=ActiveUsersResponse, response_model_by_alias=True)
    def active_users() -> ActiveUsersResponse:
        """Same count under the path and field name the landing page polls."""
        return ActiveUsersResponse(active_users=register.count_active())

    @app.post("/presence/heartbeat", response_model=HeartbeatResponse)
    @app.post("/analytics/user-activity", response_model=HeartbeatResponse)
    def heartbeat(
        req: HeartbeatRequest,
        user_agent: Optional[str] = Header(default=None),
    ) -> HeartbeatResponse:
        """Record that a visitor is still on the page."""
        register.record_heartbeat(req.visitor_id, page=req.page or "/", user_agent=user_agent)
        return HeartbeatResponse(success=True)

    @app.delete("/presence/{visitor_id}", response_model=LeaveResponse)
    def leave(visitor_id: str) -> LeaveResponse:
        return LeaveResponse(removed=register.leave(visitor_id))

    @app.websocket("/presence/live")
    @app.websocket("/analytics/live-visitors")
    async def live_visitors(websocket: WebSocket):
        await hub.serve(websocket)

    return app


# `uvicorn main:app --reload` and `from main import app` continue to work.
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
