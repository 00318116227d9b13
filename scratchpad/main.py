"""FastAPI application exposing the scratchpad session.

Endpoints:
  GET    /state      — Open tabs, active tab, current folder, save status, sidebar
  POST   /commands   — Dispatch a session command
  POST   /shortcuts  — Resolve and dispatch a keyboard shortcut
  GET    /sidebar    — Folder tree or search results currently shown
  GET    /health     — Session and storage status
  GET    /metrics    — Prometheus metrics
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware

from scratchpad.backend import create_backend
from scratchpad.browse import SidebarView
from scratchpad.commands import Command, resolve_shortcut
from scratchpad.config import Settings, settings as default_settings
from scratchpad.metrics import HTTP_DURATION, HTTP_REQUESTS
from scratchpad.models import Folder, Note
from scratchpad.session import SessionNotReady, SessionOrchestrator, SessionState

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger(__name__)

# Endpoints excluded from HTTP metrics
_METRICS_EXCLUDE = {"/metrics", "/openapi.json", "/docs", "/redoc"}


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record HTTP request count and duration for Prometheus."""

    async def dispatch(self, request: Request, call_next):
        """Wrap each request with timing and counting."""
        path = request.url.path
        if path in _METRICS_EXCLUDE:
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start

        HTTP_REQUESTS.labels(
            method=request.method,
            endpoint=path,
            status_code=response.status_code,
        ).inc()
        HTTP_DURATION.labels(endpoint=path).observe(elapsed)
        return response


# --- Request / Response models ---


class CommandResponse(BaseModel):
    """Result of a dispatched command plus the resulting session state."""

    ok: bool
    note: Optional[Note] = None
    folder: Optional[Folder] = None
    state: SessionState


class ShortcutRequest(BaseModel):
    """A key press with the Ctrl/Cmd modifier flag."""

    key: str
    modifier: bool = True


class ShortcutResponse(BaseModel):
    handled: bool
    result: Optional[CommandResponse] = None


def _command_response(session: SessionOrchestrator, result: object) -> CommandResponse:
    return CommandResponse(
        ok=result is not None and result is not False,
        note=result if isinstance(result, Note) else None,
        folder=result if isinstance(result, Folder) else None,
        state=session.snapshot(),
    )


def create_app(settings: Settings = default_settings) -> FastAPI:
    """Build the app around a session over the configured backend."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup: load data and start autosave. Shutdown: flush the active tab."""
        session = SessionOrchestrator(create_backend(settings), settings)
        app.state.session = session
        logger.info("Starting session — loading notes and folders...")
        if await session.start():
            logger.info("Session ready: %d notes, %d folders",
                        len(session.store.notes), len(session.store.folders))
        else:
            logger.warning("Session started empty after a load failure")
        yield
        await session.shutdown()

    app = FastAPI(title="Scratchpad Session", version="1.0.0", lifespan=lifespan)
    app.add_middleware(MetricsMiddleware)

    @app.exception_handler(SessionNotReady)
    async def not_ready(request: Request, exc: SessionNotReady) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    # --- Endpoints ---

    @app.get("/state", response_model=SessionState)
    async def state(request: Request) -> SessionState:
        """Current session snapshot."""
        return request.app.state.session.snapshot()

    @app.post("/commands", response_model=CommandResponse)
    async def commands(command: Command, request: Request) -> CommandResponse:
        """Dispatch a session command and return the resulting state."""
        session: SessionOrchestrator = request.app.state.session
        result = await session.dispatch(command)
        return _command_response(session, result)

    @app.post("/shortcuts", response_model=ShortcutResponse)
    async def shortcuts(body: ShortcutRequest, request: Request) -> ShortcutResponse:
        """Resolve a keyboard shortcut; keys that are not session commands are ignored."""
        session: SessionOrchestrator = request.app.state.session
        command = resolve_shortcut(body.key, body.modifier, len(session.tabs))
        if command is None:
            return ShortcutResponse(handled=False)
        result = await session.dispatch(command)
        return ShortcutResponse(handled=True, result=_command_response(session, result))

    @app.get("/sidebar", response_model=SidebarView)
    async def sidebar(request: Request) -> SidebarView:
        """Folder tree or flat search results, with the active note selected."""
        session: SessionOrchestrator = request.app.state.session
        return session.browse.view(selected_id=session.tabs.active_id)

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        """Session and storage status."""
        session: SessionOrchestrator = request.app.state.session
        return {
            "status": "healthy",
            "backend": settings.backend,
            "loaded": session.store.loaded,
            "notes": len(session.store.notes),
            "folders": len(session.store.folders),
            "open_tabs": len(session.tabs),
            "save_status": session.status.status.value,
        }

    @app.get("/metrics")
    async def metrics() -> Response:
        """Prometheus metrics endpoint."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
