"""FastAPI routes: the UI's request/response calls and its signal WebSocket."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from collections.abc import AsyncIterator, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from fastapi import (
    Body,
    Depends,
    FastAPI,
    HTTPException,
    Request,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from fastapi.responses import FileResponse, RedirectResponse
from pydantic import BaseModel

from claudesidebar.session.registry import DuplicateSessionError
from claudesidebar.terminal.pty_process import SessionSpawnError

if TYPE_CHECKING:
    from claudesidebar.orchestrator import Orchestrator

log = logging.getLogger(__name__)

_NO_CACHE = {"Cache-Control": "no-store"}


def is_foreign_origin(headers: Mapping[str, str]) -> bool:
    """True when a browser marks the request as coming from another site.

    Requests without an ``Origin`` header (command-line clients, same-origin
    GETs) pass; an ``Origin`` must name the host the request was sent to.
    """
    if headers.get("sec-fetch-site") == "cross-site":
        return True
    origin = headers.get("origin")
    if origin is None:
        return False
    return urlsplit(origin).netloc.lower() != headers.get("host", "").lower()


async def require_same_origin(request: Request) -> None:
    if is_foreign_origin(request.headers):
        log.warning(
            "Rejected %s %s from origin %s",
            request.method,
            request.url.path,
            request.headers.get("origin"),
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cross-origin request")


_SAME_ORIGIN = [Depends(require_same_origin)]


class CreateSessionRequest(BaseModel):
    id: str
    cwd: str | None = None
    resume: bool = False


class InputRequest(BaseModel):
    data: str


class ResizeRequest(BaseModel):
    cols: int
    rows: int


class VisibilityRequest(BaseModel):
    visible: bool


def create_app(orchestrator: Orchestrator) -> FastAPI:
    """Create and configure the FastAPI application.

    The app starts the orchestrator on startup and shuts it down on exit.
    """

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await orchestrator.start()
        yield
        await orchestrator.shutdown()

    app = FastAPI(
        title="claudesidebar",
        description="Terminal sessions and live-editable UI for the sidebar shell",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator

    _register_ui_routes(app)
    _register_api_routes(app)
    _register_websocket(app)

    return app


def _orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


def _names_bridge(root: Path, relpath: str, bridge_file: str) -> bool:
    """True when ``relpath`` addresses the overlay's bridge file by any spelling."""
    bridge = root / bridge_file
    lexical = os.path.normpath(root / relpath)
    if os.path.normcase(lexical) == os.path.normcase(bridge):
        return True
    try:
        return (root / relpath).samefile(bridge)
    except OSError:
        return False


def _overlay_file(orch: Orchestrator, relpath: str) -> Path:
    """Resolve ``relpath`` inside the overlay; the bridge file comes from the bundle."""
    layout = orch.layout
    root = layout.overlay_dir.resolve()
    if _names_bridge(root, relpath, layout.bridge_file):
        path = layout.bundle_bridge_path
    else:
        path = (root / relpath).resolve()
        if not path.is_relative_to(root):
            raise HTTPException(status_code=404, detail="Not found")
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Not found")
    return path


def _register_ui_routes(app: FastAPI) -> None:
    """Serve the overlay as the UI."""

    @app.get("/")
    async def index() -> RedirectResponse:
        return RedirectResponse(url="/app/index.html")

    @app.get("/app/{relpath:path}")
    async def overlay_file(relpath: str, request: Request) -> FileResponse:
        path = _overlay_file(_orchestrator(request), relpath)
        return FileResponse(path, headers=_NO_CACHE)

    @app.get("/plugins/{name}")
    async def plugin_file(name: str, request: Request) -> FileResponse:
        path = _orchestrator(request).plugins.resolve(name)
        if path is None:
            raise HTTPException(status_code=404, detail=f"No plugin named {name!r}")
        return FileResponse(path, headers=_NO_CACHE)


def _register_api_routes(app: FastAPI) -> None:
    """Register the request/response calls."""

    @app.get("/api/environment", dependencies=_SAME_ORIGIN)
    async def api_environment(request: Request) -> dict[str, str]:
        return _orchestrator(request).environment()

    @app.get("/api/plugins", dependencies=_SAME_ORIGIN)
    async def api_plugins(request: Request) -> dict[str, list[str]]:
        return _orchestrator(request).plugin_set().to_dict()

    @app.post("/api/sessions", dependencies=_SAME_ORIGIN)
    async def api_create_session(body: CreateSessionRequest, request: Request) -> dict[str, str]:
        orch = _orchestrator(request)
        try:
            return await orch.create(body.id, cwd=body.cwd, resume=body.resume)
        except DuplicateSessionError as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        except SessionSpawnError as e:
            log.error("Session %s failed to start: %s", body.id, e)
            raise HTTPException(status_code=500, detail=str(e)) from e

    @app.get("/api/sessions", dependencies=_SAME_ORIGIN)
    async def api_list_sessions(request: Request) -> list[dict[str, Any]]:
        return [s.to_dict() for s in _orchestrator(request).registry.list_sessions()]

    @app.post("/api/sessions/{session_id}/input", dependencies=_SAME_ORIGIN, status_code=204)
    async def api_input(session_id: str, body: InputRequest, request: Request) -> None:
        _orchestrator(request).send_input(session_id, body.data)

    @app.post("/api/sessions/{session_id}/resize", dependencies=_SAME_ORIGIN, status_code=204)
    async def api_resize(session_id: str, body: ResizeRequest, request: Request) -> None:
        _orchestrator(request).resize(session_id, body.cols, body.rows)

    @app.delete("/api/sessions/{session_id}", dependencies=_SAME_ORIGIN, status_code=204)
    async def api_destroy(session_id: str, request: Request) -> None:
        _orchestrator(request).destroy(session_id)

    @app.get("/api/sessions/{session_id}/active", dependencies=_SAME_ORIGIN)
    async def api_is_active(session_id: str, request: Request) -> dict[str, bool]:
        return {"active": _orchestrator(request).is_active(session_id)}

    @app.put("/api/state", dependencies=_SAME_ORIGIN)
    async def api_save_state(request: Request, snapshot: Any = Body(...)) -> dict[str, bool]:
        return {"ok": _orchestrator(request).save_state(snapshot)}

    @app.get("/api/state", dependencies=_SAME_ORIGIN)
    async def api_load_state(request: Request) -> Any:
        return _orchestrator(request).load_state()

    @app.post("/api/pick-directory", dependencies=_SAME_ORIGIN)
    async def api_pick_directory(request: Request) -> dict[str, str | None]:
        return {"path": await _orchestrator(request).pick_directory()}

    @app.post("/api/reset/{target}", dependencies=_SAME_ORIGIN)
    async def api_reset(target: str, request: Request) -> dict[str, bool]:
        orch = _orchestrator(request)
        if target == "source":
            ok = orch.reset_editable_source()
        elif target == "guidance":
            ok = orch.reset_guidance()
        elif target == "all":
            ok = orch.nuke_overlay()
        else:
            raise HTTPException(status_code=404, detail=f"Unknown reset target: {target}")
        return {"ok": ok}

    @app.post("/api/visibility", dependencies=_SAME_ORIGIN, status_code=204)
    async def api_visibility(body: VisibilityRequest, request: Request) -> None:
        if not body.visible:
            _orchestrator(request).notify_hidden()


def _handle_client_message(orch: Orchestrator, message: Any) -> None:
    """Fire-and-forget calls sent over the socket (keystrokes, resizes)."""
    if not isinstance(message, dict):
        return
    kind = message.get("type")
    session_id = message.get("id")
    if not isinstance(session_id, str):
        return
    if kind == "input" and isinstance(message.get("data"), str):
        orch.send_input(session_id, message["data"])
    elif kind == "resize":
        cols, rows = message.get("cols"), message.get("rows")
        if isinstance(cols, int) and isinstance(rows, int):
            orch.resize(session_id, cols, rows)
    elif kind == "destroy":
        orch.destroy(session_id)


def _register_websocket(app: FastAPI) -> None:

    @app.websocket("/ws")
    async def signals(websocket: WebSocket) -> None:
        if is_foreign_origin(websocket.headers):
            log.warning("Rejected socket from origin %s", websocket.headers.get("origin"))
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return
        orch: Orchestrator = websocket.app.state.orchestrator
        manager = orch.connections
        queue = await manager.connect(websocket)
        pump = asyncio.create_task(manager.pump(websocket, queue))
        try:
            while True:
                message = await websocket.receive_json()
                _handle_client_message(orch, message)
        except (WebSocketDisconnect, RuntimeError):
            pass
        except ValueError as e:
            log.debug("Malformed UI message: %s", e)
        finally:
            manager.disconnect(websocket)
            pump.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await pump
