"""Web server lifecycle for the sidebar UI."""

from __future__ import annotations

import socket
from typing import TYPE_CHECKING

import uvicorn

from claudesidebar.bridge.routes import create_app
from claudesidebar.logging import get_logger

if TYPE_CHECKING:
    from claudesidebar.orchestrator import Orchestrator

log = get_logger("server")


class SidebarServer(uvicorn.Server):
    """uvicorn server that lets the orchestrator shut down first.

    uvicorn closes open WebSockets as part of its own shutdown, so the
    orchestrator's save-state request and close grace run before that.
    """

    def __init__(self, config: uvicorn.Config, orchestrator: Orchestrator) -> None:
        super().__init__(config)
        self.orchestrator = orchestrator

    async def shutdown(self, sockets: list[socket.socket] | None = None) -> None:
        await self.orchestrator.shutdown()
        await super().shutdown(sockets=sockets)


def build_server(orchestrator: Orchestrator, host: str, port: int) -> SidebarServer:
    app = create_app(orchestrator)
    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level="warning",
        access_log=False,
    )
    return SidebarServer(config, orchestrator)


async def serve(orchestrator: Orchestrator, host: str, port: int) -> None:
    """Serve the UI until interrupted; the app lifespan starts and stops the orchestrator."""
    server = build_server(orchestrator, host, port)
    log.info(f"UI available at http://{host}:{port}/")
    await server.serve()
