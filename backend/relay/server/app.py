from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.routing import Route, WebSocketRoute

from relay.messaging.router import MessageRouter
from relay.server.settings import RelayServerSettings
from relay.server.websocket import websocket_endpoint
from relay.session.broadcast import ConnectionHub
from relay.session.identity import RandomIdentityProvider
from relay.session.registry import SessionRegistry
from shared.logging import setup_logging

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.websockets import WebSocket

logger = structlog.get_logger()


async def health(request: Request) -> PlainTextResponse:
    settings: RelayServerSettings = request.app.state.settings
    return PlainTextResponse(settings.health_message)


async def status(request: Request) -> JSONResponse:
    registry: SessionRegistry = request.app.state.registry
    hub: ConnectionHub = request.app.state.hub
    return JSONResponse(
        {
            "status": "ok",
            "rooms": registry.room_count,
            "players": registry.player_count,
            "connections": hub.connection_count,
        },
    )


def create_app(
    settings: RelayServerSettings | None = None,
    registry: SessionRegistry | None = None,
    hub: ConnectionHub | None = None,
    message_router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:
        settings = RelayServerSettings()

    if hub is None:
        hub = ConnectionHub()

    if registry is None:
        registry = SessionRegistry(hub, RandomIdentityProvider(settings.room_code_length))

    if message_router is None:
        message_router = MessageRouter(registry, hub)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router, max_decode_errors=settings.max_decode_errors)

    routes = [
        Route("/", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    app = Starlette(routes=routes)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.hub = hub

    logger.info("relay server ready")
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (uvicorn --factory)."""
    settings = RelayServerSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
