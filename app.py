from typing import Optional

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from constants import LOG_FILE, LOG_LEVEL, RelaySettings
from logging_config import get_logger, setup_logging
from registry import RoomRegistry
from relay import ConnectionRelay
from routers.health import health_router

logger = get_logger(__name__)


def create_app(registry: Optional[RoomRegistry] = None, settings: Optional[RelaySettings] = None) -> FastAPI:
    """Build the relay application.

    The websocket upgrade and the plain-text liveness response share one port:
    websocket requests on any path join a room, everything else gets the
    liveness message.
    """
    app = FastAPI(title="Room Relay", docs_url=None, redoc_url=None, openapi_url=None)

    # Configure CORS to allow all origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.registry = registry if registry is not None else RoomRegistry()
    app.state.relay = ConnectionRelay(app.state.registry, settings)

    @app.websocket("/{path:path}")
    async def websocket_endpoint(websocket: WebSocket, path: str):
        """Join the room named by the ``roomId`` query parameter and relay its traffic.

        Query parameters:
        - roomId: room to join; missing or empty means the default room
        """
        await app.state.relay.handle(websocket)

    # Catch-all HTTP route goes last
    app.include_router(health_router)

    logger.info("FastAPI application initialized")
    return app


setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
app = create_app()
