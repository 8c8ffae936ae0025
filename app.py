import os
from typing import Optional

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from backend import RoomRegistry
from constants import CORS_ORIGINS, LOG_FILE, LOG_LEVEL, SEND_TIMEOUT_SEC, STATIC_DIR
from gateway import GameGateway
from logging_config import get_logger, setup_logging
from routers.rooms import rooms_router
from schemas.rooms import HealthResponse

logger = get_logger(__name__)


def create_app(
    registry: Optional[RoomRegistry] = None,
    send_timeout: float = SEND_TIMEOUT_SEC,
    static_dir: str = STATIC_DIR,
) -> FastAPI:
    """Build the game server application.

    Each app owns its registry and gateway (on `app.state`) so tests can spin
    up isolated servers.
    """
    registry = registry if registry is not None else RoomRegistry()
    gateway = GameGateway(registry, send_timeout=send_timeout)

    app = FastAPI(title="Odd/Even Tic-Tac-Toe")
    app.state.registry = registry
    app.state.gateway = gateway

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(rooms_router)

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(ok=True)

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket, room: Optional[str] = None, name: Optional[str] = None):
        """Real-time game channel.

        Query parameters:
        - room: room key, defaults to "lobby"
        - name: display name, defaults to a generated guest name
        """
        logger.info(f"WebSocket connection attempt for room: {room}, name: {name}")
        await gateway.serve(websocket, room, name)

    assets_dir = os.path.join(static_dir, "assets")
    if os.path.isdir(assets_dir):
        app.mount("/assets", StaticFiles(directory=assets_dir), name="assets")
    else:
        logger.warning(f"Static assets directory {assets_dir} not found, /assets disabled")

    index_file = os.path.join(static_dir, "index.html")

    @app.get("/{full_path:path}", include_in_schema=False)
    async def index(full_path: str):
        if os.path.isfile(index_file):
            return FileResponse(index_file, media_type="text/html")
        return PlainTextResponse("Odd/Even Tic-Tac-Toe server is running. Connect to /ws.")

    logger.info("FastAPI application initialized")
    return app


setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)

app = create_app()
