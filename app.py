from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from starlette.websockets import WebSocketState

from backend import RoomBackend
from connection import Connection
from constants import CORS_ORIGINS, LOG_FILE, LOG_LEVEL
from logging_config import get_logger, setup_logging
from routers.rooms import rooms_router
from schemas.rooms import HealthResponse
from signaling import SignalingRelay

setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


def create_app(room_backend: RoomBackend = None) -> FastAPI:
    app = FastAPI(title="Signaling relay")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # One room table per process; every connection handler shares it through app.state
    app.state.room_backend = room_backend or RoomBackend()
    app.state.relay = SignalingRelay(app.state.room_backend)

    app.include_router(rooms_router)

    @app.get("/health", response_model=HealthResponse)
    async def health():
        backend = app.state.room_backend
        return HealthResponse(
            status="healthy",
            rooms=backend.room_count(),
            connections=backend.connection_count(),
        )

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """Signaling channel. One task per client; messages are JSON objects with a `type` field."""
        relay: SignalingRelay = app.state.relay
        await websocket.accept()
        connection = Connection(websocket)
        connection.start()
        logger.info(f"Client connected: {connection.connection_id}")

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(code=message.get("code", 1000))
                data = message.get("text")
                if data is None:
                    try:
                        data = (message.get("bytes") or b"").decode("utf-8")
                    except UnicodeDecodeError:
                        logger.warning(f"Dropping undecodable binary frame from {connection}")
                        continue
                await relay.handle_message(connection, data)
        except WebSocketDisconnect:
            logger.info(f"Client disconnected: {connection.connection_id}")
        except Exception as e:
            logger.error(f"WebSocket error for connection {connection.connection_id}: {e}", exc_info=True)
        finally:
            await relay.handle_close(connection)
            await connection.aclose()
            if websocket.application_state == WebSocketState.CONNECTED and websocket.client_state == WebSocketState.CONNECTED:
                try:
                    await websocket.close()
                except Exception as e:
                    logger.debug(f"Error closing WebSocket: {e}")

    logger.info("FastAPI application initialized")
    return app


app = create_app()
