import asyncio
import json
import uuid
from typing import Optional, Union

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from constants import OUTBOUND_QUEUE_SIZE
from logging_config import get_logger

logger = get_logger(__name__)


class Connection:
    """One client's WebSocket session, as seen by the room table and the relay.

    The WebSocket itself belongs to FastAPI; this wrapper adds a stable
    connection_id and an outbound queue drained by its own writer task, so
    a slow client never stalls the task that relays to it.
    """

    def __init__(self, websocket: WebSocket, connection_id: str = None, queue_size: int = OUTBOUND_QUEUE_SIZE):
        self.websocket = websocket
        self.connection_id = connection_id or uuid.uuid4().hex
        self.closed = False
        self.outbound: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.writer_task: Optional[asyncio.Task] = None

    @property
    def is_open(self) -> bool:
        if self.closed:
            return False
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def mark_closed(self):
        self.closed = True

    def start(self):
        if self.writer_task is None:
            self.writer_task = asyncio.create_task(self._write_loop())

    async def aclose(self):
        self.mark_closed()
        if self.writer_task is not None and not self.writer_task.done():
            self.writer_task.cancel()
            try:
                await self.writer_task
            except asyncio.CancelledError:
                pass

    async def send(self, message: Union[str, dict]) -> bool:
        """Queue a text frame. Returns False, never raises, when the connection can't take it."""
        if not self.is_open:
            logger.debug(f"Skipping send to closed connection {self.connection_id}")
            return False
        text = message if isinstance(message, str) else json.dumps(message)
        try:
            self.outbound.put_nowait(text)
        except asyncio.QueueFull:
            logger.warning(f"Outbound queue full for connection {self.connection_id}, dropping frame")
            return False
        return True

    async def _write_loop(self):
        while True:
            text = await self.outbound.get()
            try:
                await self.websocket.send_text(text)
            except Exception as e:
                # The receive loop of this connection runs the normal close path
                logger.warning(f"Error sending to connection {self.connection_id}: {e}")
                self.closed = True
                return
            finally:
                self.outbound.task_done()

    def __repr__(self):
        return f"Connection({self.connection_id[:8]})"
