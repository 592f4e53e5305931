import asyncio
import logging
import uuid
from enum import Enum
from typing import Mapping, Optional

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState

from constants import RelaySettings
from logging_config import get_logger
from registry import RoomRegistry
from schemas.messages import decode_payload, describe_payload

logger = get_logger(__name__)


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class Connection:
    """One client's websocket plus the room it joined at handshake.

    Outbound frames go through a bounded queue drained by a per-connection
    sender task, so a slow client only ever delays its own deliveries.
    """

    def __init__(self, websocket: WebSocket, room_id: str, settings: RelaySettings):
        self.connection_id = uuid.uuid4().hex[:8]
        self.websocket = websocket
        self.room_id = room_id
        self.state = ConnectionState.CONNECTING
        self._send_timeout = settings.send_timeout_seconds
        self._outbox: asyncio.Queue = asyncio.Queue(maxsize=settings.outbox_max_size)
        self._sender_task: Optional[asyncio.Task] = None
        self._writable = True

    def __repr__(self):
        return f"Connection({self.connection_id}, room={self.room_id!r}, state={self.state.value})"

    def start(self):
        self.state = ConnectionState.OPEN
        self._sender_task = asyncio.create_task(self._drain_outbox())

    def enqueue(self, payload: str) -> bool:
        """Queue a frame for delivery. Returns False if the frame was dropped."""
        if self.state is not ConnectionState.OPEN or not self._writable:
            logger.debug(f"Dropping frame for {self.connection_id}: connection is {self.state.value}")
            return False
        try:
            self._outbox.put_nowait(payload)
        except asyncio.QueueFull:
            logger.warning(f"Outbound queue full for connection {self.connection_id} in room {self.room_id}, dropping frame")
            return False
        return True

    async def _drain_outbox(self):
        while True:
            payload = await self._outbox.get()
            try:
                await asyncio.wait_for(self.websocket.send_text(payload), timeout=self._send_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Send to connection {self.connection_id} in room {self.room_id} timed out after {self._send_timeout}s")
                break
            except Exception as e:
                logger.warning(f"Error sending to connection {self.connection_id} in room {self.room_id}: {e}")
                break

        # The transport is stuck or broken; closing it ends the receive loop, which runs cleanup
        self._writable = False
        try:
            await asyncio.wait_for(self.websocket.close(code=1011), timeout=self._send_timeout)
        except Exception as e:
            logger.debug(f"Error closing WebSocket for connection {self.connection_id}: {e}")

    async def stop(self):
        if self._sender_task is None:
            return
        if not self._sender_task.done():
            self._sender_task.cancel()
        try:
            await self._sender_task
        except asyncio.CancelledError:
            # Propagate when the caller itself is being cancelled
            current = asyncio.current_task()
            if current is not None and getattr(current, "cancelling", lambda: 0)():
                raise
        finally:
            self._sender_task = None


class ConnectionRelay:
    """Bridges websocket events to the room registry and fans frames out to peers."""

    def __init__(self, registry: RoomRegistry, settings: Optional[RelaySettings] = None):
        self.registry = registry
        self.settings = settings or RelaySettings()

    def resolve_room_id(self, query_params: Mapping[str, str]) -> str:
        room_id = query_params.get(self.settings.room_query_param)
        if not room_id:
            return self.settings.default_room_id
        return room_id

    async def handle(self, websocket: WebSocket):
        room_id = self.resolve_room_id(websocket.query_params)
        connection = Connection(websocket, room_id, self.settings)
        logger.info(f"WebSocket connection attempt for room: {room_id} from {websocket.client}")

        try:
            await websocket.accept()
        except Exception as e:
            logger.error(f"WebSocket handshake failed for room {room_id}: {e}", exc_info=True)
            return

        self.open(connection)
        try:
            await self._receive_loop(connection)
        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected for connection {connection.connection_id} in room {room_id}")
        except Exception as e:
            logger.error(f"WebSocket error for connection {connection.connection_id} in room {room_id}: {e}", exc_info=True)
        finally:
            await self.close(connection)

    def open(self, connection: Connection):
        connection.start()
        self.registry.join(connection.room_id, connection)
        logger.info(
            f"User {connection.connection_id} has joined {connection.room_id}, "
            f"total in room {self.registry.size(connection.room_id)}"
        )

    async def _receive_loop(self, connection: Connection):
        message_count = 0
        while True:
            message = await connection.websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info(f"Client closed connection {connection.connection_id} (code {message.get('code')})")
                return

            text = message.get("text")
            if text is not None:
                message_count += 1
                self.broadcast(connection, text)
                if logger.isEnabledFor(logging.DEBUG):
                    logger.debug(
                        f"Relayed message #{message_count} from connection {connection.connection_id} "
                        f"in room {connection.room_id}: {describe_payload(decode_payload(text))}"
                    )
                continue

            data = message.get("bytes")
            if data is not None:
                logger.info(f"Binary frame ({len(data)} bytes) from connection {connection.connection_id} not relayed")

    def broadcast(self, sender: Connection, payload: str) -> int:
        """Queue ``payload`` verbatim for every other member of the sender's room.

        Returns how many peers accepted the frame.
        """
        peers = self.registry.peers_of(sender.room_id, excluding=sender)
        delivered = 0
        for peer in peers:
            if peer.enqueue(payload):
                delivered += 1
        logger.debug(f"Broadcast from {sender.connection_id} queued for {delivered}/{len(peers)} peers in room {sender.room_id}")
        return delivered

    async def close(self, connection: Connection):
        if connection.state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return
        connection.state = ConnectionState.CLOSING

        self.registry.leave(connection.room_id, connection)
        try:
            await connection.stop()

            websocket = connection.websocket
            if websocket.client_state == WebSocketState.CONNECTED and websocket.application_state == WebSocketState.CONNECTED:
                try:
                    await websocket.close()
                except Exception as e:
                    logger.debug(f"Error closing WebSocket: {e}")
        finally:
            connection.state = ConnectionState.CLOSED
        logger.info(f"User {connection.connection_id} deleted from room: {connection.room_id}")
