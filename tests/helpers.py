"""
Test doubles and polling helpers shared by the relay test suites.
"""

import asyncio
import time
from typing import Callable, Optional

from fastapi.websockets import WebSocketState

class FakeWebSocket:
    """Stands in for a Starlette WebSocket in relay unit tests.

    Inbound frames are pushed with ``push_text``/``push_bytes``/``disconnect``;
    frames the relay writes land in ``sent``.
    """

    def __init__(self, room_id: Optional[str] = None, fail_sends: bool = False, send_delay: float = 0.0,
                 cancel_delay: float = 0.0):
        self.query_params = {"roomId": room_id} if room_id is not None else {}
        self.client = ("testclient", 50000)
        self.client_state = WebSocketState.CONNECTING
        self.application_state = WebSocketState.CONNECTING
        self.fail_sends = fail_sends
        self.send_delay = send_delay
        # How long an in-flight send takes to unwind once cancelled
        self.cancel_delay = cancel_delay
        self.sent = []
        self.close_code = None
        self._incoming: asyncio.Queue = asyncio.Queue()

    async def accept(self):
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED

    async def receive(self):
        return await self._incoming.get()

    async def send_text(self, data: str):
        if self.fail_sends:
            raise RuntimeError("connection reset by peer")
        if self.send_delay:
            try:
                await asyncio.sleep(self.send_delay)
            except asyncio.CancelledError:
                if self.cancel_delay:
                    await asyncio.sleep(self.cancel_delay)
                raise
        self.sent.append(data)

    async def close(self, code: int = 1000):
        self.application_state = WebSocketState.DISCONNECTED
        self.close_code = code

    def push_text(self, text: str):
        self._incoming.put_nowait({"type": "websocket.receive", "text": text})

    def push_bytes(self, data: bytes):
        self._incoming.put_nowait({"type": "websocket.receive", "bytes": data})

    def disconnect(self, code: int = 1000):
        self.client_state = WebSocketState.DISCONNECTED
        self._incoming.put_nowait({"type": "websocket.disconnect", "code": code})

async def eventually(predicate: Callable[[], bool], timeout: float = 2.0):
    """Wait on the running loop until ``predicate`` holds."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)

def wait_until(predicate: Callable[[], bool], timeout: float = 2.0):
    """Blocking variant of ``eventually`` for TestClient tests."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met before timeout")
        time.sleep(0.01)

