import asyncio
import inspect
import logging

import websockets

from rtc_relay import config
from rtc_relay.core import messages
from rtc_relay.utils.error_codes import SignalingError

logger = logging.getLogger(__name__)


class TransportLayer:
    """Client side of the relay connection: named events in, named events out."""

    def __init__(self, uri=config.DEFAULT_URI):
        self.uri = uri
        self.websocket = None
        self.handlers = {}
        self.on_disconnect_callback = None
        self._listen_task = None
        self._tasks = set()

    def on(self, event: str, callback):
        self.handlers[event] = callback

    async def connect(self) -> bool:
        try:
            self.websocket = await websockets.connect(self.uri)
        except (OSError, websockets.exceptions.InvalidHandshake) as e:
            logger.error(f"Connection to {self.uri} failed: {e}")
            return False

        self._listen_task = asyncio.create_task(self.listen())
        return True

    async def listen(self):
        try:
            async for raw in self.websocket:
                try:
                    event, data = messages.decode(raw)
                except SignalingError as e:
                    logger.warning(f"Ignoring frame from relay: {e}")
                    continue
                # Handlers may suspend on the media stack; later frames must
                # still be taken in while they do.
                task = asyncio.create_task(self.dispatch(event, data))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            if self.on_disconnect_callback:
                self.on_disconnect_callback()

    async def dispatch(self, event, data):
        callback = self.handlers.get(event)
        if callback is None:
            logger.debug(f"No handler for {event}")
            return
        try:
            result = callback(data)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(f"Error handling {event}")

    async def send(self, event: str, data=None):
        if self.websocket is None:
            return
        try:
            await self.websocket.send(messages.encode(event, data))
        except websockets.exceptions.ConnectionClosed:
            logger.warning(f"Relay connection closed; {event} not sent")

    async def disconnect(self):
        if self.websocket:
            await self.websocket.close()
            self.websocket = None
