import argparse
import asyncio
import logging
import uuid

import websockets

from rtc_relay import config
from rtc_relay.core import messages
from rtc_relay.core.registry import RoomRegistry
from rtc_relay.core.router import SignalingRouter
from rtc_relay.utils.error_codes import SignalingError

logger = logging.getLogger(__name__)


class ConnectionHub:
    """Connection id -> open websocket. Sends are fire-and-forget."""

    def __init__(self):
        self._sockets = {}

    def register(self, websocket) -> str:
        connection_id = uuid.uuid4().hex
        self._sockets[connection_id] = websocket
        return connection_id

    def unregister(self, connection_id):
        self._sockets.pop(connection_id, None)

    def __contains__(self, connection_id):
        return connection_id in self._sockets

    async def emit(self, connection_id, event, payload):
        websocket = self._sockets.get(connection_id)
        if websocket is None:
            return
        try:
            await websocket.send(messages.encode(event, payload))
        except websockets.exceptions.ConnectionClosed:
            logger.debug(f"Dropped {event} for closed connection {connection_id}")


class RelayServer:
    def __init__(self, registry: RoomRegistry = None, max_room_size: int = config.MAX_ROOM_SIZE):
        self.registry = registry if registry is not None else RoomRegistry()
        self.hub = ConnectionHub()
        self.router = SignalingRouter(self.registry, self.hub.emit, max_room_size=max_room_size)

    async def handler(self, websocket):
        connection_id = self.hub.register(websocket)
        logger.info(f"Socket ID {connection_id} connected.")
        try:
            async for raw in websocket:
                await self.dispatch(connection_id, raw)
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            await self.router.on_disconnect(connection_id)
            self.hub.unregister(connection_id)

    async def dispatch(self, connection_id, raw):
        try:
            event, data = messages.decode(raw)
        except SignalingError as e:
            logger.warning(f"Bad frame from {connection_id}: {e}")
            await self.router.send_error(connection_id, e.message)
            return

        try:
            await self.router.handle(connection_id, event, data)
        except Exception:
            # One bad exchange must not take the connection down.
            logger.exception(f"Error handling {event} from {connection_id}")

    def serve(self, host=config.DEFAULT_HOST, port=config.DEFAULT_PORT):
        return websockets.serve(self.handler, host, port)


async def main(host=config.DEFAULT_HOST, port=config.DEFAULT_PORT, max_room_size=config.MAX_ROOM_SIZE):
    relay = RelayServer(max_room_size=max_room_size)
    logger.info(f"Starting signaling relay on {host}:{port}")
    async with relay.serve(host, port):
        await asyncio.Future()  # run forever


def run():
    parser = argparse.ArgumentParser(description="WebRTC signaling relay")
    parser.add_argument("--host", default=config.DEFAULT_HOST, help="Interface to bind")
    parser.add_argument("--port", type=int, default=config.DEFAULT_PORT, help="Port to listen on")
    parser.add_argument("--max-room-size", type=int, default=config.MAX_ROOM_SIZE,
                        help="Refuse joins beyond this many members (0 = unlimited)")
    parser.add_argument("--log-level", default=config.LOG_LEVEL)
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format=config.LOG_FORMAT)
    try:
        asyncio.run(main(args.host, args.port, args.max_room_size))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
