import logging
from typing import Any, Awaitable, Callable, Iterable

from rtc_relay.core import messages
from rtc_relay.core.registry import RoomRegistry
from rtc_relay.utils.error_codes import ErrorCodes, SignalingError

logger = logging.getLogger(__name__)

Emitter = Callable[[Any, str, Any], Awaitable[None]]


class SignalingRouter:
    """
    Validates inbound signaling events and forwards them to the other
    members of the room, stamped with the sender's connection id.

    Holds no state of its own: membership lives in the registry and delivery
    is delegated to ``emit(connection, event, payload)``, which must treat an
    unknown or closed recipient as a no-op.
    """

    def __init__(self, registry: RoomRegistry, emit: Emitter, max_room_size: int = 0):
        self.registry = registry
        self.emit = emit
        self.max_room_size = max_room_size

        self._handlers = {
            messages.JOIN_ROOM: self.on_join_room,
            messages.LEAVE_ROOM: self.on_leave_room,
            messages.READY: self.on_ready,
            messages.OFFER: self.on_offer,
            messages.ANSWER: self.on_answer,
            messages.CANDIDATE: self.on_candidate,
            messages.CHAT_MESSAGE: self.on_chat_message,
        }

    async def handle(self, connection, event: str, data: Any = None):
        handler = self._handlers.get(event)
        try:
            if handler is None:
                raise SignalingError(ErrorCodes.ERR_UNKNOWN_EVENT, f"Unknown event '{event}'.")
            await handler(connection, data)
        except SignalingError as e:
            logger.warning(f"Rejected {event} from {connection}: {e}")
            await self.send_error(connection, e.message)

    async def send_error(self, connection, message: str):
        await self.emit(connection, messages.ERROR, {"message": message})

    async def on_join_room(self, connection, data):
        room_key = self._require_room_key(data)
        others = self.registry.members_excluding(room_key, connection)
        already_member = self.registry.is_member(connection, room_key)

        if self.max_room_size and not already_member and len(others) >= self.max_room_size:
            raise SignalingError(ErrorCodes.ERR_ROOM_FULL, "Room is full.")

        self.registry.join(connection, room_key)

        await self.emit(connection, messages.JOINED_ROOM, f"Socket ID {connection} joined room: {room_key}")
        await self._broadcast(others, messages.NEW_USER, f"Socket ID {connection} joined room: {room_key}")

    async def on_leave_room(self, connection, data):
        room_key = self._require_room_key(data)
        logger.info(f"{connection} is leaving room: {room_key}")

        if self.registry.leave(connection, room_key):
            remaining = self.registry.members(room_key)
            await self._broadcast(remaining, messages.USER_LEFT, f"Socket ID {connection} left the room: {room_key}")

    async def on_ready(self, connection, data):
        room_key = self._require_room_key(data)
        logger.info(f"{connection} has local media ready in room {room_key}")

    async def on_offer(self, connection, data):
        await self._forward_description(connection, data, messages.OFFER)

    async def on_answer(self, connection, data):
        await self._forward_description(connection, data, messages.ANSWER)

    async def on_candidate(self, connection, data):
        data = data if isinstance(data, dict) else {}
        room_key = self._require_room_key(data)
        candidate = data.get("candidate")

        if not messages.is_valid_candidate(candidate):
            raise SignalingError(ErrorCodes.ERR_MALFORMED_MESSAGE, "Invalid candidate received.")

        logger.debug(f"Received ICE candidate from {connection} for room {room_key}")
        targets = self.registry.members_excluding(room_key, connection)
        await self._broadcast(targets, messages.CANDIDATE, {"candidate": candidate, "sender": connection})

    async def on_chat_message(self, connection, data):
        data = data if isinstance(data, dict) else {}
        room_key = messages.room_key_of(data)

        # Stale or foreign senders are dropped without telling them why.
        if room_key is None or not self.registry.is_member(connection, room_key):
            logger.debug(f"Dropped chat message from non-member {connection}")
            return

        targets = self.registry.members_excluding(room_key, connection)
        await self._broadcast(targets, messages.CHAT_MESSAGE, {"message": data.get("message"), "sender": connection})

    async def on_disconnect(self, connection):
        """Transport-level disconnect. Safe to call more than once."""
        logger.info(f"{connection} disconnected")
        for room_key in self.registry.remove_from_all_rooms(connection):
            remaining = self.registry.members(room_key)
            await self._broadcast(remaining, messages.USER_LEFT, f"Socket ID {connection} disconnected.")

    async def _forward_description(self, connection, data, kind: str):
        data = data if isinstance(data, dict) else {}
        room_key = self._require_room_key(data)
        description = data.get(kind)

        if not messages.is_valid_description(description, kind):
            raise SignalingError(ErrorCodes.ERR_MALFORMED_MESSAGE, f"Invalid {kind} received.")

        logger.info(f"Received {kind} from {connection} for room {room_key}")
        targets = self.registry.members_excluding(room_key, connection)
        await self._broadcast(targets, kind, {"type": kind, "sdp": description["sdp"], "sender": connection})

    async def _broadcast(self, targets: Iterable, event: str, payload):
        for target in targets:
            await self.emit(target, event, payload)

    @staticmethod
    def _require_room_key(data) -> str:
        room_key = messages.room_key_of(data)
        if room_key is None:
            raise SignalingError(ErrorCodes.ERR_MISSING_ROOM_KEY, "Missing room key.")
        return room_key
