import logging

from rtc_relay import config
from rtc_relay.core import messages
from rtc_relay.core.negotiation import NegotiationAgent
from rtc_relay.network.transport import TransportLayer
from rtc_relay.security.rate_limiter import RateLimiter
from rtc_relay.utils.error_codes import ErrorCodes, SignalingError
from rtc_relay.utils.validators import validate_message_length, validate_room_key

logger = logging.getLogger(__name__)


class SessionManager:
    def __init__(self, media, transport: TransportLayer = None, ui_callback=None):
        self.transport = transport if transport is not None else TransportLayer()
        self.agent = NegotiationAgent(media, self.transport.send)
        self.ui_callback = ui_callback
        self.rate_limiter = RateLimiter(max_calls=config.CHAT_MAX_CALLS, period=config.CHAT_PERIOD)
        self.room_key = None

        # Wire up transport callbacks
        self.transport.on(messages.JOINED_ROOM, self.on_joined)
        self.transport.on(messages.NEW_USER, self.on_new_user)
        self.transport.on(messages.USER_LEFT, self.on_user_left)
        self.transport.on(messages.OFFER, self.agent.on_offer)
        self.transport.on(messages.ANSWER, self.agent.on_answer)
        self.transport.on(messages.CANDIDATE, self.on_candidate)
        self.transport.on(messages.CHAT_MESSAGE, self.on_chat_message)
        self.transport.on(messages.ERROR, self.on_relay_error)
        self.transport.on_disconnect_callback = self.on_relay_lost

    def _notify(self, event_type, data=None):
        if self.ui_callback:
            self.ui_callback(event_type, data)

    async def start_session(self, room_key: str):
        if not validate_room_key(room_key):
            raise SignalingError(ErrorCodes.ERR_MISSING_ROOM_KEY, "Please enter a valid room key.")
        self.room_key = room_key.strip()
        self.agent.room_key = self.room_key

        self._notify("SEARCHING")
        if not await self.transport.connect():
            raise SignalingError(ErrorCodes.ERR_NETWORK, "Could not connect to relay")

        await self.transport.send(messages.JOIN_ROOM, self.room_key)
        try:
            await self.agent.start_local_media()
        except Exception as e:
            logger.exception("Failed to start local media")
            raise SignalingError(ErrorCodes.ERR_MEDIA, f"Could not start media: {e}")

        # Tell the relay local media is ready
        await self.transport.send(messages.READY, self.room_key)

    def on_joined(self, message):
        logger.info(message)
        self._notify("JOINED", message)

    async def on_new_user(self, message):
        logger.info(message)
        self._notify("PEER_JOINED", message)
        await self.agent.on_new_peer()

    def on_user_left(self, message):
        logger.info(message)
        self._notify("PEER_LEFT", message)

    async def on_candidate(self, data):
        candidate = data.get("candidate") if isinstance(data, dict) else None
        await self.agent.on_candidate(candidate)

    def on_chat_message(self, data):
        if not isinstance(data, dict):
            return
        self._notify("MESSAGE", (data.get("sender"), data.get("message")))

    def on_relay_error(self, data):
        message = data.get("message") if isinstance(data, dict) else data
        logger.warning(f"Relay reported: {message}")
        self._notify("ERROR", message)

    def on_media_state(self, state: str):
        if state == "connecting":
            self._notify("NEGOTIATING")
        elif state == "connected":
            self._notify("CONNECTED")
        elif state in ("failed", "closed"):
            self._notify("PEER_LEFT", f"Media connection {state}")

    def on_relay_lost(self):
        self._notify("ERROR", "Connection to relay lost")

    async def send_message(self, text: str) -> bool:
        if self.room_key is None:
            return False

        if not validate_message_length(text, config.CHAT_MAX_LENGTH):
            self._notify("ERROR", f"Messages must be 1-{config.CHAT_MAX_LENGTH} characters.")
            return False

        if not self.rate_limiter.check():
            self._notify("ERROR", "Rate limit exceeded. Slow down.")
            return False

        await self.transport.send(messages.CHAT_MESSAGE, {"message": text, "roomKey": self.room_key})
        return True

    async def end_call(self):
        await self.agent.end_call()

    async def destroy_session(self):
        if self.room_key:
            await self.agent.end_call()
        else:
            await self.agent.reset()
        await self.transport.disconnect()
        self.room_key = None
        self._notify("DESTROYED")
