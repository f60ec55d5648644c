"""Runtime defaults. Every value can be overridden from the environment."""
import os

DEFAULT_HOST = os.environ.get("RTC_RELAY_HOST", "0.0.0.0")
DEFAULT_PORT = int(os.environ.get("RTC_RELAY_PORT", "8765"))
DEFAULT_URI = os.environ.get("RTC_RELAY_URI", "ws://localhost:8765")

# 0 disables the cap. Two is the only size negotiation is well-defined for.
MAX_ROOM_SIZE = int(os.environ.get("RTC_RELAY_MAX_ROOM_SIZE", "0"))

STUN_URL = os.environ.get("RTC_RELAY_STUN_URL", "stun:stun.l.google.com:19302")

LOG_LEVEL = os.environ.get("RTC_RELAY_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Outbound chat: 5 msgs/sec
CHAT_MAX_CALLS = 5
CHAT_PERIOD = 1.0
CHAT_MAX_LENGTH = 1000
