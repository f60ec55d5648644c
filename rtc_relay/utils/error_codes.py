class ErrorCodes:
    SUCCESS = 0
    ERR_NETWORK = 101
    ERR_MALFORMED_MESSAGE = 201
    ERR_UNKNOWN_EVENT = 202
    ERR_MISSING_ROOM_KEY = 203
    ERR_ROOM_FULL = 301
    ERR_MEDIA = 402
    ERR_INTERNAL = 500


class SignalingError(Exception):
    def __init__(self, code, message):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")
