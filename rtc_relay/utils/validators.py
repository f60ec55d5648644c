MAX_ROOM_KEY_LENGTH = 128


def validate_room_key(key: str) -> bool:
    """
    Room keys are opaque; anything non-blank and of sane length is accepted.
    Surrounding whitespace is not part of the key.
    """
    if not isinstance(key, str):
        return False
    key = key.strip()
    if not key:
        return False
    return len(key) <= MAX_ROOM_KEY_LENGTH


def validate_message_length(message: str, max_length: int = 1000) -> bool:
    if not message:
        return False
    return len(message) <= max_length
