from rtc_relay.security.rate_limiter import RateLimiter
from rtc_relay.utils.validators import validate_message_length, validate_room_key


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_rate_limiter_window_slides():
    clock = FakeClock()
    limiter = RateLimiter(max_calls=2, period=1.0, clock=clock)

    assert limiter.check()
    assert limiter.check()
    assert not limiter.check()

    clock.now += 1.0
    assert limiter.check()


def test_room_key_validation():
    assert validate_room_key("r1")
    assert validate_room_key("any opaque key!")
    assert not validate_room_key("")
    assert not validate_room_key("   ")
    assert not validate_room_key(None)
    assert not validate_room_key("x" * 500)


def test_message_length():
    assert validate_message_length("hi")
    assert not validate_message_length("")
    assert not validate_message_length("x" * 11, max_length=10)
