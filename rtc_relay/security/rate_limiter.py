import time
from collections import deque


class RateLimiter:
    """Sliding-window limiter: at most ``max_calls`` within ``period`` seconds."""

    def __init__(self, max_calls: int, period: float, clock=time.monotonic):
        self.max_calls = max_calls
        self.period = period
        self._clock = clock
        self._calls = deque()

    def check(self) -> bool:
        now = self._clock()
        while self._calls and now - self._calls[0] >= self.period:
            self._calls.popleft()

        if len(self._calls) >= self.max_calls:
            return False

        self._calls.append(now)
        return True

    def reset(self):
        self._calls.clear()
