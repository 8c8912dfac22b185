# logical clock used as the time axis for session windows
import threading
import time


class MonotonicClock:
    """
    Wall-clock seconds that never move backwards.
    """

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last


class ManualClock:
    """
    Clock advanced explicitly, for tests and simulations.
    """

    def __init__(self, start: int = 0):
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("clock cannot move backwards")
        self._now += seconds
        return self._now
