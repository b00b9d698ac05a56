# timeline/clock.py
import time
from typing import List

class WallClock:
    """Real time. Each wait() sleeps until the previous deadline + seconds,
    so time spent dispatching does not push later ticks back."""
    def __init__(self):
        self._start = time.perf_counter()
        self._deadline = self._start

    def now(self) -> float:
        return time.perf_counter() - self._start

    def reset(self) -> None:
        self._deadline = time.perf_counter()

    def wait(self, seconds: float) -> None:
        now = time.perf_counter()
        # after a long stall, restart from now instead of bursting to catch up
        self._deadline = max(self._deadline, now - seconds) + seconds
        delay = self._deadline - now
        if delay > 0:
            time.sleep(delay)

class SimulatedClock:
    """Advances instantly; for tests and offline rendering."""
    def __init__(self):
        self.time = 0.0
        self.waits: List[float] = []

    def now(self) -> float:
        return self.time

    def reset(self) -> None:
        pass

    def wait(self, seconds: float) -> None:
        self.waits.append(seconds)
        self.time += seconds
