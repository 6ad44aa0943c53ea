"""Named stopwatches for the deployment report."""

import time
from typing import Optional


class Timings:
    """Records how long each named step of a run took."""

    def __init__(self) -> None:
        self._started: dict[str, float] = {}
        self._elapsed: dict[str, float] = {}

    def start(self, name: str) -> None:
        self._started[name] = time.perf_counter()

    def end(self, name: str) -> None:
        started = self._started.pop(name, None)
        if started is not None:
            self._elapsed[name] = time.perf_counter() - started

    def get_time(self, name: str) -> Optional[float]:
        """Elapsed seconds, or None if the step never finished."""
        return self._elapsed.get(name)

    def get_time_formatted(self, name: str) -> str:
        seconds = self.get_time(name)
        if seconds is None:
            return "💣 Failed"
        if seconds < 1:
            return f"{seconds * 1000:.0f} ms"
        if seconds < 60:
            return f"{seconds:.1f} seconds"
        minutes, rest = divmod(seconds, 60)
        return f"{int(minutes)} minutes, {rest:.0f} seconds"

    def as_dict(self) -> dict[str, float]:
        return dict(self._elapsed)
