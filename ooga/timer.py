"""A simple stopwatch that collects labelled time stamps."""

from __future__ import annotations

import time
from typing import TextIO


class PerformanceTimer:
    """Measures elapsed milliseconds and records named checkpoints."""

    def __init__(self) -> None:
        self._start = 0.0
        self._timestamps: list[tuple[float, str]] = []
        self.start()

    def start(self) -> None:
        """Restart the measurement from now."""
        self._start = time.perf_counter()

    def elapsed_ms(self) -> float:
        """Milliseconds since the last start."""
        return (time.perf_counter() - self._start) * 1000.0

    def add_timestamp(self, message: str) -> None:
        """Record the current elapsed time under ``message``."""
        self._timestamps.append((self.elapsed_ms(), message))

    @property
    def timestamps(self) -> list[tuple[float, str]]:
        """A copy of the recorded (milliseconds, message) pairs."""
        return list(self._timestamps)

    def dump(self, stream: TextIO, clear: bool = True) -> None:
        """Write one ``<ms> - <message>`` line per time stamp."""
        for elapsed, message in self._timestamps:
            stream.write(f"{elapsed:g} - {message}\n")
        if clear:
            self.clear()

    def clear(self) -> None:
        """Forget all recorded time stamps."""
        self._timestamps.clear()