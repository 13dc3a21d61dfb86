"""Bookkeeping of processing slots and recent processing times."""

from __future__ import annotations

DEFAULT_BUFFER_SIZE = 10


class FrameRateLimiter:
    """Limits frames in flight and tracks how long processing takes."""

    def __init__(self) -> None:
        self.slots_in_use = 0
        self.used_slot_counter = 0
        self.buffer_capacity = DEFAULT_BUFFER_SIZE
        self._durations: list[int] = []

    def acquire_slot(self) -> bool:
        """Take a free slot; return False when all slots are in use."""
        if self.slots_in_use < self.buffer_capacity:
            self.slots_in_use += 1
            self.used_slot_counter += 1
            return True
        return False

    def notify_processed(self, time_processed: int | None = None) -> None:
        """Release a slot and, if given, record a processing time in ms."""
        if self.slots_in_use > 0:
            self.slots_in_use -= 1
        if time_processed is None:
            return
        if len(self._durations) < self.buffer_capacity:
            self._durations.append(int(time_processed))
        else:
            index = self.used_slot_counter % self.buffer_capacity
            self._durations[index] = int(time_processed)

    def free_slots(self, n: int) -> bool:
        """Release ``n`` slots if ``n`` is below the capacity."""
        if self.buffer_capacity > n:
            self.slots_in_use -= n
            return True
        return False

    def set_buffer_capacity(self, size: int) -> None:
        """Set the number of slots; non-positive sizes are ignored."""
        if size > 0:
            self.buffer_capacity = size

    def average_processing_time(self) -> float:
        """Mean of the recorded processing times, in whole milliseconds."""
        if not self._durations:
            raise ValueError("no processing times recorded")
        return float(sum(self._durations) // len(self._durations))