"""Monotonic position counters for ordered collections."""

import threading

from orderspec.core.db import MongoModel
from orderspec.errors import ValidationError


class PositionAllocator:
    """Issues fresh positions for one ordered collection.

    Every value is handed out once until the allocator is reset. Resetting is
    meant to go together with clearing the collection; values issued before
    the reset may be issued again afterwards.
    """

    def __init__(self, start: int = 0) -> None:
        self._fresh_position = _check_counter(start)
        self._lock = threading.Lock()

    def next_position(self) -> int:
        """Return the current counter value, then advance the counter by one."""
        with self._lock:
            result = self._fresh_position
            self._fresh_position += 1
            return result

    def peek(self) -> int:
        """Return the value the next call to next_position will issue."""
        with self._lock:
            return self._fresh_position

    def reset(self) -> None:
        self.set_counter(0)

    def set_counter(self, value: int) -> None:
        """Resynchronize the counter, e.g. after a bulk import."""
        checked = _check_counter(value)
        with self._lock:
            self._fresh_position = checked


class AllocatorState(MongoModel):
    """Persisted counter of one ordered collection.

    Indexed on collection - unique.
    """

    collection: str
    fresh_position: int = 0  # Next position to issue


def _check_counter(value: int) -> int:
    if value < 0:
        raise ValidationError(f"Position counter must not be negative, got {value}")
    return value
