"""Tests for the in-memory position allocator."""

import threading

import pytest

from orderspec.core.modules.allocator.models import PositionAllocator
from orderspec.errors import ValidationError


class TestNextPosition:
    """Tests for next_position."""

    def test_issues_consecutive_values_from_zero(self):
        """Test that N calls return 0..N-1 in order."""
        allocator = PositionAllocator()
        assert [allocator.next_position() for _ in range(5)] == [0, 1, 2, 3, 4]

    def test_starts_from_constructor_value(self):
        """Test that the counter starts from the given value."""
        allocator = PositionAllocator(7)
        assert [allocator.next_position() for _ in range(3)] == [7, 8, 9]

    def test_peek_does_not_consume(self):
        """Test that peek returns the next value without advancing."""
        allocator = PositionAllocator()
        allocator.next_position()
        assert allocator.peek() == 1
        assert allocator.peek() == 1
        assert allocator.next_position() == 1

    def test_concurrent_calls_never_repeat(self):
        """Test that values stay unique when issued from several threads."""
        allocator = PositionAllocator()
        issued: list[int] = []
        guard = threading.Lock()

        def worker() -> None:
            values = [allocator.next_position() for _ in range(500)]
            with guard:
                issued.extend(values)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(issued) == list(range(4000))


class TestResetAndSetCounter:
    """Tests for reset and set_counter."""

    def test_reset_restarts_at_zero(self):
        """Test that the first value after reset is 0."""
        allocator = PositionAllocator()
        for _ in range(4):
            allocator.next_position()
        allocator.reset()
        assert allocator.next_position() == 0

    def test_set_counter_resynchronizes(self):
        """Test that set_counter changes the next issued value."""
        allocator = PositionAllocator()
        allocator.set_counter(42)
        assert allocator.next_position() == 42
        assert allocator.next_position() == 43

    def test_negative_counter_rejected(self):
        """Test that negative counters are rejected and the old value kept."""
        allocator = PositionAllocator(3)
        with pytest.raises(ValidationError):
            allocator.set_counter(-1)
        assert allocator.peek() == 3

    def test_negative_start_rejected(self):
        """Test that a negative start value is rejected."""
        with pytest.raises(ValidationError):
            PositionAllocator(-5)
