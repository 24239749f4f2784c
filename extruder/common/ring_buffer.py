# extruder/common/ring_buffer.py
"""Fixed-capacity FIFO buffer with oldest-first eviction."""

from __future__ import annotations

from collections import deque
from typing import Deque, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


class RingBuffer(Generic[T]):
    """
    Generic fixed-size ring buffer.

    push() beyond capacity drops exactly one oldest item; the remaining
    items keep their order. Capacity never changes after construction.
    """

    def __init__(self, capacity: int):
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ValueError(f"RingBuffer capacity must be a positive int, got {capacity!r}")
        self._capacity = capacity
        self._buffer: Deque[T] = deque(maxlen=capacity)
        self._evicted = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def evicted(self) -> int:
        """Number of items dropped because the buffer was full."""
        return self._evicted

    def push(self, item: T) -> None:
        if len(self._buffer) == self._capacity:
            self._evicted += 1
        self._buffer.append(item)

    def snapshot(self) -> Tuple[T, ...]:
        """Current contents, oldest to newest."""
        return tuple(self._buffer)

    def latest(self) -> Optional[T]:
        return self._buffer[-1] if self._buffer else None

    def clear(self) -> None:
        self._buffer.clear()

    def __len__(self) -> int:
        return len(self._buffer)

    def __repr__(self) -> str:
        return f"RingBuffer(capacity={self._capacity}, size={len(self._buffer)})"
