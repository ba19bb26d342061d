"""
Fixed-capacity history buffers.
"""

from collections import deque
from typing import Generic, Iterator, List, Optional, TypeVar

T = TypeVar("T")


class RingBuffer(Generic[T]):
    """
    Fixed-capacity FIFO ring buffer.

    When the buffer is full the oldest entry is discarded. Not thread-safe,
    callers serialize access (the tracking session holds its own lock).
    """

    def __init__(self, capacity: int):
        """
        Initialize the ring buffer.

        Args:
            capacity: Maximum number of entries kept
        """
        if capacity < 1:
            raise ValueError(f"Ring buffer capacity must be positive, got {capacity}")

        self.capacity = capacity
        self.buffer = deque(maxlen=capacity)

    def append(self, item: T) -> Optional[T]:
        """
        Append an item, evicting the oldest one if full.

        Returns:
            The evicted item, or None if nothing was evicted
        """
        evicted = self.buffer[0] if self.full() else None
        self.buffer.append(item)
        return evicted

    def latest(self, n: int = 1) -> List[T]:
        """Return the n most recent items, oldest first."""
        n = max(0, min(n, len(self.buffer)))
        return [self.buffer[i] for i in range(len(self.buffer) - n, len(self.buffer))]

    def last(self) -> Optional[T]:
        """Return the most recent item, or None if empty."""
        return self.buffer[-1] if self.buffer else None

    def previous(self) -> Optional[T]:
        """Return the item before the most recent one, or None."""
        return self.buffer[-2] if len(self.buffer) >= 2 else None

    def clear(self):
        self.buffer.clear()

    def full(self) -> bool:
        return len(self.buffer) == self.capacity

    def to_list(self) -> List[T]:
        """Copy of the contents, oldest first."""
        return list(self.buffer)

    def __getitem__(self, index: int) -> T:
        try:
            return self.buffer[index]
        except IndexError:
            raise IndexError("ring buffer index out of range") from None

    def __iter__(self) -> Iterator[T]:
        return iter(self.buffer)

    def __len__(self) -> int:
        return len(self.buffer)

    def __bool__(self) -> bool:
        return len(self.buffer) > 0

    def __repr__(self) -> str:
        return f"RingBuffer(capacity={self.capacity}, size={len(self.buffer)})"
