"""Fixed-capacity circular buffer of (x, y, speed) samples."""

from typing import Optional, Tuple

import numpy as np


class SampleRing:
    """
    Circular buffer holding the last `capacity` (x, y, speed) triples.

    Entries are written from row 0 upward, so the first `count` rows are
    always the valid ones; unwritten rows are never read.
    """

    def __init__(self, capacity: int = 5):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._data = np.zeros((capacity, 3), dtype=np.float64)
        self._next = 0
        self._count = 0

    def __len__(self) -> int:
        return self._count

    @property
    def is_full(self) -> bool:
        return self._count == self.capacity

    def push(self, x: float, y: float, speed: float):
        """Add a sample, overwriting the oldest once full."""
        self._data[self._next] = (x, y, speed)
        self._next = (self._next + 1) % self.capacity
        self._count = min(self._count + 1, self.capacity)

    def mean(self) -> Optional[Tuple[float, float, float]]:
        """Arithmetic mean over valid entries, or None when empty."""
        if self._count == 0:
            return None
        x, y, speed = self._data[:self._count].mean(axis=0)
        return float(x), float(y), float(speed)

    def clear(self):
        self._data.fill(0.0)
        self._next = 0
        self._count = 0
