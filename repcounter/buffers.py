"""
Fixed-capacity ring buffer for per-frame samples.
"""
from __future__ import annotations

from typing import Optional

import numpy as np


class RingBuffer:
    """
    Circular buffer over a preallocated numpy array.
    Appending past capacity overwrites the oldest sample.
    """

    def __init__(self, capacity: int, dtype: type = float):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._data = np.zeros(capacity, dtype=dtype)
        self._head = 0  # next write index
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def append(self, value) -> None:
        self._data[self._head] = value
        self._head = (self._head + 1) % self.capacity
        if self._size < self.capacity:
            self._size += 1

    def clear(self) -> None:
        self._head = 0
        self._size = 0

    def values(self) -> np.ndarray:
        """Samples oldest to newest (a copy)."""
        if self._size < self.capacity:
            return self._data[: self._size].copy()
        return np.concatenate((self._data[self._head :], self._data[: self._head]))

    def last(self, n: int) -> np.ndarray:
        n = max(0, min(n, self._size))
        if n == 0:
            return self._data[:0].copy()
        return self.values()[-n:]

    def latest(self) -> Optional[float]:
        if self._size == 0:
            return None
        return self._data[(self._head - 1) % self.capacity].item()

    def copy(self) -> "RingBuffer":
        other = RingBuffer(self.capacity, dtype=self._data.dtype.type)
        other._data = self._data.copy()
        other._head = self._head
        other._size = self._size
        return other
