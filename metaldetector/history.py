"""Bounded history of smoothed signal values for the chart."""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterator, List

HISTORY_SIZE = 50


class SignalHistory:
    """FIFO of recent values; the oldest is dropped once full."""

    def __init__(self, capacity: int = HISTORY_SIZE) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._values: Deque[float] = deque(maxlen=capacity)

    def append(self, value: float) -> None:
        self._values.append(float(value))

    def values(self) -> List[float]:
        return list(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[float]:
        return iter(self._values)
