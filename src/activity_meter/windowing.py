"""
windowing.py

Real-time sliding window over the phone's accelerometer stream.

This module provides:
- Sample: one immutable [x, y, z] reading, built from whatever the sensor delivered
- SampleBuffer: fixed-capacity FIFO window of the most recent samples
"""

import math
from collections import deque
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import numpy as np


def _axis_value(value: Any) -> float:
    """
    Coerce one raw axis reading to float.
    Missing, None, NaN and non-numeric values all become 0.0.
    """
    if value is None:
        return 0.0
    try:
        v = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(v):
        return 0.0
    return v


@dataclass(frozen=True)
class Sample:
    """One accelerometer reading (m/s^2, gravity included)."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def from_reading(cls, reading: Optional[Mapping[str, Any]]) -> "Sample":
        """
        Build a Sample from a raw {x, y, z} mapping.

        This is the only place where raw sensor data gets defaulted:
        every absent axis is 0.0, and a missing reading is an all-zero sample.
        No reading is ever rejected.
        """
        if reading is None:
            return cls()
        return cls(
            x=_axis_value(reading.get("x")),
            y=_axis_value(reading.get("y")),
            z=_axis_value(reading.get("z")),
        )

    def as_list(self):
        return [self.x, self.y, self.z]


class SampleBuffer:
    """
    Sliding window over a continuous stream of sensor samples.

    Parameters:
        capacity : int
            Number of samples per window (e.g., 200)

    push() appends to the tail and evicts from the head once the buffer
    holds more than `capacity` samples, so after N or more pushes it holds
    exactly the N most recent samples in arrival order.

    The buffer has a single writer (the sample-arrival path on the event loop)
    and nothing here blocks.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"capacity must be > 0, got {capacity}")

        self.capacity = capacity

        # Sliding buffer of Sample objects
        self.buffer: deque = deque()

        # Total number of samples pushed since creation / last reset
        self.samples_seen = 0

    def push(self, sample: Sample) -> None:
        """Add a new sample at the tail, evicting the oldest ones beyond capacity."""
        self.buffer.append(sample)
        self.samples_seen += 1

        while len(self.buffer) > self.capacity:
            self.buffer.popleft()

    def is_full(self) -> bool:
        """True iff the window holds exactly `capacity` samples."""
        return len(self.buffer) == self.capacity

    def snapshot(self) -> np.ndarray:
        """
        Copy the current window out as a numpy array.

        Returns shape (len(buffer), 3) containing [x, y, z] rows, oldest first.
        The array is independent of the buffer: later pushes do not affect it.
        """
        if not self.buffer:
            return np.empty((0, 3), dtype=float)
        return np.array([s.as_list() for s in self.buffer], dtype=float)

    def reset(self) -> None:
        """Clear the buffer, e.g. when a new capture session starts."""
        self.buffer.clear()
        self.samples_seen = 0

    def __len__(self) -> int:
        return len(self.buffer)

    def __repr__(self) -> str:
        return (
            f"SampleBuffer(capacity={self.capacity}, "
            f"buffer={len(self.buffer)}/{self.capacity} samples, "
            f"full={self.is_full()}, seen={self.samples_seen})"
        )
