"""
Zero-offset calibration for the positioner.

User coordinates are defined per axis as

    user = device - zero_offset

so a user position p is reached by targeting p + zero_offset. All values are
in user units (mm).
"""

from typing import Sequence

import numpy as np


class ZeroOffsetCalibration:
    """Per-axis zero offsets and the conversions they define."""

    def __init__(self, axis_count: int = 3):
        self.axis_count = axis_count
        self._offsets = np.zeros(axis_count)

    @property
    def offsets(self) -> np.ndarray:
        return self._offsets.copy()

    def _as_vector(self, values: Sequence[float], name: str) -> np.ndarray:
        vector = np.asarray(values, dtype=float).reshape(-1)
        if vector.shape != (self.axis_count,):
            raise ValueError(f"{name} must have {self.axis_count} values, got {vector.size}")
        return vector

    def set_offsets(self, offsets: Sequence[float]) -> None:
        """Assign the offsets directly."""
        self._offsets = self._as_vector(offsets, "Zero offset").copy()

    def capture(self, device_positions: Sequence[float]) -> None:
        """Make the given device positions the new user origin."""
        self.set_offsets(device_positions)

    def to_user(self, device_positions: Sequence[float]) -> np.ndarray:
        return self._as_vector(device_positions, "Position") - self._offsets

    def to_device(self, user_positions: Sequence[float]) -> np.ndarray:
        return self._as_vector(user_positions, "Position") + self._offsets
