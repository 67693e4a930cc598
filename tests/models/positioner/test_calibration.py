"""
Unit tests for ZeroOffsetCalibration.
"""

import numpy as np
import pytest

from positioner.models.calibration import ZeroOffsetCalibration


@pytest.fixture
def calibration():
    return ZeroOffsetCalibration(axis_count=3)


class TestZeroOffsetCalibration:
    """Tests for the user/device coordinate conversions."""

    def test_starts_at_zero(self, calibration):
        np.testing.assert_array_equal(calibration.offsets, [0.0, 0.0, 0.0])

    def test_to_device_adds_offsets(self, calibration):
        calibration.set_offsets([0.5, -1.0, 2.0])
        np.testing.assert_allclose(calibration.to_device([1.0, 1.0, 1.0]), [1.5, 0.0, 3.0])

    def test_to_user_subtracts_offsets(self, calibration):
        calibration.set_offsets([0.5, -1.0, 2.0])
        np.testing.assert_allclose(calibration.to_user([1.5, 0.0, 3.0]), [1.0, 1.0, 1.0])

    def test_capture_makes_position_origin(self, calibration):
        calibration.capture([1.0, 2.5, -0.5])
        np.testing.assert_allclose(calibration.to_user([1.0, 2.5, -0.5]), [0.0, 0.0, 0.0])

    def test_offsets_returns_copy(self, calibration):
        offsets = calibration.offsets
        offsets[0] = 99.0
        assert calibration.offsets[0] == 0.0

    def test_wrong_length_rejected(self, calibration):
        with pytest.raises(ValueError, match="3 values"):
            calibration.set_offsets([1.0, 2.0])
        with pytest.raises(ValueError):
            calibration.to_device([1.0, 2.0, 3.0, 4.0])
