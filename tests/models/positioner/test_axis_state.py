"""
Unit tests for the positioner axis state variants.
"""

import dataclasses

import pytest

from positioner.models.axis_state import (
    AxisMode,
    Disabled,
    ServoTracking,
    DirectVoltage,
    after_target_write,
    is_tracking,
)


class TestAxisModes:
    """Tests for the mode reported by each variant."""

    def test_modes(self):
        assert Disabled().mode is AxisMode.DISABLED
        assert ServoTracking(1.0).mode is AxisMode.SERVO_TRACKING
        assert DirectVoltage(30.0).mode is AxisMode.DIRECT_VOLTAGE

    def test_states_are_immutable(self):
        state = ServoTracking(1.0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            state.target = 2.0

    def test_only_servo_tracking_is_tracking(self):
        assert is_tracking(ServoTracking(0.0))
        assert not is_tracking(Disabled())
        assert not is_tracking(DirectVoltage(0.0))


class TestAfterTargetWrite:
    """Tests for the state following a target write."""

    def test_tracking_axis_adopts_target(self):
        assert after_target_write(ServoTracking(1.0), 2.5) == ServoTracking(2.5)

    def test_disabled_axis_unchanged(self):
        assert after_target_write(Disabled(), 2.5) == Disabled()

    def test_direct_voltage_axis_unchanged(self):
        state = DirectVoltage(12.0)
        assert after_target_write(state, 2.5) is state
