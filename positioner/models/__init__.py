"""
Models Package

Axis state variants and the zero-offset calibration.
"""

from .axis_state import (
    AxisMode,
    AxisState,
    Disabled,
    ServoTracking,
    DirectVoltage,
    after_target_write,
    is_tracking,
)
from .calibration import ZeroOffsetCalibration

__all__ = [
    'AxisMode',
    'AxisState',
    'Disabled',
    'ServoTracking',
    'DirectVoltage',
    'after_target_write',
    'is_tracking',
    'ZeroOffsetCalibration',
]
