"""
Controllers Package

Contains the device controller for the positioner.
The controller reflects exactly what the device does - no experiment logic.
"""

from .anc350_positioner import (
    ANC350Controller,
    ANC350Error,
    AxisStatusSnapshot,
    DeviceInfo,
)

__all__ = ['ANC350Controller', 'ANC350Error', 'AxisStatusSnapshot', 'DeviceInfo']
