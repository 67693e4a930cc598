"""
Controllers Package

Contains the device controller for the lock-in amplifier.
The controller reflects exactly what the device does - no experiment logic.
"""

from .sr830_lockin import (
    SR830Controller,
    SR830Error,
    SnapReading,
    Sensitivity,
    LockinStatus,
    decode_sensitivity,
)

__all__ = [
    'SR830Controller',
    'SR830Error',
    'SnapReading',
    'Sensitivity',
    'LockinStatus',
    'decode_sensitivity',
]
