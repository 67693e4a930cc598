"""
Models Package

Measurement protocols built on top of the lock-in controller.
"""

from .auto_range import AutoRangeModel, AutoRangeState, AutoRangeError

__all__ = ['AutoRangeModel', 'AutoRangeState', 'AutoRangeError']
