"""
Nanopositioner Driver

Controls an ANC350-class three-axis positioner through the vendor's native library.

- Drivers: ctypes gateway to the native library
- Controllers: handle ownership, servo/voltage transitions, status polling
- Models: axis state variants and zero-offset calibration
"""

__version__ = "1.0.0"
