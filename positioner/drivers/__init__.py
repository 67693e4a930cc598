"""
Hardware Drivers Package

ctypes binding to the positioner's native control library. It is used by
the controller classes in the controllers/ package.

Available drivers:
- ANC350Library: anc350v4 native library gateway
"""

from .anc350_library import ANC350Library, LibraryLoadError

__all__ = ['ANC350Library', 'LibraryLoadError']
