"""
ANC350 native library gateway.

Thin ctypes binding to the vendor's anc350v4 library. Every call returns the
raw library return code first, followed by any output values:

    code, count = lib.discover(interfaces)
    code, handle = lib.connect(device_no)
    code = lib.set_target_position(handle, axis, metres)

Return codes are not interpreted here; the controller routes them through
common.errors.map_error_code().
"""

import ctypes
import ctypes.util
import os
from ctypes import byref, c_double, c_int, c_uint, c_void_p, create_string_buffer
from typing import Optional, Tuple

from common.errors import ErrorKind, InstrumentError
from common.utils import get_logger
from ..config.settings import INFO_BUFFER_SIZE

# Module-level logger for the native library binding
_logger = get_logger("positioner")


class LibraryLoadError(InstrumentError):
    """Raised when the native library cannot be found or loaded."""
    pass


def _load_library(name: str):
    """Locate and load the vendor library (stdcall on Windows)."""
    path = name if os.path.sep in name else (ctypes.util.find_library(name) or name)
    loader = ctypes.WinDLL if os.name == 'nt' else ctypes.CDLL
    try:
        return loader(path)
    except OSError as e:
        raise LibraryLoadError(ErrorKind.DRIVER_ACCESS_ERROR,
                               f"Cannot load native library {path!r}: {e}",
                               operation="load")


class ANC350Library:
    """
    Gateway to the ANC350 v4 control library.

    The library handle is a pointer owned by whoever called connect();
    this class keeps no connection state of its own.
    """

    def __init__(self, library_name: str = "anc350v4"):
        self.library_name = library_name
        self._dll = None

    @property
    def is_loaded(self) -> bool:
        return self._dll is not None

    def load(self) -> 'ANC350Library':
        """Load the library and declare the argument types of each call."""
        if self._dll is not None:
            return self
        dll = _load_library(self.library_name)

        dll.ANC_discover.argtypes = [c_uint, ctypes.POINTER(c_uint)]
        dll.ANC_getDeviceInfo.argtypes = [
            c_uint, ctypes.POINTER(c_int), ctypes.POINTER(c_int),
            ctypes.c_char_p, ctypes.c_char_p, ctypes.POINTER(c_int),
        ]
        dll.ANC_connect.argtypes = [c_uint, ctypes.POINTER(c_void_p)]
        dll.ANC_disconnect.argtypes = [c_void_p]
        dll.ANC_getPosition.argtypes = [c_void_p, c_uint, ctypes.POINTER(c_double)]
        dll.ANC_setTargetPosition.argtypes = [c_void_p, c_uint, c_double]
        dll.ANC_startAutoMove.argtypes = [c_void_p, c_uint, c_int, c_int]
        dll.ANC_setDcVoltage.argtypes = [c_void_p, c_uint, c_double]
        dll.ANC_getDcVoltage.argtypes = [c_void_p, c_uint, ctypes.POINTER(c_double)]
        dll.ANC_getAxisStatus.argtypes = [c_void_p, c_uint] + [ctypes.POINTER(c_int)] * 7
        for function in (dll.ANC_discover, dll.ANC_getDeviceInfo, dll.ANC_connect,
                         dll.ANC_disconnect, dll.ANC_getPosition,
                         dll.ANC_setTargetPosition, dll.ANC_startAutoMove,
                         dll.ANC_setDcVoltage, dll.ANC_getDcVoltage,
                         dll.ANC_getAxisStatus):
            function.restype = c_int

        self._dll = dll
        _logger.debug(f"Loaded native library {self.library_name}")
        return self

    def _lib(self):
        if self._dll is None:
            self.load()
        return self._dll

    # ------------------------------------------------------------------
    # Discovery and connection
    # ------------------------------------------------------------------

    def discover(self, interfaces: int) -> Tuple[int, int]:
        count = c_uint(0)
        code = self._lib().ANC_discover(interfaces, byref(count))
        _logger.debug(f"ANC_discover({interfaces}) -> {code}, count={count.value}")
        return code, count.value

    def get_device_info(self, device_no: int) -> Tuple[int, int, int, str, str, bool]:
        """Returns (code, device_type, id, serial_number, address, connected)."""
        dev_type = c_int(0)
        dev_id = c_int(0)
        serial_no = create_string_buffer(INFO_BUFFER_SIZE)
        address = create_string_buffer(INFO_BUFFER_SIZE)
        connected = c_int(0)
        code = self._lib().ANC_getDeviceInfo(device_no, byref(dev_type), byref(dev_id),
                                             serial_no, address, byref(connected))
        _logger.debug(f"ANC_getDeviceInfo({device_no}) -> {code}")
        return (code, dev_type.value, dev_id.value,
                serial_no.value.decode('ascii', errors='replace'),
                address.value.decode('ascii', errors='replace'),
                bool(connected.value))

    def connect(self, device_no: int) -> Tuple[int, Optional[int]]:
        handle = c_void_p()
        code = self._lib().ANC_connect(device_no, byref(handle))
        _logger.debug(f"ANC_connect({device_no}) -> {code}")
        return code, handle.value

    def disconnect(self, handle: int) -> int:
        code = self._lib().ANC_disconnect(c_void_p(handle))
        _logger.debug(f"ANC_disconnect -> {code}")
        return code

    # ------------------------------------------------------------------
    # Per-axis primitives (positions in metres, voltages in volts)
    # ------------------------------------------------------------------

    def get_position(self, handle: int, axis: int) -> Tuple[int, float]:
        position = c_double(0.0)
        code = self._lib().ANC_getPosition(c_void_p(handle), axis, byref(position))
        return code, position.value

    def set_target_position(self, handle: int, axis: int, target: float) -> int:
        code = self._lib().ANC_setTargetPosition(c_void_p(handle), axis, target)
        _logger.debug(f"ANC_setTargetPosition({axis}, {target!r}) -> {code}")
        return code

    def start_auto_move(self, handle: int, axis: int, enable: bool, relative: bool) -> int:
        code = self._lib().ANC_startAutoMove(c_void_p(handle), axis,
                                             int(enable), int(relative))
        _logger.debug(f"ANC_startAutoMove({axis}, enable={int(enable)}) -> {code}")
        return code

    def set_dc_voltage(self, handle: int, axis: int, voltage: float) -> int:
        code = self._lib().ANC_setDcVoltage(c_void_p(handle), axis, voltage)
        _logger.debug(f"ANC_setDcVoltage({axis}, {voltage!r}) -> {code}")
        return code

    def get_dc_voltage(self, handle: int, axis: int) -> Tuple[int, float]:
        voltage = c_double(0.0)
        code = self._lib().ANC_getDcVoltage(c_void_p(handle), axis, byref(voltage))
        return code, voltage.value

    def get_axis_status(self, handle: int, axis: int) -> Tuple[int, Tuple[bool, ...]]:
        """Returns (code, (connected, enabled, moving, target, eotFwd, eotBwd, error))."""
        flags = [c_int(0) for _ in range(7)]
        code = self._lib().ANC_getAxisStatus(c_void_p(handle), axis,
                                             *[byref(flag) for flag in flags])
        return code, tuple(bool(flag.value) for flag in flags)
