"""
ANC350 Positioner Controller

This controller provides a clean interface to an ANC350 three-axis
nanopositioner. It owns the native library handle, keeps every axis in one
of the states from models.axis_state, and converts user coordinates (mm,
relative to a zero offset) into device targets (m).

Every mode change is anchored to the current position: enabling a servo
first sets the target to where the axis already is, so no transition
commands motion on its own.

Axis positions are polled one axis at a time, so the axes in one position
or status read are not sampled at the identical instant.
"""

import math
import threading
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from common.config import ConfigurationError, positioner_config
from common.errors import (
    ErrorKind,
    InstrumentError,
    ServoDisabledWarning,
    ServoOffWarning,
    VoltageClampedWarning,
    advise,
    check_error,
)
from common.utils import get_logger, report_failure
from ..config.settings import (
    AXES,
    USER_UNITS_PER_METER,
    DC_VOLTAGE_LIMITS,
    DC_VOLTAGE_GUARD,
    INTERFACES,
    DEVICE_TYPES,
    AXIS_STATUS_FIELDS,
)
from ..drivers.anc350_library import ANC350Library
from ..models.axis_state import (
    AxisMode,
    AxisState,
    Disabled,
    ServoTracking,
    DirectVoltage,
    after_target_write,
    is_tracking,
)
from ..models.calibration import ZeroOffsetCalibration

# Module-level logger for positioner controller
_logger = get_logger("positioner")


class ANC350Error(InstrumentError):
    """Exception raised for ANC350 positioner specific errors."""
    pass


@dataclass(frozen=True)
class DeviceInfo:
    """Identification reported by ANC_getDeviceInfo."""
    device_type: int
    device_id: int
    serial_number: str
    address: str
    connected: bool

    @property
    def type_name(self) -> str:
        return DEVICE_TYPES.get(self.device_type, f"unknown type {self.device_type}")


@dataclass(frozen=True)
class AxisStatusSnapshot:
    """
    Status flags of all axes from one polling pass.

    Each field is a tuple indexed by axis.
    """
    connected: Tuple[bool, ...]
    enabled: Tuple[bool, ...]
    moving: Tuple[bool, ...]
    target: Tuple[bool, ...]
    eot_forward: Tuple[bool, ...]
    eot_backward: Tuple[bool, ...]
    error: Tuple[bool, ...]

    @classmethod
    def from_axes(cls, per_axis: Sequence[Tuple[bool, ...]]) -> 'AxisStatusSnapshot':
        """Build from a list of per-axis flag tuples in AXIS_STATUS_FIELDS order."""
        columns = zip(*per_axis)
        return cls(**{name: tuple(column) for name, column in zip(AXIS_STATUS_FIELDS, columns)})

    def for_axis(self, axis: int) -> dict:
        return {name: getattr(self, name)[axis] for name in AXIS_STATUS_FIELDS}


class ANC350Controller:
    """
    Controller for the ANC350 positioner.

    This controller reflects exactly what the ANC350 does:
    - Device discovery and connection
    - Servo (closed-loop) enable/disable per axis
    - Target positions and direct DC voltages
    - Position, voltage and status readback

    Public operations are serialized by an instance lock.
    """

    def __init__(self, library: Optional[ANC350Library] = None,
                 device_index: Optional[int] = None):
        """
        Initialize the controller without connecting to the device.

        Args:
            library: Native library gateway (default: the configured library)
            device_index: Index of the device found by discovery
        """
        config = positioner_config.device
        self._library = library
        self._device_index = config["device_index"] if device_index is None else device_index
        try:
            self._interfaces = INTERFACES[config["interface"]]
        except KeyError:
            raise ConfigurationError(f"Unknown positioner interface {config.get('interface')!r}, "
                                     f"expected one of {sorted(INTERFACES)}")
        self._handle: Optional[int] = None
        self._lock = threading.RLock()

        self._states = [Disabled() for _ in AXES]
        self._calibration = ZeroOffsetCalibration(len(AXES))
        self._last_known = np.full(len(AXES), np.nan)
        self._device_info: Optional[DeviceInfo] = None

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def _check(self, code: int, operation: str) -> None:
        check_error(code, operation, ANC350Error)

    def _read_device_info(self) -> DeviceInfo:
        code, *fields = self._library.get_device_info(self._device_index)
        self._check(code, "getDeviceInfo")
        return DeviceInfo(*fields)

    def connect(self) -> bool:
        """
        Discover, connect and bring up the positioner.

        Bring-up enables the servo on every axis, each anchored at the
        current position.

        Returns:
            bool: True if connection successful

        Raises:
            ANC350Error: DEVICE_COUNT_MISMATCH unless exactly one device is
                         found, or the mapped library error
        """
        with self._lock:
            if self._handle is not None:
                return True
            try:
                if self._library is None:
                    self._library = ANC350Library(positioner_config.device["library"])
                self._library.load()

                code, count = self._library.discover(self._interfaces)
                self._check(code, "discover")
                if count != 1:
                    raise ANC350Error(ErrorKind.DEVICE_COUNT_MISMATCH,
                                      f"Need to find exactly 1 device, found {count}",
                                      operation="discover")

                info = self._read_device_info()
                _logger.info(f"Found {info.type_name}")

                code, handle = self._library.connect(self._device_index)
                self._check(code, "connect")
                self._handle = handle

                self._device_info = self._read_device_info()
                if not self._device_info.connected:
                    raise ANC350Error(ErrorKind.NOT_CONNECTED,
                                      "Could not connect to device",
                                      operation="connect")
                _logger.info(f"ANC350 connected: ID {self._device_info.device_id} "
                             f"(#{self._device_info.serial_number})")

                self.servos_on()
                _logger.user("Positioner connected, all axes holding position")
            except InstrumentError as e:
                report_failure(_logger, e, "positioner")
                if self._handle is not None:
                    try:
                        self._release_handle()
                    except ANC350Error as release_error:
                        _logger.error(f"Handle release after failed bring-up also failed: "
                                      f"{release_error}")
                if not isinstance(e, ANC350Error):
                    raise ANC350Error(e.kind, str(e), operation="connect") from e
                raise
            return True

    def _release_handle(self) -> None:
        handle, self._handle = self._handle, None
        self._states = [Disabled() for _ in AXES]
        self._check(self._library.disconnect(handle), "disconnect")

    def disconnect(self) -> None:
        """
        Release the device handle.

        Safe to call twice; only the first call releases the handle. A
        failing release is raised, never swallowed.
        """
        with self._lock:
            if self._handle is None:
                return
            self._release_handle()
            _logger.info("ANC350 disconnected")

    def is_connected(self) -> bool:
        """Check if device is connected."""
        return self._handle is not None

    def _require_handle(self, operation: str) -> int:
        if self._handle is None:
            raise ANC350Error(ErrorKind.NOT_CONNECTED, "Device not connected",
                              operation=operation)
        return self._handle

    @staticmethod
    def _validate_axis(axis: int, operation: str) -> int:
        if axis not in AXES:
            raise ANC350Error(ErrorKind.PRECONDITION_VIOLATION,
                              f"Axis must be one of {AXES}, got {axis!r}",
                              operation=operation)
        return int(axis)

    # ------------------------------------------------------------------
    # Raw device access (unit conversion happens only here)
    # ------------------------------------------------------------------

    def _read_raw_position(self, axis: int) -> float:
        """Device position of one axis in user units, before zero offset."""
        code, metres = self._library.get_position(self._require_handle("getPosition"), axis)
        self._check(code, "getPosition")
        position = metres * USER_UNITS_PER_METER
        self._last_known[axis] = position
        return position

    def _write_target(self, axis: int, target: float) -> None:
        """Send a target (user units, device frame) to the library."""
        handle = self._require_handle("setTargetPosition")
        self._check(self._library.set_target_position(handle, axis, target / USER_UNITS_PER_METER),
                    "setTargetPosition")

    # ------------------------------------------------------------------
    # Axis state machine
    # ------------------------------------------------------------------

    def get_axis_state(self, axis: int) -> AxisState:
        return self._states[self._validate_axis(axis, "get_axis_state")]

    def get_axis_mode(self, axis: int) -> AxisMode:
        return self.get_axis_state(axis).mode

    def enable_servo(self, axis: int) -> None:
        """
        Switch an axis to closed-loop tracking without moving it.

        The current position is read first and written back as the target
        right after the servo is enabled. If the enable command fails the
        axis state is left unchanged.
        """
        with self._lock:
            axis = self._validate_axis(axis, "enable_servo")
            handle = self._require_handle("enable_servo")
            position = self._read_raw_position(axis)

            self._check(self._library.start_auto_move(handle, axis, True, False),
                        "startAutoMove")
            self._states[axis] = ServoTracking(position)
            self._write_target(axis, position)
            _logger.debug(f"Axis {axis} servo on, anchored at {position} mm")

    def disable_servo(self, axis: int) -> None:
        """Switch the closed loop off for one axis."""
        with self._lock:
            axis = self._validate_axis(axis, "disable_servo")
            handle = self._require_handle("disable_servo")
            self._check(self._library.start_auto_move(handle, axis, False, False),
                        "startAutoMove")
            self._states[axis] = Disabled()
            _logger.debug(f"Axis {axis} servo off")

    def servos_on(self) -> None:
        """Enable the servo on every axis, one after another."""
        with self._lock:
            for axis in AXES:
                self.enable_servo(axis)

    def set_target(self, axis: int, position: float) -> None:
        """
        Write a target position (mm, device frame) for one axis.

        The servo follows the target; nothing else starts a move. Writing a
        target to an axis that is not tracking is allowed by the hardware
        but will not move it, and is reported with a ServoOffWarning.
        """
        with self._lock:
            axis = self._validate_axis(axis, "set_target")
            self._require_handle("set_target")
            state = self._states[axis]
            if not is_tracking(state):
                advise(f"Axis {axis} servo is off ({state.mode.value}); "
                       f"turn on the servo before setting a target",
                       ServoOffWarning, _logger)
            self._write_target(axis, position)
            self._states[axis] = after_target_write(state, position)

    def set_direct_voltage(self, axis: int, voltage: float) -> float:
        """
        Apply a DC voltage to an axis for fine positioning.

        Voltages slightly outside 0-60 V (within 0.1 V) are clamped and
        reported; anything further out is rejected. A tracking servo is
        switched off first, with a ServoDisabledWarning.

        Returns:
            float: The voltage actually applied
        """
        with self._lock:
            axis = self._validate_axis(axis, "set_direct_voltage")
            handle = self._require_handle("set_direct_voltage")

            low, high = DC_VOLTAGE_LIMITS
            if not math.isfinite(voltage):
                raise ANC350Error(ErrorKind.OUT_OF_RANGE,
                                  f"Applied voltage {voltage} V is not a finite number",
                                  operation="set_direct_voltage")
            if voltage < low - DC_VOLTAGE_GUARD or voltage > high + DC_VOLTAGE_GUARD:
                raise ANC350Error(ErrorKind.OUT_OF_RANGE,
                                  f"Applied voltage {voltage} V is out of range "
                                  f"({low} V to {high} V)",
                                  operation="set_direct_voltage")
            if voltage < low or voltage > high:
                applied = max(low, min(high, voltage))
                advise(f"Voltage {voltage} V constrained to {applied} V",
                       VoltageClampedWarning, _logger)
                voltage = applied

            if is_tracking(self._states[axis]):
                advise(f"Servo must be disabled for direct voltage mode; "
                       f"disabling axis {axis} now",
                       ServoDisabledWarning, _logger)
                self.disable_servo(axis)

            self._check(self._library.set_dc_voltage(handle, axis, voltage), "setDcVoltage")
            self._states[axis] = DirectVoltage(voltage)
            return voltage

    # ------------------------------------------------------------------
    # Position and calibration
    # ------------------------------------------------------------------

    def get_position(self) -> np.ndarray:
        """Position of every axis in mm relative to the zero offset."""
        with self._lock:
            raw = [self._read_raw_position(axis) for axis in AXES]
            return self._calibration.to_user(raw)

    def move_to(self, position: Sequence[float]) -> None:
        """
        Set targets so every axis heads for the given user position.

        Axes are commanded one at a time; a failure part-way leaves the
        earlier axes already retargeted.
        """
        with self._lock:
            try:
                targets = self._calibration.to_device(position)
            except ValueError as e:
                raise ANC350Error(ErrorKind.PRECONDITION_VIOLATION, str(e),
                                  operation="move_to") from e
            for axis in AXES:
                self.set_target(axis, float(targets[axis]))

    def set_zero(self, position: Optional[Sequence[float]] = None) -> None:
        """
        Define the user origin.

        With no argument the current device position becomes zero;
        otherwise the given vector is used as the offsets.
        """
        with self._lock:
            if position is None:
                self._calibration.capture([self._read_raw_position(axis) for axis in AXES])
            else:
                try:
                    self._calibration.set_offsets(position)
                except ValueError as e:
                    raise ANC350Error(ErrorKind.PRECONDITION_VIOLATION, str(e),
                                      operation="set_zero") from e
            _logger.debug(f"Zero offset set to {self._calibration.offsets}")

    def get_zero(self) -> np.ndarray:
        return self._calibration.offsets

    @property
    def last_known_position(self) -> np.ndarray:
        """Most recent raw device positions (mm), NaN for axes never read."""
        return self._last_known.copy()

    # ------------------------------------------------------------------
    # Readback
    # ------------------------------------------------------------------

    def get_voltage(self) -> np.ndarray:
        """DC voltage currently applied to each axis."""
        with self._lock:
            handle = self._require_handle("get_voltage")
            voltages = []
            for axis in AXES:
                code, voltage = self._library.get_dc_voltage(handle, axis)
                self._check(code, "getDcVoltage")
                voltages.append(voltage)
            return np.array(voltages)

    def get_status(self) -> AxisStatusSnapshot:
        """
        Poll the status of every axis.

        A failure on any axis aborts the poll; a snapshot is never
        returned with some axes missing.
        """
        with self._lock:
            handle = self._require_handle("get_status")
            per_axis = []
            for axis in AXES:
                code, flags = self._library.get_axis_status(handle, axis)
                self._check(code, "getAxisStatus")
                per_axis.append(flags)
            return AxisStatusSnapshot.from_axes(per_axis)

    def get_device_info(self) -> DeviceInfo:
        """Identification of the connected device."""
        with self._lock:
            self._require_handle("get_device_info")
            self._device_info = self._read_device_info()
            return self._device_info

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()
