"""
Error taxonomy shared by the instrument drivers.

Every raw return code coming back from a device or vendor library is routed
through map_error_code() before a driver acts on it. Failures are raised as
InstrumentError (or a device-specific subclass) carrying one ErrorKind.

Recoverable conditions (clamped arguments, forced mode changes, overload
recovery) are not failures: they are reported once through the warnings
module and the tiered logger, and the operation carries on.
"""

import warnings
from enum import Enum
from typing import Dict, Optional


class ErrorKind(Enum):
    """Closed set of failure kinds reported by the drivers."""
    OK = "Ok"
    TIMEOUT = "Timeout"
    NOT_CONNECTED = "NotConnected"
    DRIVER_ACCESS_ERROR = "DriverAccessError"
    DEVICE_LOCKED = "DeviceLocked"
    UNKNOWN_DEVICE_ERROR = "UnknownDeviceError"
    NO_SUCH_DEVICE = "NoSuchDevice"
    NO_SUCH_AXIS = "NoSuchAxis"
    OUT_OF_RANGE = "OutOfRange"
    UNSUPPORTED_OPERATION = "UnsupportedOperation"
    FILE_ERROR = "FileError"
    UNSPECIFIED = "Unspecified"

    # Raised by the drivers themselves, never returned by a device
    DEVICE_COUNT_MISMATCH = "DeviceCountMismatch"
    PRECONDITION_VIOLATION = "PreconditionViolation"
    CANCELLED = "Cancelled"


# Vendor return codes (ANC350 v4 library manual numbering)
RETURN_CODES: Dict[int, ErrorKind] = {
    0: ErrorKind.OK,
    -1: ErrorKind.UNSPECIFIED,
    1: ErrorKind.TIMEOUT,
    2: ErrorKind.NOT_CONNECTED,
    3: ErrorKind.DRIVER_ACCESS_ERROR,
    7: ErrorKind.DEVICE_LOCKED,
    8: ErrorKind.UNKNOWN_DEVICE_ERROR,
    9: ErrorKind.NO_SUCH_DEVICE,
    10: ErrorKind.NO_SUCH_AXIS,
    11: ErrorKind.OUT_OF_RANGE,
    12: ErrorKind.UNSUPPORTED_OPERATION,
    13: ErrorKind.FILE_ERROR,
}

ERROR_DESCRIPTIONS: Dict[ErrorKind, str] = {
    ErrorKind.OK: "No error",
    ErrorKind.TIMEOUT: "Receive timed out",
    ErrorKind.NOT_CONNECTED: "No connection was established",
    ErrorKind.DRIVER_ACCESS_ERROR: "Error accessing the driver",
    ErrorKind.DEVICE_LOCKED: "Cannot connect, device already in use",
    ErrorKind.UNKNOWN_DEVICE_ERROR: "Unknown device error",
    ErrorKind.NO_SUCH_DEVICE: "Invalid device number used in call",
    ErrorKind.NO_SUCH_AXIS: "Invalid axis number in function call",
    ErrorKind.OUT_OF_RANGE: "Parameter in call is out of range",
    ErrorKind.UNSUPPORTED_OPERATION: "Function not available for device type",
    ErrorKind.FILE_ERROR: "Error opening or interpreting a file",
    ErrorKind.UNSPECIFIED: "Unspecified error",
    ErrorKind.DEVICE_COUNT_MISMATCH: "Expected exactly one device",
    ErrorKind.PRECONDITION_VIOLATION: "Invalid argument for this operation",
    ErrorKind.CANCELLED: "Operation cancelled by caller",
}


def map_error_code(code: int) -> ErrorKind:
    """
    Map a raw device return code to an ErrorKind.

    Codes missing from the vendor table map to UNSPECIFIED; this function
    never raises for an unknown code.
    """
    try:
        return RETURN_CODES.get(int(code), ErrorKind.UNSPECIFIED)
    except (TypeError, ValueError):
        return ErrorKind.UNSPECIFIED


class InstrumentError(Exception):
    """
    Base exception for all instrument failures.

    Attributes:
        kind: ErrorKind describing the failure
        code: Raw return code when the failure came from a device, else None
        operation: Name of the operation that failed
    """

    def __init__(self, kind: ErrorKind, message: Optional[str] = None,
                 code: Optional[int] = None, operation: Optional[str] = None):
        self.kind = kind
        self.code = code
        self.operation = operation
        detail = message or ERROR_DESCRIPTIONS.get(kind, kind.value)
        prefix = f"{operation}: " if operation else ""
        suffix = f" (code {code})" if code is not None else ""
        super().__init__(f"{prefix}[{kind.value}] {detail}{suffix}")


def check_error(code: int, operation: str,
                error_cls: type = InstrumentError) -> None:
    """
    Raise error_cls if a raw return code is anything other than OK.

    Args:
        code: Raw return code from the device or library
        operation: Name of the call, used in the error message
        error_cls: InstrumentError subclass to raise
    """
    kind = map_error_code(code)
    if kind is not ErrorKind.OK:
        raise error_cls(kind, code=code, operation=operation)


# ---------------------------------------------------------------------------
# Recoverable-condition signals
# ---------------------------------------------------------------------------

class InstrumentWarning(UserWarning):
    """Base category for recoverable conditions reported by the drivers."""


class ServoDisabledWarning(InstrumentWarning):
    """Servo was switched off to honour a direct-voltage request."""


class ServoOffWarning(InstrumentWarning):
    """A target was written to an axis whose servo is not tracking."""


class VoltageClampedWarning(InstrumentWarning):
    """A requested voltage was constrained to the allowed range."""


class OverloadWarning(InstrumentWarning):
    """Amplifier overload detected; auto-gain was issued."""


def advise(message: str, category: type = InstrumentWarning, logger=None) -> None:
    """
    Report a recoverable condition exactly once.

    Emits a warning of the given category and, when a logger is supplied,
    records the same message at WARNING level.
    """
    if logger is not None:
        logger.warning(message)
    warnings.warn(message, category, stacklevel=3)
