"""
Fixed constants for the ANC350 positioner.

Tunable values (library name, discovery interface, device index) come from
defaults.json via common.config.
"""

from typing import Dict, Tuple

# Physical axes, 0-based as the native library numbers them
AXES: Tuple[int, ...] = (0, 1, 2)

# User coordinates are millimetres; the library works in metres
USER_UNITS_PER_METER = 1e3

# DC (fine positioning) voltage range and the tolerance accepted around it
DC_VOLTAGE_LIMITS: Tuple[float, float] = (0.0, 60.0)  # V
DC_VOLTAGE_GUARD = 0.1  # V

# Discovery interface filter (ANC_InterfaceType)
INTERFACES: Dict[str, int] = {"usb": 1, "tcp": 2, "all": 3}

# ANC_DeviceType values
DEVICE_TYPES: Dict[int, str] = {
    0: "ANC350 (resistive sensors)",
    1: "ANC350 (numeric sensors)",
    2: "ANC350 (FPS sensors)",
    3: "ANC350 (no sensors)",
}

# Order of the flags returned by ANC_getAxisStatus
AXIS_STATUS_FIELDS: Tuple[str, ...] = (
    "connected", "enabled", "moving", "target",
    "eot_forward", "eot_backward", "error",
)

# Size of the serial number / address buffers for ANC_getDeviceInfo
INFO_BUFFER_SIZE = 16
