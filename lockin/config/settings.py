"""
Fixed protocol constants for the SR830 lock-in amplifier.

Tunable values (port, baud rate, timings) come from defaults.json via
common.config; the values here describe the instrument itself.
"""

from typing import Dict, Tuple

# RS-232 line terminator for commands and replies
TERMINATOR = "\r"

# Command strings
COMMANDS: Dict[str, str] = {
    "output": "OUTP? {channel}",          # 1=X, 2=Y, 3=R, 4=theta
    "aux_input": "OAUX? {port}",          # 1..4
    "aux_output": "AUXV {port},{voltage:.3f}",
    "frequency": "FREQ?",
    "sensitivity": "SENS?",
    "status": "LIAS?",
    "serial_poll": "*STB?",
    "auto_gain": "AGAN",
    "snap": "SNAP?1,2,3,4,5,6",
}

# OUTP? channel numbers
OUTPUT_CHANNELS: Dict[str, int] = {"x": 1, "y": 2, "r": 3, "theta": 4}

# SNAP? parameter order matching COMMANDS["snap"]
SNAP_FIELDS: Tuple[str, ...] = ("x", "y", "r", "theta", "aux1", "aux2")

# LIAS? status bits
STATUS_BITS: Dict[str, int] = {
    "input_overload": 1 << 0,
    "filter_overload": 1 << 1,
    "output_overload": 1 << 2,
    "reference_unlocked": 1 << 3,
}

STATUS_DESCRIPTIONS: Dict[str, str] = {
    "input_overload": "Input overload",
    "filter_overload": "Filter overload",
    "output_overload": "Output overload",
    "reference_unlocked": "Reference unlocked",
}

# *STB? bit set when no command execution is in progress
COMMAND_COMPLETE_BIT = 1 << 1

# Sensitivity table: index 0 is 2 nV, stepping 1-2-5 up to index 26 (1 V)
SENSITIVITY_MANTISSAS: Tuple[int, ...] = (1, 2, 5)
SENSITIVITY_BASE_EXPONENT = -9
SENSITIVITY_MAX_INDEX = 26

# Auxiliary I/O
AUX_PORTS: Tuple[int, ...] = (1, 2, 3, 4)
AUX_OUTPUT_LIMITS: Tuple[float, float] = (-10.0, 10.0)  # V
