"""
Operator-facing error message templates for the instrument drivers.

Maps a failure kind to actionable guidance that answers:
1. What happened?
2. Why might it have happened?
3. What should I do?
"""

from dataclasses import dataclass
from typing import List, Optional, Dict

from common.errors import ErrorKind


@dataclass
class ErrorTemplate:
    """Template for an operator-facing error message."""
    title: str
    message: str
    causes: List[str]
    actions: List[str]


# Lock-in amplifier error templates
LOCKIN_ERRORS: Dict[ErrorKind, ErrorTemplate] = {
    ErrorKind.DRIVER_ACCESS_ERROR: ErrorTemplate(
        title="Lock-in Amplifier Not Reachable",
        message="Could not open the serial port of the lock-in amplifier.",
        causes=[
            "Wrong COM port configured",
            "Another program has the port open",
            "USB-serial adapter is unplugged",
        ],
        actions=[
            "Check the port name in the configuration file",
            "Close any terminal program using the port",
            "Reconnect the adapter and try again",
        ]
    ),

    ErrorKind.TIMEOUT: ErrorTemplate(
        title="Lock-in Amplifier Not Responding",
        message="The lock-in amplifier did not answer in time.",
        causes=[
            "Instrument is switched off",
            "Baud rate on the front panel does not match the configuration",
            "RS-232 cable is loose",
        ],
        actions=[
            "Check that the instrument is powered on",
            "Compare the front-panel baud rate with the configuration (19200 by default)",
            "Check the cable and try again",
        ]
    ),

    ErrorKind.NOT_CONNECTED: ErrorTemplate(
        title="Lock-in Amplifier Not Connected",
        message="A command was issued before connecting or after disconnecting.",
        causes=[
            "connect() was not called",
            "The connection was already closed",
        ],
        actions=[
            "Call connect() before issuing commands",
        ]
    ),
}


# Positioner error templates
POSITIONER_ERRORS: Dict[ErrorKind, ErrorTemplate] = {
    ErrorKind.DEVICE_COUNT_MISMATCH: ErrorTemplate(
        title="Positioner Not Found",
        message="Discovery must find exactly one positioner controller.",
        causes=[
            "Controller is not powered on or the USB cable is disconnected",
            "More than one controller is attached to this computer",
        ],
        actions=[
            "Check the controller power and USB cable",
            "Disconnect any additional controllers",
        ]
    ),

    ErrorKind.DEVICE_LOCKED: ErrorTemplate(
        title="Positioner In Use",
        message="The positioner controller is already in use by another program.",
        causes=[
            "The vendor Daisy software is open",
            "Another script still holds the connection",
        ],
        actions=[
            "Close the vendor software",
            "Disconnect the other script and try again",
        ]
    ),

    ErrorKind.DRIVER_ACCESS_ERROR: ErrorTemplate(
        title="Positioner Driver Problem",
        message="The USB driver for the positioner could not be accessed.",
        causes=[
            "Vendor USB driver is not installed",
            "The native library does not match the installed driver",
        ],
        actions=[
            "Reinstall the vendor USB driver",
            "Check that the library on the path matches the driver version",
        ]
    ),

    ErrorKind.NOT_CONNECTED: ErrorTemplate(
        title="Positioner Not Connected",
        message="The positioner reported that no connection is established.",
        causes=[
            "The controller was power-cycled",
            "The USB connection dropped",
        ],
        actions=[
            "Reconnect the USB cable",
            "Disconnect and connect again",
        ]
    ),
}


def get_error(kind: ErrorKind, device: str = "lockin") -> Optional[ErrorTemplate]:
    """
    Get an error template for a failure kind.

    Args:
        kind: ErrorKind of the failure
        device: Device family ("lockin" or "positioner")

    Returns:
        ErrorTemplate if one exists, None otherwise
    """
    errors = LOCKIN_ERRORS if device == "lockin" else POSITIONER_ERRORS
    return errors.get(kind)


def format_error_message(template: ErrorTemplate) -> str:
    """
    Format an error template as a plain text message.

    Args:
        template: The error template to format

    Returns:
        Formatted error message string
    """
    lines = [
        template.title,
        "",
        template.message,
        "",
    ]

    if template.causes:
        lines.append("Possible causes:")
        for cause in template.causes:
            lines.append(f"  - {cause}")
        lines.append("")

    if template.actions:
        lines.append("What to do:")
        for action in template.actions:
            lines.append(f"  - {action}")

    return "\n".join(lines)


def report_failure(logger, error, device: str) -> None:
    """
    Send the operator template matching an InstrumentError to the logger.

    Does nothing when no template exists for the error's kind.
    """
    template = get_error(error.kind, device)
    if template:
        logger.user_error(template.title, template.message,
                          template.causes, template.actions)
