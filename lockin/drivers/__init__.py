"""
Hardware Drivers Package

Byte-level transports for the lock-in amplifier. These are used by the
controller classes in the controllers/ package.

Available drivers:
- SerialTransport: RS-232 via pyserial
- VisaTransport: GPIB / VISA-serial via pyvisa
"""

from .serial_transport import (
    SerialTransport,
    VisaTransport,
    TransportError,
    find_serial_port,
)

__all__ = ['SerialTransport', 'VisaTransport', 'TransportError', 'find_serial_port']
