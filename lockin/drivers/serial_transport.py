"""
Transports for the lock-in amplifier's ASCII command set.

Both transports expose the same small interface:
    open(), close(), send(command), query(command) -> str, is_open

SerialTransport talks RS-232 through pyserial; VisaTransport talks to a VISA
resource (GPIB or VISA-serial) through pyvisa. Failures are raised as
TransportError carrying an ErrorKind.
"""

from typing import Optional

import pyvisa as visa
import serial
import serial.tools.list_ports

from common.errors import ErrorKind, InstrumentError
from common.utils import get_logger
from ..config.settings import TERMINATOR

# Module-level logger for lock-in transports
_logger = get_logger("lockin")


class TransportError(InstrumentError):
    """Exception raised when a transport cannot complete a request."""
    pass


def find_serial_port(description: str) -> Optional[str]:
    """
    Find a serial port whose description contains the given text.

    Returns:
        Port device name, or None if nothing matches
    """
    for port in serial.tools.list_ports.comports():
        if description in port.description:
            return port.device
    return None


class SerialTransport:
    """
    Request/response channel over an RS-232 port.

    One command per line, terminated by a carriage return; every query
    reads exactly one terminated reply.
    """

    def __init__(self, port: str, baudrate: int = 19200, timeout: float = 2.0,
                 terminator: str = TERMINATOR):
        """
        Args:
            port: Serial device name (e.g. "COM15", "/dev/ttyUSB0")
            baudrate: Line speed, must match the instrument front panel
            timeout: Read timeout in seconds
            terminator: Line terminator for commands and replies
        """
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.terminator = terminator
        self._serial: Optional[serial.Serial] = None

    @property
    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def open(self) -> None:
        """
        Open the serial port.

        Raises:
            TransportError: DRIVER_ACCESS_ERROR if the port cannot be opened
        """
        try:
            self._serial = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self.timeout,
            )
        except serial.SerialException as e:
            self._serial = None
            raise TransportError(ErrorKind.DRIVER_ACCESS_ERROR,
                                 f"Cannot open {self.port}: {e}",
                                 operation="open")
        _logger.debug(f"Opened {self.port} at {self.baudrate} baud")

    def close(self) -> None:
        """
        Close the serial port.

        Raises:
            TransportError: DRIVER_ACCESS_ERROR if the port fails to close
        """
        if self._serial is None:
            return
        port, self._serial = self._serial, None
        try:
            port.close()
        except serial.SerialException as e:
            raise TransportError(ErrorKind.DRIVER_ACCESS_ERROR,
                                 f"Failed to close {self.port}: {e}",
                                 operation="close")
        _logger.debug(f"Closed {self.port}")

    def _require_open(self, operation: str) -> serial.Serial:
        if not self.is_open:
            raise TransportError(ErrorKind.NOT_CONNECTED, operation=operation)
        return self._serial

    def send(self, command: str) -> None:
        """Write one command without waiting for a reply."""
        port = self._require_open("send")
        _logger.debug(f"-> {command}")
        try:
            port.write((command + self.terminator).encode('ascii'))
        except serial.SerialTimeoutException as e:
            raise TransportError(ErrorKind.TIMEOUT, f"Write timed out: {e}",
                                 operation=command)
        except serial.SerialException as e:
            raise TransportError(ErrorKind.DRIVER_ACCESS_ERROR, str(e),
                                 operation=command)

    def query(self, command: str) -> str:
        """
        Write one command and read one terminated reply.

        Input left over from an earlier command (such as a reply that
        arrived after its timeout) is discarded before writing.

        Raises:
            TransportError: TIMEOUT if no complete reply arrives in time
        """
        port = self._require_open("query")
        try:
            port.reset_input_buffer()
        except serial.SerialException as e:
            raise TransportError(ErrorKind.DRIVER_ACCESS_ERROR, str(e),
                                 operation=command)
        self.send(command)
        try:
            raw = port.read_until(self.terminator.encode('ascii'))
        except serial.SerialException as e:
            raise TransportError(ErrorKind.DRIVER_ACCESS_ERROR, str(e),
                                 operation=command)

        if not raw.endswith(self.terminator.encode('ascii')):
            raise TransportError(ErrorKind.TIMEOUT,
                                 f"Incomplete reply {raw!r}",
                                 operation=command)
        reply = raw.decode('ascii', errors='replace').strip()
        _logger.debug(f"<- {reply}")
        return reply


class VisaTransport:
    """
    Request/response channel over a VISA resource.

    Useful when the amplifier sits on GPIB, or when a VISA library is
    preferred for the serial port (resource names like "ASRL15::INSTR").
    """

    def __init__(self, address: str, timeout_ms: int = 2000,
                 terminator: str = TERMINATOR,
                 resource_manager: Optional[visa.ResourceManager] = None):
        """
        Args:
            address: VISA resource name (e.g. "GPIB0::8::INSTR")
            timeout_ms: VISA timeout in milliseconds
            terminator: Line terminator for commands and replies
            resource_manager: Optional VISA resource manager instance
        """
        self.address = address
        self.timeout_ms = timeout_ms
        self.terminator = terminator
        self._rm = resource_manager
        self._device = None

    @property
    def is_open(self) -> bool:
        return self._device is not None

    def open(self) -> None:
        try:
            if self._rm is None:
                self._rm = visa.ResourceManager()
            device = self._rm.open_resource(self.address)
            device.timeout = self.timeout_ms
            device.write_termination = self.terminator
            device.read_termination = self.terminator
        except visa.VisaIOError as e:
            raise TransportError(ErrorKind.DRIVER_ACCESS_ERROR,
                                 f"Cannot open {self.address}: {e}",
                                 operation="open")
        self._device = device
        _logger.debug(f"Opened VISA resource {self.address}")

    def close(self) -> None:
        if self._device is None:
            return
        device, self._device = self._device, None
        try:
            device.close()
        except visa.VisaIOError as e:
            raise TransportError(ErrorKind.DRIVER_ACCESS_ERROR,
                                 f"Failed to close {self.address}: {e}",
                                 operation="close")
        _logger.debug(f"Closed VISA resource {self.address}")

    def send(self, command: str) -> None:
        if self._device is None:
            raise TransportError(ErrorKind.NOT_CONNECTED, operation="send")
        _logger.debug(f"-> {command}")
        try:
            self._device.write(command)
        except visa.VisaIOError as e:
            raise TransportError(self._kind_for(e), str(e), operation=command)

    def query(self, command: str) -> str:
        if self._device is None:
            raise TransportError(ErrorKind.NOT_CONNECTED, operation="query")
        _logger.debug(f"-> {command}")
        try:
            reply = self._device.query(command).strip()
        except visa.VisaIOError as e:
            raise TransportError(self._kind_for(e), str(e), operation=command)
        _logger.debug(f"<- {reply}")
        return reply

    @staticmethod
    def _kind_for(error: visa.VisaIOError) -> ErrorKind:
        if error.error_code == visa.constants.StatusCode.error_timeout:
            return ErrorKind.TIMEOUT
        return ErrorKind.DRIVER_ACCESS_ERROR
