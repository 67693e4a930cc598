"""
SR830 Lock-in Amplifier Controller

This controller provides a clean interface to the SR830 lock-in amplifier.
It handles the transport connection, single and simultaneous readings,
status decoding, sensitivity decoding and the auxiliary outputs.

Every device value is fetched by an explicit method call; nothing is cached
as a plain attribute, since each read costs a round-trip and can fail.
"""

import math
import threading
from dataclasses import dataclass
from typing import Optional

import numpy as np

from common.config import lockin_config
from common.errors import (
    ErrorKind,
    InstrumentError,
    VoltageClampedWarning,
    advise,
)
from common.utils import get_logger, report_failure
from ..config.settings import (
    COMMANDS,
    OUTPUT_CHANNELS,
    SNAP_FIELDS,
    STATUS_BITS,
    STATUS_DESCRIPTIONS,
    COMMAND_COMPLETE_BIT,
    SENSITIVITY_MANTISSAS,
    SENSITIVITY_BASE_EXPONENT,
    SENSITIVITY_MAX_INDEX,
    AUX_PORTS,
    AUX_OUTPUT_LIMITS,
)
from ..drivers.serial_transport import (
    SerialTransport,
    VisaTransport,
    TransportError,
    find_serial_port,
)
from ..models.auto_range import AutoRangeModel

# Module-level logger for lock-in controller
_logger = get_logger("lockin")


class SR830Error(InstrumentError):
    """Exception raised for SR830 lock-in amplifier specific errors."""
    pass


@dataclass(frozen=True)
class SnapReading:
    """Six values sampled by the amplifier at the same instant."""
    x: float
    y: float
    r: float
    theta: float
    aux1: float
    aux2: float

    @classmethod
    def from_reply(cls, reply: str) -> 'SnapReading':
        """Parse a SNAP? reply of six comma-separated numbers."""
        fields = reply.split(',')
        if len(fields) != len(SNAP_FIELDS):
            raise SR830Error(ErrorKind.UNSPECIFIED,
                             f"Expected {len(SNAP_FIELDS)} values, got {reply!r}",
                             operation="snap")
        try:
            values = [float(field) for field in fields]
        except ValueError:
            raise SR830Error(ErrorKind.UNSPECIFIED, f"Unexpected reply {reply!r}",
                             operation="snap")
        return cls(**dict(zip(SNAP_FIELDS, values)))


@dataclass(frozen=True)
class Sensitivity:
    """Decoded sensitivity setting: full scale = mantissa * 10**exponent volts."""
    index: int
    mantissa: int
    exponent: int

    @property
    def full_scale(self) -> float:
        return self.mantissa * 10.0 ** self.exponent


def decode_sensitivity(index: int) -> Sensitivity:
    """
    Decode a SENS? index into mantissa and exponent.

    The table steps 2, 5, 10, 20, 50, ... so index 0 is 2 nV and
    index 26 is 1 V.

    Raises:
        SR830Error: PRECONDITION_VIOLATION for an index outside the table
    """
    if not 0 <= index <= SENSITIVITY_MAX_INDEX:
        raise SR830Error(ErrorKind.PRECONDITION_VIOLATION,
                         f"Sensitivity index {index} outside 0..{SENSITIVITY_MAX_INDEX}",
                         operation="decode_sensitivity")
    tier, position = divmod(index + 1, len(SENSITIVITY_MANTISSAS))
    return Sensitivity(
        index=index,
        mantissa=SENSITIVITY_MANTISSAS[position],
        exponent=SENSITIVITY_BASE_EXPONENT + tier,
    )


@dataclass(frozen=True)
class LockinStatus:
    """Decoded LIAS? status byte."""
    raw: int
    input_overload: bool
    filter_overload: bool
    output_overload: bool
    reference_unlocked: bool

    @classmethod
    def from_byte(cls, raw: int) -> 'LockinStatus':
        return cls(raw=raw, **{name: bool(raw & bit) for name, bit in STATUS_BITS.items()})

    @property
    def overloaded(self) -> bool:
        return self.input_overload or self.filter_overload or self.output_overload

    def describe(self) -> str:
        """Human-readable list of the active flags ("" when all clear)."""
        return ", ".join(text for name, text in STATUS_DESCRIPTIONS.items()
                         if getattr(self, name))


class SR830Controller:
    """
    Controller for the SR830 lock-in amplifier.

    This controller reflects exactly what the SR830 does:
    - Serial (or VISA) communication
    - Single-channel and simultaneous (SNAP) readings
    - Status and sensitivity decoding
    - Auto-gain and the auto-ranging read
    - Auxiliary inputs and outputs

    Public operations are serialized by an instance lock, so one controller
    may be shared between threads.
    """

    def __init__(self, address: Optional[str] = None, transport=None):
        """
        Initialize the controller without connecting to the device.

        Args:
            address: Serial port ("COM15") or VISA resource ("GPIB0::8::INSTR").
                     Defaults to the configured port.
            transport: Pre-built transport object (used instead of address)
        """
        self._address = address
        self._transport = transport
        self._is_connected = False
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def _resolve_address(self) -> str:
        config = lockin_config.device
        if self._address:
            return self._address
        if config.get("port"):
            return config["port"]
        description = config.get("port_description")
        port = find_serial_port(description) if description else None
        if port is None:
            raise SR830Error(ErrorKind.NO_SUCH_DEVICE,
                             "No serial port configured or detected",
                             operation="connect")
        return port

    def _build_transport(self, address: str):
        config = lockin_config.device
        if "::" in address:
            return VisaTransport(address, timeout_ms=config["visa_timeout_ms"])
        return SerialTransport(address, baudrate=config["baudrate"],
                               timeout=config["timeout_s"])

    def connect(self, address: Optional[str] = None) -> bool:
        """
        Open the transport to the lock-in amplifier.

        Args:
            address: Optional serial port or VISA resource overriding the
                     one given at construction

        Returns:
            bool: True if connection successful

        Raises:
            SR830Error: If the transport cannot be opened
        """
        with self._lock:
            if self._is_connected:
                return True
            if address:
                self._address = address
                self._transport = None

            try:
                if self._transport is None:
                    self._address = self._resolve_address()
                    self._transport = self._build_transport(self._address)
                self._transport.open()
            except InstrumentError as e:
                report_failure(_logger, e, "lockin")
                raise SR830Error(e.kind, f"Failed to connect to SR830: {e}",
                                 operation="connect") from e

            self._is_connected = True
            _logger.info(f"SR830 connected on {self._address or 'injected transport'}")
            _logger.user("Lock-in amplifier connected")
            return True

    def disconnect(self) -> None:
        """
        Release the transport.

        Safe to call twice; only the first call closes the transport. A
        failure to close is raised, never swallowed.
        """
        with self._lock:
            if not self._is_connected:
                return
            self._is_connected = False
            try:
                self._transport.close()
            except InstrumentError as e:
                raise SR830Error(e.kind, f"Failed to disconnect: {e}",
                                 operation="disconnect") from e
            _logger.info("SR830 disconnected")

    def is_connected(self) -> bool:
        """Check if device is connected."""
        return self._is_connected

    # ------------------------------------------------------------------
    # Transport helpers
    # ------------------------------------------------------------------

    def _require_connection(self, operation: str) -> None:
        if not self._is_connected:
            raise SR830Error(ErrorKind.NOT_CONNECTED, "Device not connected",
                             operation=operation)

    def send_command(self, command: str) -> None:
        """
        Send a command that has no reply.

        Raises:
            SR830Error: If not connected or the write fails
        """
        with self._lock:
            self._require_connection(command)
            try:
                self._transport.send(command)
            except TransportError as e:
                raise SR830Error(e.kind, str(e), operation=command) from e

    def query(self, command: str) -> str:
        """
        Send a command and read its reply.

        Raises:
            SR830Error: If not connected, or on timeout / IO failure
        """
        with self._lock:
            self._require_connection(command)
            try:
                return self._transport.query(command)
            except TransportError as e:
                raise SR830Error(e.kind, str(e), operation=command) from e

    def _query_float(self, command: str) -> float:
        reply = self.query(command)
        try:
            return float(reply)
        except ValueError:
            raise SR830Error(ErrorKind.UNSPECIFIED, f"Unexpected reply {reply!r}",
                             operation=command)

    def _query_int(self, command: str) -> int:
        reply = self.query(command)
        try:
            return int(float(reply))
        except ValueError:
            raise SR830Error(ErrorKind.UNSPECIFIED, f"Unexpected reply {reply!r}",
                             operation=command)

    # ------------------------------------------------------------------
    # Readings
    # ------------------------------------------------------------------

    def read_output(self, name: str) -> float:
        """
        Read one output channel ("x", "y", "r" or "theta").

        Channels read this way are not sampled together; use snap() when
        more than one value is needed.
        """
        if name not in OUTPUT_CHANNELS:
            raise SR830Error(ErrorKind.PRECONDITION_VIOLATION,
                             f"Unknown output channel {name!r}",
                             operation="read_output")
        return self._query_float(COMMANDS["output"].format(channel=OUTPUT_CHANNELS[name]))

    def get_x(self) -> float:
        return self.read_output("x")

    def get_y(self) -> float:
        return self.read_output("y")

    def get_r(self) -> float:
        return self.read_output("r")

    def get_theta(self) -> float:
        return self.read_output("theta")

    def get_frequency(self) -> float:
        """Reference frequency in Hz."""
        return self._query_float(COMMANDS["frequency"])

    def get_aux_inputs(self) -> np.ndarray:
        """Read the four auxiliary inputs (volts)."""
        with self._lock:
            return np.array([self._query_float(COMMANDS["aux_input"].format(port=port))
                             for port in AUX_PORTS])

    def snap(self) -> SnapReading:
        """
        Read X, Y, R, theta, Aux1 and Aux2 in one device-side sample.

        Returns:
            SnapReading: all six values from the same instant
        """
        return SnapReading.from_reply(self.query(COMMANDS["snap"]))

    # ------------------------------------------------------------------
    # Status and sensitivity
    # ------------------------------------------------------------------

    def get_status(self) -> LockinStatus:
        """Read and decode the LIAS? status byte."""
        status = LockinStatus.from_byte(self._query_int(COMMANDS["status"]))
        if status.raw:
            _logger.debug(f"LIAS={status.raw}: {status.describe()}")
        return status

    def is_command_complete(self) -> bool:
        """True when the serial poll byte reports no command in progress."""
        return bool(self._query_int(COMMANDS["serial_poll"]) & COMMAND_COMPLETE_BIT)

    def get_sensitivity(self) -> Sensitivity:
        """Read the current sensitivity setting."""
        return decode_sensitivity(self._query_int(COMMANDS["sensitivity"]))

    def auto_gain(self) -> None:
        """Start the instrument's auto-gain; completion is reported via *STB?."""
        self.send_command(COMMANDS["auto_gain"])

    def auto_snap(self, timeout=AutoRangeModel.USE_CONFIG,
                  cancel_event: Optional[threading.Event] = None) -> SnapReading:
        """
        Recover from an output overload if there is one, then take a snapshot.

        Args:
            timeout: Deadline in seconds for auto-gain to finish (None waits
                     indefinitely; default from configuration)
            cancel_event: Set from another thread to abort the wait

        Returns:
            SnapReading taken after the settle time
        """
        with self._lock:
            self._require_connection("auto_snap")
            model = AutoRangeModel(self, timeout=timeout)
            return model.run(cancel_event=cancel_event)

    # ------------------------------------------------------------------
    # Auxiliary outputs
    # ------------------------------------------------------------------

    def set_aux_output(self, port: int, voltage: float) -> float:
        """
        Set an auxiliary output voltage.

        Voltages outside -10 V..+10 V are constrained to the range and
        reported with a VoltageClampedWarning.

        Args:
            port: Output number 1-4
            voltage: Requested voltage

        Returns:
            float: The voltage actually applied
        """
        port = int(round(port))
        if port not in AUX_PORTS:
            raise SR830Error(ErrorKind.PRECONDITION_VIOLATION,
                             f"Auxiliary port must be one of {AUX_PORTS}",
                             operation="set_aux_output")

        if not math.isfinite(voltage):
            raise SR830Error(ErrorKind.OUT_OF_RANGE,
                             f"Aux voltage {voltage} V is not a finite number",
                             operation="set_aux_output")

        low, high = AUX_OUTPUT_LIMITS
        if voltage < low or voltage > high:
            applied = max(low, min(high, voltage))
            advise(f"Aux voltage {voltage} V out of range ({low} V to {high} V), "
                   f"constrained to {applied} V",
                   VoltageClampedWarning, _logger)
            voltage = applied

        self.send_command(COMMANDS["aux_output"].format(port=port, voltage=voltage))
        return voltage

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()
