"""
Auto-Ranging Model

Recovers the lock-in amplifier from an output overload before a reading is
taken. The protocol runs through these states:

    IDLE -> CHECKING -> RECOVERING -> SETTLING -> DONE

CHECKING goes straight to SETTLING when there is no output overload.

RECOVERING issues auto-gain and polls the serial poll byte until the
instrument reports the command complete. The poll is bounded by a deadline
and honours a cancellation event between iterations. SETTLING waits once so
the new gain stabilizes; DONE takes exactly one snapshot.
"""

import threading
import time
from enum import Enum
from typing import Callable, Optional

from common.config import lockin_config
from common.errors import ErrorKind, InstrumentError, OverloadWarning, advise
from common.utils import get_logger

_logger = get_logger("lockin")


class AutoRangeError(InstrumentError):
    """Exception raised when auto-ranging times out or is cancelled."""
    pass


class AutoRangeState(Enum):
    """Protocol states."""
    IDLE = "idle"
    CHECKING = "checking"
    RECOVERING = "recovering"
    SETTLING = "settling"
    DONE = "done"


class AutoRangeModel:
    """
    Model for the overload-recovery-then-read protocol.

    Works with any lock-in controller providing get_status(), auto_gain(),
    is_command_complete() and snap().
    """

    # Marker meaning "take the value from configuration"
    USE_CONFIG = object()

    def __init__(self, lockin,
                 poll_interval: Optional[float] = None,
                 settle_time: Optional[float] = None,
                 timeout=USE_CONFIG):
        """
        Args:
            lockin: Connected lock-in controller
            poll_interval: Seconds between completion polls
            settle_time: Seconds to wait before the final snapshot
            timeout: Deadline in seconds for auto-gain completion, or None
                     to poll until the instrument reports completion
        """
        config = lockin_config.auto_range
        self.lockin = lockin
        self.poll_interval = config["poll_interval_s"] if poll_interval is None else poll_interval
        self.settle_time = config["settle_time_s"] if settle_time is None else settle_time
        self.timeout = config["timeout_s"] if timeout is AutoRangeModel.USE_CONFIG else timeout

        self._state = AutoRangeState.IDLE
        self.poll_count = 0
        self.state_callback: Optional[Callable[[AutoRangeState], None]] = None

    @property
    def state(self) -> AutoRangeState:
        return self._state

    def set_state_callback(self, callback: Callable[[AutoRangeState], None]) -> None:
        """Set callback invoked on every state change."""
        self.state_callback = callback

    def _set_state(self, state: AutoRangeState) -> None:
        self._state = state
        _logger.debug(f"Auto-range state: {state.value}")
        if self.state_callback:
            self.state_callback(state)

    def run(self, cancel_event: Optional[threading.Event] = None):
        """
        Execute the protocol once.

        Args:
            cancel_event: Set from another thread to abort the completion poll

        Returns:
            SnapReading taken after settling

        Raises:
            AutoRangeError: TIMEOUT when auto-gain does not finish before the
                            deadline, CANCELLED when cancel_event is set
        """
        self.poll_count = 0
        self._set_state(AutoRangeState.CHECKING)
        status = self.lockin.get_status()

        if status.output_overload:
            self._set_state(AutoRangeState.RECOVERING)
            self._recover(cancel_event)

        self._set_state(AutoRangeState.SETTLING)
        time.sleep(self.settle_time)

        reading = self.lockin.snap()
        self._set_state(AutoRangeState.DONE)
        return reading

    def _recover(self, cancel_event: Optional[threading.Event]) -> None:
        self.lockin.auto_gain()
        advise("Overload detected: auto-gain carried out", OverloadWarning, _logger)
        _logger.user("Lock-in overloaded, adjusting sensitivity...")

        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise AutoRangeError(ErrorKind.CANCELLED,
                                     f"Auto-gain wait cancelled after {self.poll_count} polls",
                                     operation="auto_snap")
            time.sleep(self.poll_interval)
            self.poll_count += 1
            if self.lockin.is_command_complete():
                break
            if deadline is not None and time.monotonic() >= deadline:
                raise AutoRangeError(ErrorKind.TIMEOUT,
                                     f"Auto-gain not complete after {self.timeout} s "
                                     f"({self.poll_count} polls)",
                                     operation="auto_snap")

        _logger.info(f"Auto-gain complete after {self.poll_count} polls")
        _logger.user("Lock-in sensitivity adjusted")
