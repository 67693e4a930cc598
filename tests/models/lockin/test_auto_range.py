"""
Unit tests for AutoRangeModel.

Tests the overload recovery protocol: status check, auto-gain, completion
polling, settling and the final snapshot. time.sleep is patched so no test
actually waits.
"""

import threading
import warnings
from pathlib import Path
from unittest.mock import Mock

import pytest

from common.errors import ErrorKind, InstrumentWarning, OverloadWarning
from lockin.controllers.sr830_lockin import LockinStatus, SnapReading, SR830Controller
from lockin.models import auto_range
from lockin.models.auto_range import AutoRangeError, AutoRangeModel, AutoRangeState
from tests.mocks.mock_controllers import MockSerialTransport


OUTPUT_OVERLOAD = 4


def connected_lockin(replies):
    transport = MockSerialTransport(replies)
    lockin = SR830Controller(transport=transport)
    lockin.connect()
    return lockin, transport


def mock_lockin(overloaded=True, complete=True):
    """Duck-typed lock-in for exercising the model on its own."""
    lockin = Mock()
    lockin.get_status.return_value = LockinStatus.from_byte(OUTPUT_OVERLOAD if overloaded else 0)
    lockin.is_command_complete.return_value = complete
    lockin.snap.return_value = SnapReading(1.0, 0.0, 1.0, 0.0, 0.0, 0.0)
    return lockin


class TestRecovery:
    """Tests for a run that starts with an output overload."""

    def test_overload_then_clear(self, no_sleep):
        """One auto-gain, at least one poll, one settle wait, one snapshot."""
        lockin, transport = connected_lockin({
            "LIAS?": [str(OUTPUT_OVERLOAD), "0"],
            "*STB?": ["0", "2"],
        })
        model = AutoRangeModel(lockin, poll_interval=0.1, settle_time=0.5)

        with pytest.warns(OverloadWarning):
            reading = model.run()

        assert isinstance(reading, SnapReading)
        assert transport.count("AGAN") == 1
        assert transport.count("*STB?") == 2
        assert model.poll_count == 2
        assert transport.count("SNAP?1,2,3,4,5,6") == 1
        assert no_sleep.call_args_list[-1].args == (0.5,)
        assert [c.args[0] for c in no_sleep.call_args_list].count(0.5) == 1
        assert model.state is AutoRangeState.DONE

    def test_snapshot_taken_after_auto_gain(self, no_sleep):
        lockin, transport = connected_lockin({"LIAS?": str(OUTPUT_OVERLOAD)})
        with pytest.warns(OverloadWarning):
            AutoRangeModel(lockin, settle_time=0.5).run()

        assert transport.sent.index("AGAN") < transport.sent.index("SNAP?1,2,3,4,5,6")

    def test_state_sequence(self, no_sleep):
        states = []
        model = AutoRangeModel(mock_lockin(overloaded=True))
        model.set_state_callback(states.append)

        with pytest.warns(OverloadWarning):
            model.run()

        assert states == [
            AutoRangeState.CHECKING,
            AutoRangeState.RECOVERING,
            AutoRangeState.SETTLING,
            AutoRangeState.DONE,
        ]


class TestNoOverload:
    """Tests for a run with a clean status byte."""

    def test_no_auto_gain(self, no_sleep):
        lockin, transport = connected_lockin({"LIAS?": "0"})
        model = AutoRangeModel(lockin, settle_time=0.5)

        with warnings.catch_warnings():
            warnings.simplefilter("error", InstrumentWarning)
            model.run()

        assert transport.count("AGAN") == 0
        assert transport.count("*STB?") == 0
        assert transport.count("SNAP?1,2,3,4,5,6") == 1
        assert model.poll_count == 0
        no_sleep.assert_called_once_with(0.5)

    def test_input_overload_alone_does_not_trigger_auto_gain(self, no_sleep):
        lockin = mock_lockin(overloaded=False)
        lockin.get_status.return_value = LockinStatus.from_byte(1)

        AutoRangeModel(lockin).run()

        lockin.auto_gain.assert_not_called()


class TestBoundedWait:
    """Tests for the deadline and cancellation of the completion poll."""

    def test_timeout(self, no_sleep):
        lockin = mock_lockin(overloaded=True, complete=False)
        model = AutoRangeModel(lockin, poll_interval=0.1, timeout=0.0)

        with pytest.warns(OverloadWarning), pytest.raises(AutoRangeError) as excinfo:
            model.run()

        assert excinfo.value.kind is ErrorKind.TIMEOUT
        assert model.poll_count >= 1
        lockin.snap.assert_not_called()

    def test_cancel(self, no_sleep):
        lockin = mock_lockin(overloaded=True, complete=False)
        cancel = threading.Event()
        cancel.set()
        model = AutoRangeModel(lockin, timeout=None)

        with pytest.warns(OverloadWarning), pytest.raises(AutoRangeError) as excinfo:
            model.run(cancel_event=cancel)

        assert excinfo.value.kind is ErrorKind.CANCELLED
        lockin.auto_gain.assert_called_once()
        lockin.snap.assert_not_called()

    def test_timeout_from_config(self):
        model = AutoRangeModel(mock_lockin())
        assert model.timeout == 30.0
        assert model.poll_interval == 0.1
        assert model.settle_time == 0.5

    def test_no_timeout_polls_until_complete(self, no_sleep):
        lockin = mock_lockin(overloaded=True)
        lockin.is_command_complete.side_effect = [False, False, False, True]
        model = AutoRangeModel(lockin, timeout=None)

        with pytest.warns(OverloadWarning):
            model.run()

        assert model.poll_count == 4


class TestStatusMessages:
    """Tests for the user-tier status lines emitted during a run."""

    def test_recovery_reports_status(self, no_sleep, monkeypatch):
        messages = []
        monkeypatch.setattr(auto_range._logger, "status_callback", messages.append)

        with pytest.warns(OverloadWarning):
            AutoRangeModel(mock_lockin(overloaded=True)).run()

        assert messages == [
            "Lock-in overloaded, adjusting sensitivity...",
            "Lock-in sensitivity adjusted",
        ]

    def test_clean_run_is_quiet(self, no_sleep, monkeypatch):
        messages = []
        monkeypatch.setattr(auto_range._logger, "status_callback", messages.append)

        AutoRangeModel(mock_lockin(overloaded=False)).run()

        assert messages == []


def test_module_source_compiles_without_warnings():
    source = Path(auto_range.__file__).read_text()
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        compile(source, auto_range.__file__, "exec")
