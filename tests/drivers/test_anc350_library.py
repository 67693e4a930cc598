"""
Tests for the ANC350 ctypes binding.

The native library is replaced by a MagicMock; side effects write into the
ctypes output parameters the way the vendor library does.
"""

from unittest.mock import MagicMock, patch

import pytest

from common.errors import ErrorKind
from positioner.drivers import anc350_library
from positioner.drivers.anc350_library import ANC350Library, LibraryLoadError


@pytest.fixture
def dll():
    return MagicMock()


@pytest.fixture
def library(dll):
    with patch.object(anc350_library, "_load_library", return_value=dll):
        yield ANC350Library("anc350v4").load()


class TestLoad:
    """Tests for loading the native library."""

    def test_load_declares_return_types(self, library, dll):
        assert library.is_loaded
        assert dll.ANC_discover.restype is anc350_library.c_int
        assert len(dll.ANC_getAxisStatus.argtypes) == 9

    def test_load_is_cached(self, dll):
        with patch.object(anc350_library, "_load_library", return_value=dll) as load:
            library = ANC350Library()
            library.load()
            library.load()
        load.assert_called_once_with("anc350v4")

    def test_missing_library(self):
        loader = "WinDLL" if anc350_library.os.name == 'nt' else "CDLL"
        with patch.object(anc350_library.ctypes, loader, side_effect=OSError("not found")):
            with pytest.raises(LibraryLoadError) as excinfo:
                ANC350Library("/opt/missing/libanc350v4.so").load()
        assert excinfo.value.kind is ErrorKind.DRIVER_ACCESS_ERROR


class TestCalls:
    """Tests for unpacking output parameters."""

    def test_discover(self, library, dll):
        def fake_discover(interfaces, count_ref):
            count_ref._obj.value = 1
            return 0

        dll.ANC_discover.side_effect = fake_discover
        assert library.discover(1) == (0, 1)

    def test_get_position(self, library, dll):
        def fake_position(handle, axis, position_ref):
            position_ref._obj.value = 1.5e-3
            return 0

        dll.ANC_getPosition.side_effect = fake_position
        code, position = library.get_position(0x5EED, 0)
        assert code == 0
        assert position == pytest.approx(1.5e-3)

    def test_get_axis_status(self, library, dll):
        def fake_status(handle, axis, *flag_refs):
            flag_refs[0]._obj.value = 1
            flag_refs[1]._obj.value = 1
            return 0

        dll.ANC_getAxisStatus.side_effect = fake_status
        code, flags = library.get_axis_status(0x5EED, 2)
        assert code == 0
        assert flags == (True, True, False, False, False, False, False)

    def test_return_code_passed_through(self, library, dll):
        dll.ANC_setDcVoltage.return_value = 11
        assert library.set_dc_voltage(0x5EED, 0, 70.0) == 11

    def test_start_auto_move_flags_as_ints(self, library, dll):
        dll.ANC_startAutoMove.return_value = 0
        library.start_auto_move(0x5EED, 1, True, False)
        args = dll.ANC_startAutoMove.call_args.args
        assert args[1:] == (1, 1, 0)
