"""
Pytest configuration and shared fixtures for the instrument driver tests.

This file provides:
- Mock transports and a mock native library
- Connected controllers built on those mocks
- A patch that removes real waits from the auto-ranging protocol
"""

from unittest.mock import patch

import pytest

from lockin.controllers.sr830_lockin import SR830Controller
from positioner.controllers.anc350_positioner import ANC350Controller
from tests.mocks.mock_controllers import MockSerialTransport, MockANC350Library


# ==================== Lock-in fixtures ====================

@pytest.fixture
def mock_transport():
    """Mock serial transport with default replies."""
    return MockSerialTransport()


@pytest.fixture
def lockin(mock_transport):
    """SR830 controller connected through the mock transport."""
    controller = SR830Controller(transport=mock_transport)
    controller.connect()
    yield controller
    controller.disconnect()


@pytest.fixture
def no_sleep():
    """Replace time.sleep inside the auto-ranging model with a recording mock."""
    with patch("lockin.models.auto_range.time.sleep") as sleep:
        yield sleep


# ==================== Positioner fixtures ====================

@pytest.fixture
def mock_library():
    """Mock native library with one device and three axes."""
    return MockANC350Library()


@pytest.fixture
def positioner(mock_library):
    """ANC350 controller connected and brought up; bring-up calls are cleared."""
    controller = ANC350Controller(library=mock_library)
    controller.connect()
    mock_library.calls.clear()
    yield controller
    controller.disconnect()
