"""Mock transports and native library for testing."""

from .mock_controllers import (
    MockSerialTransport,
    MockANC350Library,
    DEFAULT_LOCKIN_REPLIES,
)
