"""
Axis state variants for the positioner.

An axis is in exactly one of three states:

    Disabled            servo off, no voltage applied by this driver
    ServoTracking(t)    closed loop following target t (mm, device frame)
    DirectVoltage(v)    closed loop off, DC voltage v applied

ServoTracking cannot exist without a target, and DirectVoltage cannot exist
with the servo on, so the controller only has to pick the next variant.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union


class AxisMode(Enum):
    """Operating mode of one axis."""
    DISABLED = "disabled"
    SERVO_TRACKING = "servo_tracking"
    DIRECT_VOLTAGE = "direct_voltage"


@dataclass(frozen=True)
class Disabled:
    @property
    def mode(self) -> AxisMode:
        return AxisMode.DISABLED


@dataclass(frozen=True)
class ServoTracking:
    target: float

    @property
    def mode(self) -> AxisMode:
        return AxisMode.SERVO_TRACKING


@dataclass(frozen=True)
class DirectVoltage:
    voltage: float

    @property
    def mode(self) -> AxisMode:
        return AxisMode.DIRECT_VOLTAGE


AxisState = Union[Disabled, ServoTracking, DirectVoltage]


def after_target_write(state: AxisState, target: float) -> AxisState:
    """
    State following a target write.

    Only a tracking axis adopts the new target; the hardware accepts the
    write in other modes but does not move.
    """
    if isinstance(state, ServoTracking):
        return ServoTracking(target)
    return state


def is_tracking(state: AxisState) -> bool:
    return isinstance(state, ServoTracking)
