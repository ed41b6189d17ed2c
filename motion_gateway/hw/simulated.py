"""
Simulated robot for dry-run mode and tests.
Integrates commands into an in-memory pose instead of moving hardware.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Any

from motion_gateway.hw.actuator import ActuatorError
from motion_gateway.messages import BatteryData, Position

logger = logging.getLogger(__name__)

# Distance covered by one drive call at full speed, metres
_DRIVE_STEP_M = 0.01
# Yaw change of one drive call at full angular speed, degrees
_DRIVE_STEP_DEG = 1.0


@dataclass
class ActuatorCall:
    name: str
    args: tuple[Any, ...]
    at: float = field(default_factory=time.monotonic)


class SimulatedActuator:
    def __init__(
        self,
        battery_level: int | None = 100,
        charging: bool = False,
        fail_on: set[str] | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._x = 0.0
        self._y = 0.0
        self._yaw = 0.0
        self._tilt = 0.0
        self.battery_level = battery_level
        self.charging = charging
        # Имена методов, которые бросают ActuatorError (инъекция сбоев)
        self.fail_on: set[str] = set(fail_on or ())
        self.calls: list[ActuatorCall] = []

    def _record(self, name: str, *args: Any) -> None:
        if name in self.fail_on:
            raise ActuatorError(f"simulated {name} failure")
        with self._lock:
            self.calls.append(ActuatorCall(name, args))

    def calls_to(self, name: str) -> list[ActuatorCall]:
        with self._lock:
            return [c for c in self.calls if c.name == name]

    def turn(self, degrees: int, speed: float) -> None:
        self._record("turn", degrees, speed)
        with self._lock:
            self._yaw = (self._yaw + degrees) % 360.0
        logger.debug("turn %d deg at %.2f", degrees, speed)

    def tilt(self, angle: int, speed: float) -> None:
        self._record("tilt", angle, speed)
        with self._lock:
            self._tilt = float(angle)
        logger.debug("tilt to %d deg at %.2f", angle, speed)

    def drive(self, speed_x: float, speed_y: float, smart: bool) -> None:
        self._record("drive", speed_x, speed_y, smart)
        with self._lock:
            heading = math.radians(self._yaw)
            self._x += speed_x * _DRIVE_STEP_M * math.cos(heading)
            self._y += speed_x * _DRIVE_STEP_M * math.sin(heading)
            self._yaw = (self._yaw + speed_y * _DRIVE_STEP_DEG) % 360.0

    def position(self) -> Position:
        self._record("position")
        with self._lock:
            return Position(x=self._x, y=self._y, yaw=self._yaw, tilt_angle=self._tilt)

    def battery(self) -> BatteryData | None:
        self._record("battery")
        if self.battery_level is None:
            return None
        return BatteryData(level=self.battery_level, is_charging=self.charging)
