"""
Валидация команд и их передача в SDK робота.

Каждая операция возвращает ApiResult: Success или Error с HTTP кодом.
Ни одна команда с параметром вне диапазона не доходит до актуатора.
"""

import logging
from typing import Any

from motion_gateway import __version__
from motion_gateway.config import Config, config as default_config
from motion_gateway.errors import CommandValidationError, GatewayError
from motion_gateway.hw.actuator import Actuator, ActuatorError
from motion_gateway.messages import (
    ApiResult,
    BatteryData,
    DriveCommand,
    Error,
    Success,
    TiltCommand,
    TurnCommand,
)
from motion_gateway.nodes.drive import DriveNode

logger = logging.getLogger(__name__)

ENDPOINTS = ["/turn", "/tilt", "/drive", "/drive/stop", "/status"]


def _in_range(value: float, low: float, high: float) -> bool:
    # NaN fails every comparison, so it is rejected here too
    return low <= value <= high


def _positive_up_to(value: float, high: float) -> bool:
    return value > 0 and value <= high


class CommandDispatcher:
    def __init__(self, actuator: Actuator, drive_node: DriveNode, cfg: Config = default_config) -> None:
        self.actuator = actuator
        self.drive_node = drive_node
        self.limits = cfg.limits
        self.max_duration_ms = cfg.drive.max_duration_ms

    # -- validation ----------------------------------------------------------

    def _check_speed(self, speed: float) -> None:
        if not _positive_up_to(speed, self.limits.speed_max):
            raise CommandValidationError(
                "Invalid speed", f"Speed must be greater than 0 and at most {self.limits.speed_max:g}"
            )

    def validate_turn(self, cmd: TurnCommand) -> None:
        m = self.limits.turn_degrees_max
        if not _in_range(cmd.degrees, -m, m):
            raise CommandValidationError("Invalid degrees", f"Degrees must be between {-m:g} and {m:g}")
        self._check_speed(cmd.speed)

    def validate_tilt(self, cmd: TiltCommand) -> None:
        low, high = self.limits.tilt_angle_min, self.limits.tilt_angle_max
        if not _in_range(cmd.angle, low, high):
            raise CommandValidationError(
                "Invalid angle", f"Tilt angle must be between {low:g} and {high:g} degrees"
            )
        self._check_speed(cmd.speed)

    def validate_drive(self, cmd: DriveCommand) -> None:
        m = self.limits.drive_speed_max
        for name, value in (("speedX", cmd.speed_x), ("speedY", cmd.speed_y)):
            if not _in_range(value, -m, m):
                raise CommandValidationError(f"Invalid {name}", f"{name} must be between {-m:.1f} and {m:.1f}")
        if not _positive_up_to(cmd.duration_ms, self.max_duration_ms):
            raise CommandValidationError(
                "Invalid duration", f"Duration must be between 1 and {self.max_duration_ms} milliseconds"
            )

    # -- commands ------------------------------------------------------------

    def turn(self, cmd: TurnCommand) -> ApiResult:
        try:
            self.validate_turn(cmd)
            self.actuator.turn(int(cmd.degrees), cmd.speed)
        except GatewayError as exc:
            logger.info("Turn rejected: %s", exc)
            return exc.to_result()
        except ActuatorError as exc:
            logger.error("Turn failed: %s", exc)
            return Error(500, "Actuator error", str(exc))

        logger.info("Turn executed: %s deg at speed %s", cmd.degrees, cmd.speed)
        return Success("Turn command executed successfully", cmd.as_dict())

    def tilt(self, cmd: TiltCommand) -> ApiResult:
        try:
            self.validate_tilt(cmd)
            self.actuator.tilt(int(cmd.angle), cmd.speed)
        except GatewayError as exc:
            logger.info("Tilt rejected: %s", exc)
            return exc.to_result()
        except ActuatorError as exc:
            logger.error("Tilt failed: %s", exc)
            return Error(500, "Actuator error", str(exc))

        logger.info("Tilt executed: %s deg at speed %s", cmd.angle, cmd.speed)
        return Success("Tilt command executed successfully", cmd.as_dict())

    def drive(self, cmd: DriveCommand) -> ApiResult:
        """Start a background drive; must be called from the running event loop."""
        try:
            self.validate_drive(cmd)
            task = self.drive_node.start(cmd)
        except GatewayError as exc:
            logger.info("Drive rejected: %s", exc)
            return exc.to_result()

        logger.debug("Drive task %s spawned", task.id)
        return Success("Drive command started successfully", cmd.as_dict())

    def stop_drive(self) -> ApiResult:
        cancelled = self.drive_node.cancel_all("stop requested over HTTP")
        logger.info("Drive stop requested, %d task(s) cancelled", cancelled)
        return Success("Drive stopped", {"cancelled": cancelled})

    def status(self) -> ApiResult:
        try:
            position = self.actuator.position()
        except ActuatorError as exc:
            logger.error("Position read failed: %s", exc)
            return Error(500, "Failed to get robot status", str(exc))

        return Success(
            "Robot status retrieved successfully",
            {
                "position": position.as_dict(),
                "battery": self._read_battery().as_dict(),
                "drive": {"active": self.drive_node.snapshot()},
                "serverInfo": self.server_info(),
            },
        )

    def _read_battery(self) -> BatteryData:
        try:
            battery = self.actuator.battery()
        except ActuatorError as exc:
            logger.warning("Battery read failed: %s", exc)
            battery = None
        return battery if battery is not None else BatteryData(level=-1, is_charging=False)

    @staticmethod
    def server_info() -> dict[str, Any]:
        return {"version": __version__, "endpoints": list(ENDPOINTS)}
