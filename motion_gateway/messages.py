from dataclasses import dataclass
from enum import Enum
from typing import Any


class OverlapPolicy(str, Enum):
    CONCURRENT = "concurrent"  # both tasks call drive for their own windows
    REPLACE = "replace"  # last command wins, active task is cancelled
    REJECT = "reject"  # new command refused while one is in flight


class DriveState(str, Enum):
    STARTED = "started"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class TurnCommand:
    degrees: float  # -360..360
    speed: float = 1.0  # (0, 10]

    def as_dict(self) -> dict[str, Any]:
        return {"degrees": self.degrees, "speed": self.speed}


@dataclass(frozen=True)
class TiltCommand:
    angle: float  # -25..55
    speed: float = 1.0

    def as_dict(self) -> dict[str, Any]:
        return {"angle": self.angle, "speed": self.speed}


@dataclass(frozen=True)
class DriveCommand:
    speed_x: float  # linear velocity, normalized -1..1
    speed_y: float  # angular velocity, normalized -1..1
    duration_ms: int = 500
    smart: bool = True

    def as_dict(self) -> dict[str, Any]:
        return {
            "speedX": self.speed_x,
            "speedY": self.speed_y,
            "durationMs": self.duration_ms,
            "smart": self.smart,
        }


@dataclass
class Position:
    x: float
    y: float
    yaw: float
    tilt_angle: float

    def as_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "yaw": self.yaw, "tiltAngle": self.tilt_angle}


@dataclass
class BatteryData:
    level: int  # percent, -1 when unknown
    is_charging: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {"level": self.level, "isCharging": self.is_charging}


@dataclass
class DriveEvent:
    task_id: str
    state: DriveState
    command: DriveCommand
    ticks: int = 0
    detail: str | None = None


@dataclass
class Success:
    message: str
    data: Any = None

    def to_body(self) -> dict[str, Any]:
        return {"success": True, "message": self.message, "data": self.data}


@dataclass
class Error:
    code: int  # 400, 404 or 500
    message: str
    detail: str | None = None

    def to_body(self) -> dict[str, Any]:
        return {"success": False, "error": self.message, "details": self.detail}


ApiResult = Success | Error
