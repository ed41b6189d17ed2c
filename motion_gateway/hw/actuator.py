"""
Интерфейс исполнительного устройства робота.
Реальная реализация оборачивает SDK производителя, для разработки и тестов есть SimulatedActuator.
"""

from typing import Protocol

from motion_gateway.messages import BatteryData, Position


class ActuatorError(Exception):
    """Raised when the robot SDK call fails or the robot is unreachable."""


class Actuator(Protocol):
    """
    Интерфейс SDK робота.

    turn/tilt только ставят движение в очередь и возвращаются сразу.
    drive нужно вызывать повторно с фиксированным периодом всё время движения.
    """

    def turn(self, degrees: int, speed: float) -> None:
        ...

    def tilt(self, angle: int, speed: float) -> None:
        ...

    def drive(self, speed_x: float, speed_y: float, smart: bool) -> None:
        ...

    def position(self) -> Position:
        ...

    def battery(self) -> BatteryData | None:
        """
        Прочитать состояние батареи.

        Returns:
            BatteryData или None, если SDK не отдал данные
        """
        ...
