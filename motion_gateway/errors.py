"""Ошибки шлюза и их отображение в HTTP статусы."""

from motion_gateway.messages import Error


class GatewayError(Exception):
    """Базовая ошибка, которая всегда превращается в структурированный JSON ответ."""

    status_code = 500
    error = "Internal server error"

    def __init__(self, error: str | None = None, details: str | None = None) -> None:
        self.error = error or self.error
        self.details = details
        super().__init__(f"{self.error}: {details}" if details else self.error)

    def to_result(self) -> Error:
        return Error(code=self.status_code, message=self.error, detail=self.details)


class CommandValidationError(GatewayError):
    """Параметр вне допустимого диапазона или неверного типа."""

    status_code = 400
    error = "Invalid request"


class ParseError(GatewayError):
    """Тело запроса не является JSON объектом."""

    status_code = 400
    error = "Invalid JSON format"


class RouteNotFound(GatewayError):
    status_code = 404
    error = "Endpoint not found"


class DriveBusyError(GatewayError):
    """Drive отклонён политикой reject, пока выполняется предыдущий."""

    status_code = 400
    error = "Drive command in progress"


class InternalError(GatewayError):
    pass
