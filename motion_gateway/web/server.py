import asyncio
import json
import logging
from typing import Any, TypeVar

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from motion_gateway import __version__
from motion_gateway.bus import EventBus
from motion_gateway.config import Config, config
from motion_gateway.dispatcher import CommandDispatcher
from motion_gateway.errors import CommandValidationError, GatewayError, InternalError, ParseError, RouteNotFound
from motion_gateway.hw.actuator import Actuator
from motion_gateway.hw.simulated import SimulatedActuator
from motion_gateway.messages import ApiResult, DriveCommand, DriveEvent, Success, TiltCommand, TurnCommand
from motion_gateway.nodes.drive import DriveNode
from motion_gateway.web.docs import DRIVE_EXAMPLE, TILT_EXAMPLE, TURN_EXAMPLE, render_docs, routes

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


# Strict mode: JSON true or "90" is not a number. int | float keeps 90 as 90 in the echo.
class TurnRequest(BaseModel):
    model_config = ConfigDict(strict=True)

    degrees: int | float
    speed: int | float | None = None


class TiltRequest(BaseModel):
    model_config = ConfigDict(strict=True)

    angle: int | float
    speed: int | float | None = None


class DriveRequest(BaseModel):
    model_config = ConfigDict(strict=True)

    speed_x: int | float = Field(alias="speedX")
    speed_y: int | float = Field(alias="speedY")
    duration_ms: int | None = Field(None, alias="durationMs")
    smart: bool = True


async def _read_json(request: Request, example: str) -> dict[str, Any]:
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        raise ParseError(details=f"Expected: {example}") from None
    if not isinstance(data, dict):
        raise ParseError(details=f"Expected: {example}")
    return data


def _parse(model: type[M], data: dict[str, Any], example: str) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise CommandValidationError(details=f"{problems}. Expected: {example}") from None


def _respond(result: ApiResult) -> JSONResponse:
    if isinstance(result, Success):
        return JSONResponse(result.to_body())
    return JSONResponse(result.to_body(), status_code=result.code)


async def _log_drive_failure(event: DriveEvent) -> None:
    logger.warning("Drive %s failed after %d ticks: %s", event.task_id, event.ticks, event.detail)


def create_app(actuator: Actuator | None = None, cfg: Config = config) -> FastAPI:
    """
    Собрать FastAPI приложение.

    Args:
        actuator: SDK робота; по умолчанию симулятор
        cfg: Конфигурация приложения
    """
    actuator = actuator if actuator is not None else SimulatedActuator()
    bus = EventBus()
    drive_node = DriveNode(actuator, bus, cfg.drive.tick_interval_s, cfg.drive.overlap_policy)
    dispatcher = CommandDispatcher(actuator, drive_node, cfg)
    limiter = asyncio.Semaphore(cfg.server.max_concurrency)
    available = "Available endpoints: " + ", ".join(f"{r.method} {r.path}" for r in routes(cfg))

    app = FastAPI(title="Robot Movement API", version=__version__, docs_url=None, redoc_url=None, openapi_url=None)
    app.state.actuator = actuator
    app.state.bus = bus
    app.state.drive_node = drive_node
    app.state.dispatcher = dispatcher

    @app.middleware("http")
    async def guard(request: Request, call_next: Any) -> Response:
        logger.debug("Received request: %s %s", request.method, request.url.path)
        async with limiter:
            try:
                return await call_next(request)
            except Exception as exc:
                logger.exception("Error handling %s %s", request.method, request.url.path)
                return _respond(InternalError(details=str(exc)).to_result())

    @app.exception_handler(GatewayError)
    async def on_gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
        return _respond(exc.to_result())

    @app.exception_handler(StarletteHTTPException)
    async def on_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Неизвестный путь и известный путь с другим методом одинаково дают 404
        if exc.status_code in (404, 405):
            return _respond(RouteNotFound(details=available).to_result())
        return JSONResponse(
            {"success": False, "error": str(exc.detail), "details": None}, status_code=exc.status_code
        )

    @app.on_event("startup")
    async def on_startup() -> None:
        await bus.subscribe("drive/failed", _log_drive_failure)
        logger.info("Robot Movement API %s ready, drive overlap policy: %s", __version__, drive_node.policy.value)

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        await drive_node.shutdown()

    @app.get("/", response_class=HTMLResponse)
    async def index() -> HTMLResponse:
        return HTMLResponse(render_docs(cfg))

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/status")
    async def status() -> JSONResponse:
        return _respond(dispatcher.status())

    @app.post("/turn")
    async def turn(request: Request) -> JSONResponse:
        req = _parse(TurnRequest, await _read_json(request, TURN_EXAMPLE), TURN_EXAMPLE)
        speed = cfg.limits.default_speed if req.speed is None else req.speed
        return _respond(dispatcher.turn(TurnCommand(degrees=req.degrees, speed=speed)))

    @app.post("/tilt")
    async def tilt(request: Request) -> JSONResponse:
        req = _parse(TiltRequest, await _read_json(request, TILT_EXAMPLE), TILT_EXAMPLE)
        speed = cfg.limits.default_speed if req.speed is None else req.speed
        return _respond(dispatcher.tilt(TiltCommand(angle=req.angle, speed=speed)))

    @app.post("/drive")
    async def drive(request: Request) -> JSONResponse:
        req = _parse(DriveRequest, await _read_json(request, DRIVE_EXAMPLE), DRIVE_EXAMPLE)
        duration_ms = cfg.drive.default_duration_ms if req.duration_ms is None else req.duration_ms
        cmd = DriveCommand(speed_x=req.speed_x, speed_y=req.speed_y, duration_ms=duration_ms, smart=req.smart)
        return _respond(dispatcher.drive(cmd))

    @app.post("/drive/stop")
    async def drive_stop() -> JSONResponse:
        return _respond(dispatcher.stop_drive())

    return app
