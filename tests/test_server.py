"""Тесты HTTP контракта шлюза."""

from __future__ import annotations

import time
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from motion_gateway.config import Config, DriveConfig
from motion_gateway.hw.simulated import SimulatedActuator
from motion_gateway.web.server import create_app


@pytest.fixture
def actuator() -> SimulatedActuator:
    return SimulatedActuator()


@pytest.fixture
def client(actuator: SimulatedActuator) -> Iterator[TestClient]:
    with TestClient(create_app(actuator)) as test_client:
        yield test_client


def test_turn_scenario(client: TestClient, actuator: SimulatedActuator) -> None:
    response = client.post("/turn", json={"degrees": 90, "speed": 1.0})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Turn command executed successfully",
        "data": {"degrees": 90, "speed": 1.0},
    }
    # Целое значение уходит обратно без ".0"
    assert response.text == (
        '{"success":true,"message":"Turn command executed successfully",'
        '"data":{"degrees":90,"speed":1.0}}'
    )
    assert actuator.calls_to("turn")[0].args == (90, 1.0)


def test_turn_uses_default_speed(client: TestClient) -> None:
    response = client.post("/turn", json={"degrees": -45})

    assert response.status_code == 200
    assert response.json()["data"] == {"degrees": -45, "speed": 1.0}


@pytest.mark.parametrize("degrees", [-361, 360.5, 720])
def test_turn_invalid_degrees(client: TestClient, degrees: float) -> None:
    response = client.post("/turn", json={"degrees": degrees, "speed": 1.0})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Invalid degrees"


@pytest.mark.parametrize("path,payload", [("/turn", {"degrees": 10}), ("/tilt", {"angle": 10})])
@pytest.mark.parametrize("speed", [0, -0.5, 10.5])
def test_invalid_speed(client: TestClient, path: str, payload: dict, speed: float) -> None:
    response = client.post(path, json={**payload, "speed": speed})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid speed"


def test_tilt_scenario(client: TestClient, actuator: SimulatedActuator) -> None:
    response = client.post("/tilt", json={"angle": 100})

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "Invalid angle",
        "details": "Tilt angle must be between -25 and 55 degrees",
    }
    assert actuator.calls_to("tilt") == []


def test_tilt_success(client: TestClient) -> None:
    response = client.post("/tilt", json={"angle": 23.0, "speed": 2.0})

    assert response.status_code == 200
    assert response.json()["message"] == "Tilt command executed successfully"
    assert response.json()["data"] == {"angle": 23.0, "speed": 2.0}


@pytest.mark.parametrize(
    "payload,error",
    [
        ({"speedX": 1.5, "speedY": 0.0}, "Invalid speedX"),
        ({"speedX": 0.0, "speedY": -1.1}, "Invalid speedY"),
        ({"speedX": 0.0, "speedY": 0.0, "durationMs": 0}, "Invalid duration"),
        ({"speedX": 0.0, "speedY": 0.0, "durationMs": 20000}, "Invalid duration"),
    ],
)
def test_drive_invalid(client: TestClient, payload: dict, error: str) -> None:
    response = client.post("/drive", json=payload)

    assert response.status_code == 400
    assert response.json()["error"] == error


def test_drive_scenario(client: TestClient, actuator: SimulatedActuator) -> None:
    """Ответ приходит сразу, а SDK получает ~10 вызовов за 500 мс."""
    started = time.monotonic()
    response = client.post("/drive", json={"speedX": 0.5, "speedY": 0.0, "durationMs": 500, "smart": True})
    elapsed = time.monotonic() - started

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert "started" in body["message"]
    assert body["data"] == {"speedX": 0.5, "speedY": 0.0, "durationMs": 500, "smart": True}
    assert elapsed < 0.4

    time.sleep(0.8)
    calls = actuator.calls_to("drive")
    assert 9 <= len(calls) <= 11
    assert calls[0].args == (0.5, 0.0, True)


def test_drive_defaults(client: TestClient) -> None:
    response = client.post("/drive", json={"speedX": 0.1, "speedY": 0.1})

    assert response.status_code == 200
    assert response.json()["data"] == {"speedX": 0.1, "speedY": 0.1, "durationMs": 500, "smart": True}


def test_long_drive_does_not_block_request(client: TestClient) -> None:
    started = time.monotonic()
    response = client.post("/drive", json={"speedX": 0.2, "speedY": 0.0, "durationMs": 5000})

    assert response.status_code == 200
    assert time.monotonic() - started < 1.0


def test_drive_stop_cancels_running_drive(client: TestClient) -> None:
    client.post("/drive", json={"speedX": 0.2, "speedY": 0.0, "durationMs": 5000})
    time.sleep(0.1)

    status = client.get("/status").json()
    assert len(status["data"]["drive"]["active"]) == 1

    response = client.post("/drive/stop")
    assert response.status_code == 200
    assert response.json()["data"] == {"cancelled": 1}

    time.sleep(0.1)
    assert client.get("/status").json()["data"]["drive"]["active"] == []


def test_reject_policy_over_http(actuator: SimulatedActuator) -> None:
    cfg = Config(drive=DriveConfig(overlap_policy="reject"))
    with TestClient(create_app(actuator, cfg)) as client:
        first = client.post("/drive", json={"speedX": 0.2, "speedY": 0.0, "durationMs": 3000})
        second = client.post("/drive", json={"speedX": 0.2, "speedY": 0.0, "durationMs": 3000})

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json()["error"] == "Drive command in progress"


@pytest.mark.parametrize("path", ["/turn", "/tilt", "/drive"])
@pytest.mark.parametrize("body", ["{not json", '{"degrees": ', "[1, 2, 3]", '"text"'])
def test_malformed_json_is_400(client: TestClient, path: str, body: str) -> None:
    """Битый JSON на любом POST даёт 400 с описанием ожидаемого формата."""
    response = client.post(path, content=body, headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    payload = response.json()
    assert payload["success"] is False
    assert payload["error"] == "Invalid JSON format"
    assert payload["details"].startswith("Expected: {")


def test_missing_field_is_400(client: TestClient) -> None:
    response = client.post("/turn", json={"speed": 1.0})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"
    assert "degrees" in response.json()["details"]


def test_wrong_type_is_400(client: TestClient) -> None:
    response = client.post("/drive", json={"speedX": "fast", "speedY": 0.0})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"


@pytest.mark.parametrize(
    ("path", "payload", "field"),
    [
        ("/turn", {"degrees": 90}, "degrees"),
        ("/turn", {"degrees": 90}, "speed"),
        ("/tilt", {"angle": 10}, "angle"),
        ("/tilt", {"angle": 10}, "speed"),
        ("/drive", {"speedX": 0.1, "speedY": 0.0}, "speedX"),
        ("/drive", {"speedX": 0.1, "speedY": 0.0}, "speedY"),
        ("/drive", {"speedX": 0.1, "speedY": 0.0}, "durationMs"),
    ],
)
@pytest.mark.parametrize("value", [True, "90", "0.5"])
def test_numeric_field_rejects_non_numbers(
    client: TestClient, actuator: SimulatedActuator, path: str, payload: dict, field: str, value: object
) -> None:
    """Булевы значения и числа в строках не приводятся к числу и не доходят до SDK."""
    response = client.post(path, json={**payload, field: value})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"
    assert field in response.json()["details"]
    assert [c.name for c in actuator.calls if c.name in ("turn", "tilt", "drive")] == []


def test_smart_flag_must_be_boolean(client: TestClient) -> None:
    response = client.post("/drive", json={"speedX": 0.1, "speedY": 0.0, "smart": "yes"})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"


def test_empty_body_is_400(client: TestClient) -> None:
    response = client.post("/tilt")

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"


@pytest.mark.parametrize(("method", "path"), [("GET", "/nope"), ("GET", "/turn"), ("DELETE", "/status"), ("POST", "/")])
def test_unknown_route_is_404(client: TestClient, method: str, path: str) -> None:
    response = client.request(method, path)

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Endpoint not found"
    for endpoint in ("POST /turn", "POST /tilt", "POST /drive", "GET /status"):
        assert endpoint in body["details"]


def test_status(client: TestClient) -> None:
    response = client.get("/status")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Robot status retrieved successfully"
    assert set(body["data"]["position"]) == {"x", "y", "yaw", "tiltAngle"}
    assert body["data"]["battery"] == {"level": 100, "isCharging": False}
    assert body["data"]["serverInfo"]["version"] == "1.0.0"


def test_status_is_idempotent(client: TestClient) -> None:
    first = client.get("/status").json()["data"]
    second = client.get("/status").json()["data"]

    assert first["position"] == second["position"]
    assert first["battery"] == second["battery"]


def test_status_without_battery() -> None:
    with TestClient(create_app(SimulatedActuator(battery_level=None))) as client:
        response = client.get("/status")

    assert response.status_code == 200
    assert response.json()["data"]["battery"] == {"level": -1, "isCharging": False}


def test_status_position_failure_is_500() -> None:
    with TestClient(create_app(SimulatedActuator(fail_on={"position"}))) as client:
        response = client.get("/status")

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Failed to get robot status",
        "details": "simulated position failure",
    }


def test_actuator_fault_is_500(actuator: SimulatedActuator, client: TestClient) -> None:
    actuator.fail_on.add("turn")

    response = client.post("/turn", json={"degrees": 10})

    assert response.status_code == 500
    assert response.json()["error"] == "Actuator error"


def test_unhandled_error_is_500_and_server_survives(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    """Необработанное исключение даёт 500 JSON, следующий запрос обслуживается."""
    dispatcher = client.app.state.dispatcher

    def boom(cmd: object) -> None:
        raise RuntimeError("boom")

    monkeypatch.setattr(dispatcher, "tilt", boom)

    response = client.post("/tilt", json={"angle": 10})
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal server error", "details": "boom"}

    assert client.get("/status").status_code == 200


def test_root_serves_html_docs(client: TestClient) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    for path in ("/turn", "/tilt", "/drive", "/status"):
        assert path in response.text
    assert "-25 to 55 degrees" in response.text


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_shutdown_cancels_drive(actuator: SimulatedActuator) -> None:
    """Остановка приложения прерывает активный drive."""
    app = create_app(actuator)
    with TestClient(app) as client:
        client.post("/drive", json={"speedX": 0.2, "speedY": 0.0, "durationMs": 5000})
        time.sleep(0.1)

    calls = len(actuator.calls_to("drive"))
    time.sleep(0.2)
    assert len(actuator.calls_to("drive")) == calls
    assert app.state.drive_node.active() == []
