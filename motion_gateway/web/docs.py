"""HTML page with API documentation served on GET /."""

from dataclasses import dataclass
from html import escape

from motion_gateway.config import Config

TURN_EXAMPLE = '{"degrees": 90.0, "speed": 1.0}'
TILT_EXAMPLE = '{"angle": 23.0, "speed": 1.0}'
DRIVE_EXAMPLE = '{"speedX": 0.5, "speedY": 0.0, "durationMs": 500, "smart": true}'


@dataclass(frozen=True)
class Route:
    method: str
    path: str
    summary: str
    body: str | None = None


def routes(cfg: Config) -> list[Route]:
    lim = cfg.limits
    drive = cfg.drive
    speed = f"Speed (0 to {lim.speed_max:g}, optional, default: {lim.default_speed:g})"
    return [
        Route(
            "POST",
            "/turn",
            "Turn the robot by specified degrees",
            "{\n"
            f'  "degrees": 90.0,    // Degrees to turn ({-lim.turn_degrees_max:g} to {lim.turn_degrees_max:g})\n'
            f'  "speed": 1.0        // {speed}\n'
            "}",
        ),
        Route(
            "POST",
            "/tilt",
            "Tilt the robot head to specified angle",
            "{\n"
            f'  "angle": 23.0,      // Tilt angle ({lim.tilt_angle_min:g} to {lim.tilt_angle_max:g} degrees)\n'
            f'  "speed": 1.0        // {speed}\n'
            "}",
        ),
        Route(
            "POST",
            "/drive",
            "Drive with linear/angular velocity for a duration, returns immediately",
            "{\n"
            f'  "speedX": 0.5,      // Linear velocity (-{lim.drive_speed_max:.1f} to {lim.drive_speed_max:.1f})\n'
            f'  "speedY": 0.0,      // Angular velocity (-{lim.drive_speed_max:.1f} to {lim.drive_speed_max:.1f})\n'
            f'  "durationMs": 500,  // Duration in milliseconds (1 to {drive.max_duration_ms}, '
            f"optional, default: {drive.default_duration_ms})\n"
            '  "smart": true       // Use smart movement (optional, default: true)\n'
            "}",
        ),
        Route("POST", "/drive/stop", "Cancel drive commands that are still running"),
        Route("GET", "/status", "Get current robot status (position, battery, active drives)"),
        Route("GET", "/health", "Liveness check"),
        Route("GET", "/", "This page"),
    ]


def render_docs(cfg: Config) -> str:
    blocks = []
    for route in routes(cfg):
        body = f"<pre>{escape(route.body)}</pre>" if route.body else ""
        blocks.append(
            '<div class="endpoint">'
            f'<h3><span class="method">{route.method}</span> <span class="path">{route.path}</span></h3>'
            f"<p>{escape(route.summary)}</p>{body}</div>"
        )

    example = (
        f"curl -X POST http://ROBOT_IP:{cfg.server.port}/turn \\\n"
        '  -H "Content-Type: application/json" \\\n'
        "  -d '{\"degrees\": 90, \"speed\": 1.0}'"
    )
    content = "\n    ".join(blocks)
    return f"""<!DOCTYPE html>
<html>
<head>
    <title>Robot Movement API</title>
    <style>
        body {{ font-family: Arial, sans-serif; margin: 40px; }}
        .endpoint {{ background: #f5f5f5; padding: 20px; margin: 10px 0; border-radius: 5px; }}
        .method {{ color: #2196F3; font-weight: bold; }}
        .path {{ color: #4CAF50; font-weight: bold; }}
        pre {{ background: #333; color: #fff; padding: 10px; border-radius: 3px; overflow-x: auto; }}
    </style>
</head>
<body>
    <h1>Robot Movement API</h1>
    <p>REST API for controlling robot movement remotely.</p>
    {content}
    <h3>Example Usage</h3>
    <pre>{escape(example)}</pre>
</body>
</html>
"""
