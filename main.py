import argparse
import logging

import uvicorn

from motion_gateway.config import load_config
from motion_gateway.messages import OverlapPolicy
from motion_gateway.web.server import create_app


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="REST gateway for robot movement commands")
    parser.add_argument("--host", default=None, help="Bind address (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Listen port (default: 7755)")
    parser.add_argument(
        "--overlap-policy",
        choices=[p.value for p in OverlapPolicy],
        default=None,
        help="What to do with a drive command that arrives while another one is running",
    )
    parser.add_argument("--max-concurrency", type=int, default=None, help="Requests handled at once")
    parser.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"])
    return parser.parse_args(argv)


def main() -> None:
    args = parse_args()

    # Configure logging for the entire application
    logging.basicConfig(
        level=logging.INFO,
        format="%(levelname)s:     %(name)s - %(message)s",
    )

    # Set log level for our app modules
    logging.getLogger("motion_gateway").setLevel(args.log_level.upper())

    cfg = load_config(
        host=args.host,
        port=args.port,
        overlap_policy=args.overlap_policy,
        max_concurrency=args.max_concurrency,
    )

    # Simulated robot until an SDK adapter is passed in
    app = create_app(cfg=cfg)

    uvicorn.run(
        app,
        host=cfg.server.host,
        port=cfg.server.port,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
