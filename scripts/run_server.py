"""Entry-point for running the live auction server.

Usage:
    python scripts/run_server.py
    python scripts/run_server.py --port 3001 --log-level DEBUG
    python scripts/run_server.py --console-logs
"""

from __future__ import annotations

import argparse

import uvicorn

from live_auction.api import create_app
from live_auction.config import get_settings
from live_auction.logging import configure_logging


def parse_args() -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Live auction server (REST + websocket)")
    parser.add_argument("--host", default=settings.api_host, help=f"Bind address (default: {settings.api_host})")
    parser.add_argument("--port", type=int, default=settings.api_port, help=f"Port (default: {settings.api_port})")
    parser.add_argument("--log-level", default=settings.log_level, help="Log level (default: from settings)")
    parser.add_argument(
        "--console-logs",
        action="store_true",
        help="Human readable log lines instead of JSON",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging(args.log_level, json_logs=not args.console_logs)

    settings = get_settings().model_copy(update={"api_host": args.host, "api_port": args.port})
    app = create_app(settings=settings)

    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
