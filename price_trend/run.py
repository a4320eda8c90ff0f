"""
Server runner.

Usage:
    price-trend --working-dir data --listen-addr 0.0.0.0:8080

Command-line flags override the matching environment variables (and .env).
"""

import argparse
import logging
import os
import sys

import uvicorn

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# flag dest -> environment variable read by price_trend.config
_ENV_OVERRIDES = {
    "working_dir": "WORKING_DIR",
    "listen_addr": "LISTEN_ADDR",
    "database_url": "DATABASE_URL",
    "history_file": "HISTORY_FILE",
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="price-trend",
        description="Tracks one price series and serves resampled slices of it.",
    )
    parser.add_argument(
        "-w",
        "--working-dir",
        help="Directory holding history/, static/ and the default SQLite database",
    )
    parser.add_argument(
        "-l",
        "--listen-addr",
        help="host:port to listen on. Use 0.0.0.0 for the host to listen on all interfaces.",
    )
    parser.add_argument("--database-url", help="SQLAlchemy URL of the price database")
    parser.add_argument("--history-file", help="Bulk timestamp,price file used to seed an empty database")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument("--log-file", help="Also write log records to this file")
    return parser


def apply_overrides(args: argparse.Namespace) -> None:
    for dest, env_name in _ENV_OVERRIDES.items():
        value = getattr(args, dest, None)
        if value:
            os.environ[env_name] = value


def setup_logging(level: str, log_file: str = "") -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


def main(argv=None) -> None:
    """Run the API server (bootstrap + updater start in the app's startup hook)."""
    args = build_parser().parse_args(argv)
    apply_overrides(args)

    # Imported after the overrides so they are visible to get_settings().
    from price_trend.config import get_settings

    try:
        settings = get_settings()
    except RuntimeError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    setup_logging(settings.log_level, settings.log_file)
    logger = logging.getLogger("run")
    logger.info("Starting price-trend on %s:%d", settings.listen_host, settings.listen_port)

    uvicorn.run(
        "price_trend.main:app",
        host=settings.listen_host,
        port=settings.listen_port,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    main()
