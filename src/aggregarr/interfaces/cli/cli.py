from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
import uvicorn

from aggregarr.infrastructure.config import load_config
from aggregarr.infrastructure.logging.setup import configure_logging
from aggregarr.interfaces.app import create_app

log = structlog.get_logger(__name__)

_DEFAULT_HOST = "0.0.0.0"
_DEFAULT_PORT = 7979

# CLI flag (argparse dest) -> flat AppConfig field
_OVERRIDE_FLAGS: dict[str, str] = {
    "indexer_config": "indexer_config_path",
    "log_level": "log_level",
    "log_format": "log_format",
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aggregarr",
        description="Aggregated search across Newznab indexers.",
    )

    server = parser.add_argument_group("server")
    server.add_argument("--host", help="Bind host (default: $HOST or 0.0.0.0).")
    server.add_argument(
        "--port", type=int, help="Bind port (default: $PORT or 7979)."
    )

    files = parser.add_argument_group("configuration")
    files.add_argument("--config", type=Path, help="Path to YAML config file.")
    files.add_argument("--dotenv", type=Path, help="Path to .env file.")
    files.add_argument(
        "--indexer-config",
        help="Indexer settings file (overrides indexers.config_path).",
    )

    logging_group = parser.add_argument_group("logging")
    logging_group.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"]
    )
    logging_group.add_argument("--log-format", choices=["json", "console"])

    return parser


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    return _build_parser().parse_args(list(argv) if argv is not None else None)


def build_cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Flat config overrides for the flags that were given (highest precedence)."""
    return {
        field: getattr(args, dest)
        for dest, field in _OVERRIDE_FLAGS.items()
        if getattr(args, dest, None)
    }


def _bind_address(args: argparse.Namespace) -> tuple[str, int]:
    host = args.host or os.getenv("HOST") or _DEFAULT_HOST
    port = args.port or int(os.getenv("PORT") or _DEFAULT_PORT)
    return host, port


def start(argv: Iterable[str] | None = None) -> None:
    """Process entrypoint: load config once, then serve the app built from it."""
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    host, port = _bind_address(args)

    config = load_config(
        config_path=args.config,
        dotenv_path=args.dotenv,
        cli_overrides=build_cli_overrides(args),
    )
    log_config = configure_logging(config)

    log.info(
        "server_starting",
        host=host,
        port=port,
        environment=config.environment,
        indexer_config_path=str(config.indexer_config_path),
    )
    uvicorn.run(create_app(config), host=host, port=port, log_config=log_config)


if __name__ == "__main__":
    raise SystemExit(start())
