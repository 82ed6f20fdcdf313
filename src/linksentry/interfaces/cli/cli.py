from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
import uvicorn

from linksentry.application.validation import parse_link_check_request
from linksentry.domain.exceptions import ConfigurationError, RequestValidationError
from linksentry.infrastructure.config import AppConfig, load_config
from linksentry.infrastructure.logging.setup import configure_logging
from linksentry.infrastructure.streaming import EventChannel, encode_event
from linksentry.interfaces.app import create_app
from linksentry.interfaces.composition import (
    build_link_check_use_case,
    create_http_client,
)

log = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_RUN_FAILED = 1
EXIT_INVALID_REQUEST = 2


def _add_config_flags(parser: argparse.ArgumentParser) -> None:
    # Config wiring flags (no business logic)
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file.",
    )
    parser.add_argument(
        "--dotenv",
        default=None,
        help="Path to .env file.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Override log format.",
    )


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="linksentry")
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument(
        "--host",
        default=None,
        help="Bind host (overrides HOST env).",
    )
    serve.add_argument(
        "--port",
        default=None,
        type=int,
        help="Bind port (overrides PORT env).",
    )
    _add_config_flags(serve)

    check = commands.add_parser(
        "check", help="Check a batch of URLs and print one JSON event per line."
    )
    check.add_argument(
        "--page-url",
        required=True,
        help="URL of the page the links were found on.",
    )
    check.add_argument("urls", nargs="+", help="Links to check.")
    _add_config_flags(check)

    return parser.parse_args(list(argv) if argv is not None else None)


def _load(args: argparse.Namespace, **defaults: Any) -> AppConfig:
    config_path = Path(args.config) if args.config else None
    dotenv_path = Path(args.dotenv) if args.dotenv else None

    cli_overrides: dict[str, Any] = dict(defaults)
    if args.log_level:
        cli_overrides["log_level"] = args.log_level
    if args.log_format:
        cli_overrides["log_format"] = args.log_format

    return load_config(
        config_path=config_path,
        dotenv_path=dotenv_path,
        cli_overrides=cli_overrides,
    )


async def run_check(config: AppConfig, urls: list[str], page_url: str) -> int:
    """Run one batch in-process, writing encoded events to stdout."""
    try:
        request = parse_link_check_request(
            {"urls": urls, "pageUrl": page_url},
            max_urls=config.link_check.max_urls,
        )
    except RequestValidationError as e:
        print(
            json.dumps(
                {
                    "error": "Invalid request payload",
                    "details": [err.to_payload() for err in e.errors],
                }
            ),
            file=sys.stderr,
        )
        return EXIT_INVALID_REQUEST

    async with create_http_client(config) as http_client:
        use_case = build_link_check_use_case(config, http_client)
        channel = EventChannel()
        run = asyncio.create_task(use_case.execute(request, channel))
        try:
            async for event in channel:
                print(encode_event(event), flush=True)
        finally:
            channel.close()
        outcome = await run

    return EXIT_OK if outcome is not None else EXIT_RUN_FAILED


def _serve(args: argparse.Namespace) -> int:
    host = args.host or os.getenv("HOST", "0.0.0.0")
    port = int(args.port or os.getenv("PORT", "8787"))

    config = _load(args)
    log_config = configure_logging(config)

    uvicorn.run(
        create_app(config),
        host=host,
        port=port,
        log_config=log_config,
    )
    return EXIT_OK


def _check(args: argparse.Namespace) -> int:
    # stdout carries the event stream; every log level goes to stderr.
    config = _load(args, log_level=args.log_level or "ERROR")
    configure_logging(config, stderr_only=True)
    return asyncio.run(run_check(config, list(args.urls), args.page_url))


def start(argv: Iterable[str] | None = None) -> int:
    """
    Process entrypoint.

    Config is loaded exactly once here, then handed to the server or the
    one-shot checker.
    """
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)
    try:
        if args.command == "serve":
            return _serve(args)
        return _check(args)
    except ConfigurationError as e:
        print(f"linksentry: {e}", file=sys.stderr)
        return EXIT_RUN_FAILED


if __name__ == "__main__":
    raise SystemExit(start())
