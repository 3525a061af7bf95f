"""Application entry point for the challenge handler."""

from __future__ import annotations

import argparse
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint

import settings
from adapters.http_transport import serve
from adapters.memory_engine import RecencyEngine
from core.config import DEFAULT_INFO_HTML, EngineConfig, ServerConfig
from core.router import MESSAGE_LOGGER_NAME, MessageRouter

NAME = "CHALLENGE"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


def _resolve_path(path: str) -> str:
    if not os.path.isabs(path):
        path = os.path.join(settings.PROJECT_ROOT, path)
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    return path


def _rotating_handler(file_cfg: dict, default_path: str, formatter: logging.Formatter) -> RotatingFileHandler:
    path = _resolve_path(file_cfg.get("path", default_path))
    handler = RotatingFileHandler(
        path,
        maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(file_cfg.get("backup_count", 5)),
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    return handler


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        file_handler = _rotating_handler(file_cfg, "logs/challenge.log", formatter)
        file_handler.setLevel(level)
        handlers.append(file_handler)

    # Raw envelopes go to their own file as "type<TAB>body" lines, never to the console.
    message_logger = logging.getLogger(MESSAGE_LOGGER_NAME)
    message_logger.propagate = False
    message_cfg = config.get("message_log", {})
    if message_cfg.get("enabled", False):
        message_handler = _rotating_handler(message_cfg, "logs/messages.log", logging.Formatter("%(message)s"))
        message_logger.addHandler(message_handler)
        message_logger.setLevel(logging.INFO)
    else:
        message_logger.addHandler(logging.NullHandler())

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _build_router(message_logger: Optional[logging.Logger] = None) -> MessageRouter:
    engine = RecencyEngine(
        EngineConfig(
            history_size=settings.ENGINE_HISTORY_SIZE,
            default_limit=settings.ENGINE_DEFAULT_LIMIT,
        )
    )
    return MessageRouter(engine, message_logger=message_logger)


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting challenge handler")

    server_config = ServerConfig(
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        decode_form_body=settings.DECODE_FORM_BODY,
        info_html=settings.INFO_HTML or DEFAULT_INFO_HTML,
    )
    serve(_build_router(), server_config)


def replay(path: str, router: MessageRouter) -> tuple[int, int]:
    """Feed a message log through ``router``; return (replayed, answered)."""

    replayed = 0
    answered = 0
    with open(path, "r", encoding="utf-8") as handle:
        for line in handle:
            line = line.rstrip("\n")
            if "\t" not in line:
                continue
            message_type, body = line.split("\t", 1)
            replayed += 1
            if router.handle(message_type, body):
                answered += 1
    return replayed, answered


def _replay(path: str) -> None:
    _configure_logging()
    # Replayed envelopes must not be appended to the message log again.
    silent = logging.getLogger(f"{MESSAGE_LOGGER_NAME}.replay")
    silent.propagate = False
    silent.addHandler(logging.NullHandler())
    replayed, answered = replay(path, _build_router(message_logger=silent))
    print(f"Replayed {replayed} messages, {answered} produced a response body.")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="challenge")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Serve contest messages over HTTP")
    replay_parser = subparsers.add_parser(
        "replay",
        help="Feed a recorded message log through a fresh router.",
    )
    replay_parser.add_argument("path", help="Message log with one type<TAB>body line per envelope")

    args = parser.parse_args(argv)
    if args.command == "replay":
        _replay(args.path)
        return
    _run()


if __name__ == "__main__":
    main()
