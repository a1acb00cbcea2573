"""Application entry point for cargoscope."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from core.errors import CargoscopeError, ConfigurationError

NAME = "CARGOSCOPE"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(console: bool = True) -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    # The console TUI owns the terminal, so stream logging is off there.
    if console and config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/cargoscope.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


async def _run_worker() -> None:
    from services import build_services

    logger = logging.getLogger(__name__)
    services = build_services()
    await services.start()
    logger.info(
        "Worker started: interval=%ss, fetch timeout=%ss",
        services.sync_config.interval_seconds,
        services.sync_config.fetch_timeout_seconds,
    )
    try:
        await services.worker.run_forever(run_on_start=services.sync_config.run_on_start)
    finally:
        await services.close()


def _run() -> None:
    _print_banner()
    _configure_logging()
    logging.getLogger(__name__).info("Starting cargoscope")
    try:
        asyncio.run(_run_worker())
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Stopped")
    except ConfigurationError as exc:
        logging.getLogger(__name__).error("Cannot start: %s", exc)
        raise SystemExit(1)


def _sync_once() -> int:
    """Single reconciliation pass for cron-style scheduling."""

    from services import build_services

    _configure_logging()
    logger = logging.getLogger(__name__)
    services = build_services(with_publisher=False)
    try:
        result = asyncio.run(services.reconciler.run_full_sync())
    except CargoscopeError as exc:
        logger.error("Sync failed: %s", exc)
        print(f"sync failed: {exc}", file=sys.stderr)
        return 1
    print(f"queued={result.newly_queued} evicted={result.evicted}")
    return 0


def _console() -> None:
    from frontend.app import ModerationApp
    from services import build_services

    _configure_logging(console=False)
    ModerationApp(build_services()).run()


def _login() -> None:
    _print_banner()
    _configure_logging()
    from client import build_client
    from get_session import login

    async def _run_login() -> None:
        await login(build_client())

    try:
        asyncio.run(_run_login())
    except ConfigurationError as exc:
        logging.getLogger(__name__).error("Cannot log in: %s", exc)
        raise SystemExit(1)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="cargoscope")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the sync worker")
    subparsers.add_parser("sync", help="Run one full sync and exit")
    subparsers.add_parser("console", help="Launch the moderation console")
    subparsers.add_parser("login", help="Authorize the Telegram session used by publishing.method=client")

    args = parser.parse_args(argv)
    if args.command == "sync":
        raise SystemExit(_sync_once())
    if args.command == "console":
        _console()
        return
    if args.command == "login":
        _login()
        return
    _run()


if __name__ == "__main__":
    main()
