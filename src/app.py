"""Application entry point for the greet-and-react service."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import re
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.client_registry import SlackClientRegistry
from adapters.sqlite_storage import SQLiteStorage
from adapters.web_server import WebServer
from client import load_credentials
from core.commands import CommandProcessor
from core.config import CommandConfig, OAuthConfig, ServerConfig
from core.dispatcher import ReactionDispatcher
from core.processor import EventIngress
from core.rules_engine import RuleMatcher
from core.subscriptions import SubscriptionStore

NAME = "GREET & REACT"
FONT = "small"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


# Bot and user tokens issued by the install flow.
_SLACK_TOKEN_RE = re.compile(r"xox[abposr]-[A-Za-z0-9-]+")


class _RedactingFormatter(logging.Formatter):
    """Mask configured secrets and any Slack token in formatted records."""

    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return _SLACK_TOKEN_RE.sub("xox*-***", message)


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


def _configure_logging() -> None:
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

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/greet_and_react.log")
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


def _open_storage() -> SQLiteStorage:
    directory = os.path.dirname(settings.DB_PATH)
    if directory:
        os.makedirs(directory, exist_ok=True)
    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    return storage


def _build_server(storage: SQLiteStorage) -> WebServer:
    credentials = load_credentials()

    store = SubscriptionStore(storage)
    registry = SlackClientRegistry(storage)
    ingress = EventIngress(
        registry=registry,
        matcher=RuleMatcher(store),
        dispatcher=ReactionDispatcher(),
    )
    commands = CommandProcessor(
        store,
        CommandConfig(watch=settings.WATCH_COMMAND, unwatch=settings.UNWATCH_COMMAND),
    )

    oauth_config = None
    if credentials.can_install:
        oauth_config = OAuthConfig(
            client_id=credentials.client_id,
            client_secret=credentials.client_secret,
            scopes=settings.OAUTH_SCOPES,
            redirect_uri=settings.OAUTH_REDIRECT_URI,
            state_dir=settings.OAUTH_STATE_DIR,
            state_ttl_seconds=settings.OAUTH_STATE_TTL_SECONDS,
        )

    return WebServer(
        ingress=ingress,
        commands=commands,
        registry=registry,
        storage=storage,
        signing_secret=credentials.signing_secret,
        server_config=ServerConfig(host=settings.HOST, port=settings.PORT),
        oauth_config=oauth_config,
    )


async def _serve(server: WebServer) -> None:
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting greet-and-react")
    storage = _open_storage()
    server = _build_server(storage)
    logger.info(
        "Commands: watch=%s unwatch=%s",
        settings.WATCH_COMMAND,
        settings.UNWATCH_COMMAND,
    )

    try:
        asyncio.run(_serve(server))
    except KeyboardInterrupt:
        logger.info("Shutting down")


def _show_rules(team_id: Optional[str]) -> None:
    storage = _open_storage()
    if team_id is None:
        for team in sorted(storage.list_teams()):
            print(team)
        return

    store = SubscriptionStore(storage)
    document = asyncio.run(store.snapshot(team_id))
    print(json.dumps(document, indent=2, sort_keys=True))


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="greet-and-react")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the Slack HTTP service")
    rules_parser = subparsers.add_parser(
        "rules",
        help="Print the stored rules for a team, or list teams with rules.",
    )
    rules_parser.add_argument("team_id", nargs="?", help="Slack team id, e.g. T0123ABCD")

    args = parser.parse_args(argv)
    if args.command == "rules":
        _show_rules(args.team_id)
        return
    _run()


if __name__ == "__main__":
    main()
