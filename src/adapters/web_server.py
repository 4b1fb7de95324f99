"""HTTP surface for Slack.

Uses aiohttp for async web serving. Every Slack callback is verified against
the signing secret before it reaches the core. Message events are acknowledged
immediately and processed in background tasks, since Slack expects an answer
within three seconds.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

from aiohttp import web
from slack_sdk.errors import SlackApiError
from slack_sdk.oauth import AuthorizeUrlGenerator
from slack_sdk.oauth.state_store import FileOAuthStateStore
from slack_sdk.signature import SignatureVerifier
from slack_sdk.web.async_client import AsyncWebClient

from adapters.client_registry import SlackClientRegistry
from adapters.slack_mapper import command_from_form, event_from_payload
from adapters.sqlite_storage import SQLiteStorage
from core.commands import CommandProcessor
from core.config import OAuthConfig, ServerConfig
from core.errors import StorageError, ValidationError
from core.processor import EventIngress

logger = logging.getLogger(__name__)

LANDING_PAGE = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>Greet and React</title></head>
<body>
  <h1>Greet and React</h1>
  <p><a href="/slack/install"><img alt="Add to Slack" height="40" width="139"
    src="https://platform.slack-edge.com/img/add_to_slack.png"></a></p>
</body>
</html>
"""
INSTALL_OK = "<p>Greet and React was successfully installed on your team.</p>"
INSTALL_FAILED = "<p>Greet and React failed to install.</p>"


class WebServer:
    """aiohttp application exposing the Slack endpoints."""

    def __init__(
        self,
        ingress: EventIngress,
        commands: CommandProcessor,
        registry: SlackClientRegistry,
        storage: SQLiteStorage,
        signing_secret: str,
        server_config: ServerConfig,
        oauth_config: Optional[OAuthConfig] = None,
    ) -> None:
        self.ingress = ingress
        self.commands = commands
        self.registry = registry
        self.storage = storage
        self.host = server_config.host
        self.port = server_config.port
        self.oauth_config = oauth_config
        self.verifier = SignatureVerifier(signing_secret)
        self.app = web.Application()
        self.runner: Optional[web.AppRunner] = None
        self._tasks: set[asyncio.Task] = set()
        self._state_store: Optional[FileOAuthStateStore] = None
        self._authorize_url: Optional[AuthorizeUrlGenerator] = None

        self._setup_routes()

    def _setup_routes(self) -> None:
        """Set up all web routes."""
        self.app.router.add_get("/", self.handle_index)
        self.app.router.add_post("/slack/events", self.handle_events)
        self.app.router.add_post("/slack/commands", self.handle_commands)

        # The install flow is only available when OAuth credentials are set.
        if self.oauth_config is not None:
            self._state_store = FileOAuthStateStore(
                expiration_seconds=self.oauth_config.state_ttl_seconds,
                base_dir=self.oauth_config.state_dir,
            )
            self._authorize_url = AuthorizeUrlGenerator(
                client_id=self.oauth_config.client_id,
                scopes=list(self.oauth_config.scopes),
                redirect_uri=self.oauth_config.redirect_uri,
            )
            self.app.router.add_get("/slack/install", self.handle_install)
            self.app.router.add_get("/slack/oauth/callback", self.handle_oauth_callback)

    def _is_signed(self, request: web.Request, body: bytes) -> bool:
        timestamp = request.headers.get("X-Slack-Request-Timestamp")
        signature = request.headers.get("X-Slack-Signature")
        return self.verifier.is_valid(body=body, timestamp=timestamp, signature=signature)

    async def handle_index(self, request: web.Request) -> web.Response:
        """Handle the landing page."""
        return web.Response(text=LANDING_PAGE, content_type="text/html")

    async def handle_events(self, request: web.Request) -> web.Response:
        """Handle Events API callbacks."""
        body = await request.read()
        if not self._is_signed(request, body):
            logger.warning("Rejected unverified request to %s", request.path)
            return web.Response(status=401, text="invalid signature")

        try:
            payload = json.loads(body)
        except ValueError:
            return web.Response(status=400, text="invalid payload")
        if not isinstance(payload, dict):
            return web.Response(status=400, text="invalid payload")

        if payload.get("type") == "url_verification":
            return web.json_response({"challenge": payload.get("challenge")})

        event = event_from_payload(payload)
        if event is not None:
            self._spawn(self.ingress.handle(event))
        return web.Response(text="OK")

    async def handle_commands(self, request: web.Request) -> web.Response:
        """Handle slash command posts."""
        body = await request.read()
        if not self._is_signed(request, body):
            logger.warning("Rejected unverified request to %s", request.path)
            return web.Response(status=401, text="invalid signature")

        form = await request.post()
        try:
            command = command_from_form({key: str(value) for key, value in form.items()})
        except ValidationError as exc:
            logger.warning("Malformed slash command: %s", exc)
            return web.Response(status=400, text="Something went wrong!")

        reply = await self.commands.run(command.command, command.team_id, command.channel, command.text)
        return web.json_response({"response_type": "ephemeral", "text": reply})

    async def handle_install(self, request: web.Request) -> web.Response:
        """Redirect to Slack's OAuth v2 consent screen."""
        state = await self._state_store.async_issue()
        raise web.HTTPFound(self._authorize_url.generate(state))

    async def handle_oauth_callback(self, request: web.Request) -> web.Response:
        """Exchange the OAuth code for a bot token and store it."""
        code = request.query.get("code")
        state = request.query.get("state", "")
        if not code or not await self._state_store.async_consume(state):
            logger.warning("OAuth callback with missing code or invalid state")
            return web.Response(status=400, text=INSTALL_FAILED, content_type="text/html")

        try:
            response = await AsyncWebClient().oauth_v2_access(
                client_id=self.oauth_config.client_id,
                client_secret=self.oauth_config.client_secret,
                code=code,
                redirect_uri=self.oauth_config.redirect_uri,
            )
            team_id = response["team"]["id"]
            await asyncio.to_thread(self.storage.save_installation, team_id, response["access_token"])
        except (SlackApiError, StorageError, KeyError, TypeError):
            logger.exception("Failed to complete installation")
            return web.Response(status=500, text=INSTALL_FAILED, content_type="text/html")

        self.registry.invalidate(team_id)
        logger.info("Installed on team %s", team_id)
        return web.Response(text=INSTALL_OK, content_type="text/html")

    def _spawn(self, coro) -> None:
        # Keep a reference until the task finishes so it is not collected.
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Event processing failed", exc_info=task.exception())

    async def start(self) -> None:
        """Start the web server."""
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, self.host, self.port)
        await site.start()
        logger.info("Listening on http://%s:%s", self.host, self.port)

    async def stop(self, grace_seconds: float = 5.0) -> None:
        """Stop the web server, giving in-flight reactions a moment to finish."""
        if self._tasks:
            await asyncio.wait(set(self._tasks), timeout=grace_seconds)
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
