from __future__ import annotations

import asyncio
import json
import time
from typing import Optional
from urllib.parse import urlencode

from aiohttp import test_utils
from slack_sdk.signature import SignatureVerifier

from adapters.web_server import WebServer
from core.commands import CommandProcessor
from core.config import CommandConfig, ServerConfig
from core.dispatcher import ReactionDispatcher
from core.processor import EventIngress
from core.rules_engine import RuleMatcher
from core.subscriptions import SubscriptionStore

SECRET = "test-signing-secret"


class FakeStorage:
    def __init__(self) -> None:
        self.records: dict[str, dict] = {}

    def load_team(self, team_id: str) -> dict:
        return self.records.get(team_id, {})

    def save_team(self, team_id: str, document: dict) -> None:
        self.records[team_id] = document


class FakeReactionClient:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str]] = []

    async def add_reaction(self, channel: str, emoji: str, ts: str) -> None:
        self.calls.append((channel, emoji, ts))


class FakeRegistry:
    def __init__(self, clients: dict[str, FakeReactionClient]) -> None:
        self._clients = clients

    async def get_client(self, team_id: str) -> Optional[FakeReactionClient]:
        return self._clients.get(team_id)

    def invalidate(self, team_id: str) -> None:
        self._clients.pop(team_id, None)


def _build_server(client: FakeReactionClient) -> WebServer:
    store = SubscriptionStore(FakeStorage())
    registry = FakeRegistry({"T1": client})
    ingress = EventIngress(registry=registry, matcher=RuleMatcher(store), dispatcher=ReactionDispatcher())
    return WebServer(
        ingress=ingress,
        commands=CommandProcessor(store, CommandConfig()),
        registry=registry,
        storage=None,
        signing_secret=SECRET,
        server_config=ServerConfig(host="127.0.0.1", port=0),
    )


def _signed_headers(body: bytes, content_type: str) -> dict[str, str]:
    timestamp = str(int(time.time()))
    signature = SignatureVerifier(SECRET).generate_signature(timestamp=timestamp, body=body)
    return {
        "Content-Type": content_type,
        "X-Slack-Request-Timestamp": timestamp,
        "X-Slack-Signature": signature,
    }


def _command_body(text: str, command: str = "/stalk") -> bytes:
    return urlencode(
        {"team_id": "T1", "channel_id": "C1", "command": command, "text": text}
    ).encode("utf-8")


def _event_body(user: str, ts: str) -> bytes:
    payload = {
        "type": "event_callback",
        "team_id": "T1",
        "event": {"type": "message", "channel": "C1", "user": user, "ts": ts, "text": "hello"},
    }
    return json.dumps(payload).encode("utf-8")


def test_command_then_event_reacts() -> None:
    reactions = FakeReactionClient()
    server = _build_server(reactions)

    async def scenario() -> dict:
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as http:
            body = _command_body("<@U9|bob> :fire: :100:")
            response = await http.post(
                "/slack/commands",
                data=body,
                headers=_signed_headers(body, "application/x-www-form-urlencoded"),
            )
            reply = await response.json()

            for user, ts in (("U9", "123.45"), ("U8", "123.46")):
                body = _event_body(user, ts)
                response = await http.post(
                    "/slack/events", data=body, headers=_signed_headers(body, "application/json")
                )
                assert response.status == 200

            await server.stop()
            return reply

    reply = asyncio.run(scenario())

    assert reply["response_type"] == "ephemeral"
    assert reply["text"].startswith("Got it!")
    assert sorted(reactions.calls) == [("C1", "100", "123.45"), ("C1", "fire", "123.45")]


def test_url_verification_echoes_challenge() -> None:
    server = _build_server(FakeReactionClient())
    body = json.dumps({"type": "url_verification", "challenge": "abc123"}).encode("utf-8")

    async def scenario() -> dict:
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as http:
            response = await http.post(
                "/slack/events", data=body, headers=_signed_headers(body, "application/json")
            )
            return await response.json()

    assert asyncio.run(scenario()) == {"challenge": "abc123"}


def test_unsigned_requests_are_rejected() -> None:
    reactions = FakeReactionClient()
    server = _build_server(reactions)

    async def scenario() -> list[int]:
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as http:
            body = _command_body("<@U9> :fire:")
            unsigned = await http.post(
                "/slack/commands",
                data=body,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            headers = _signed_headers(body, "application/x-www-form-urlencoded")
            headers["X-Slack-Signature"] = "v0=" + "0" * 64
            forged = await http.post("/slack/commands", data=body, headers=headers)
            return [unsigned.status, forged.status]

    assert asyncio.run(scenario()) == [401, 401]


def test_malformed_command_payload() -> None:
    server = _build_server(FakeReactionClient())
    body = urlencode({"team_id": "T1", "text": "<@U9> :fire:"}).encode("utf-8")

    async def scenario() -> int:
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as http:
            response = await http.post(
                "/slack/commands",
                data=body,
                headers=_signed_headers(body, "application/x-www-form-urlencoded"),
            )
            return response.status

    assert asyncio.run(scenario()) == 400


def test_install_routes_disabled_without_oauth() -> None:
    server = _build_server(FakeReactionClient())

    async def scenario() -> tuple[int, int]:
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as http:
            index = await http.get("/")
            install = await http.get("/slack/install", allow_redirects=False)
            return index.status, install.status

    assert asyncio.run(scenario()) == (200, 404)


def test_non_object_event_payload_is_rejected() -> None:
    server = _build_server(FakeReactionClient())
    body = b"[]"

    async def scenario() -> int:
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as http:
            response = await http.post(
                "/slack/events", data=body, headers=_signed_headers(body, "application/json")
            )
            return response.status

    assert asyncio.run(scenario()) == 400
