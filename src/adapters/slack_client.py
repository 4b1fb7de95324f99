"""Slack reaction adapter.

Wraps the slack_sdk async Web API client so the core only sees
`add_reaction` and ReactionError.
"""

from __future__ import annotations

from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from core.errors import ReactionError


class SlackReactionClient:
    """ReactionClientPort implementation backed by `reactions.add`."""

    def __init__(self, client: AsyncWebClient) -> None:
        self._client = client

    async def add_reaction(self, channel: str, emoji: str, ts: str) -> None:
        try:
            await self._client.reactions_add(channel=channel, name=emoji, timestamp=ts)
        except SlackApiError as exc:
            code = exc.response.get("error") if exc.response is not None else None
            raise ReactionError(code or "unknown_error") from exc
