"""Per-team Slack client registry.

Clients are created lazily from the stored bot token and cached by team id.
The cache belongs to the registry instance; there is no module-level state.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Protocol

from slack_sdk.web.async_client import AsyncWebClient

from adapters.slack_client import SlackReactionClient

LOGGER = logging.getLogger(__name__)


class InstallationLookup(Protocol):
    def get_bot_token(self, team_id: str) -> Optional[str]:
        ...


class SlackClientRegistry:
    """ClientRegistryPort implementation keyed by team id."""

    def __init__(
        self,
        installations: InstallationLookup,
        client_factory: Callable[[str], AsyncWebClient] = lambda token: AsyncWebClient(token=token),
    ) -> None:
        self._installations = installations
        self._client_factory = client_factory
        self._clients: dict[str, SlackReactionClient] = {}

    async def get_client(self, team_id: str) -> Optional[SlackReactionClient]:
        """Return the cached client for a team, building it on first use.

        Returns None when the team has no installation. StorageError from the
        token lookup propagates to the caller.
        """

        client = self._clients.get(team_id)
        if client is not None:
            return client
        token = await asyncio.to_thread(self._installations.get_bot_token, team_id)
        if not token:
            return None
        LOGGER.info("Creating Slack client for team %s", team_id)
        client = self._clients.setdefault(team_id, SlackReactionClient(self._client_factory(token)))
        return client

    def invalidate(self, team_id: str) -> None:
        """Forget the cached client, e.g. after the team reinstalled the app."""

        self._clients.pop(team_id, None)
