"""Event ingress pipeline.

This module is integration-agnostic. It only relies on ports for client
lookup and outbound reactions, enabling other frontends or adapters without
changes here. The ingress never mutates the subscription store.
"""

from __future__ import annotations

import logging

from core.dispatcher import ReactionDispatcher
from core.errors import ClientUnavailable, StorageError
from core.models import DispatchOutcome, MessageEvent
from core.ports import ClientRegistryPort, ReactionClientPort
from core.rules_engine import RuleMatcher

LOGGER = logging.getLogger(__name__)


class EventIngress:
    """Routes one inbound message event through matching and dispatch."""

    def __init__(
        self,
        registry: ClientRegistryPort,
        matcher: RuleMatcher,
        dispatcher: ReactionDispatcher,
    ) -> None:
        self._registry = registry
        self._matcher = matcher
        self._dispatcher = dispatcher

    async def _resolve_client(self, team_id: str) -> ReactionClientPort:
        try:
            client = await self._registry.get_client(team_id)
        except StorageError as exc:
            raise ClientUnavailable(team_id, "credential lookup failed") from exc
        if client is None:
            raise ClientUnavailable(team_id, "team is not installed")
        return client

    async def handle(self, event: MessageEvent) -> list[DispatchOutcome]:
        """Process one message event and return the classified outcomes."""

        try:
            client = await self._resolve_client(event.team_id)
        except ClientUnavailable as exc:
            # Nobody is waiting on a message event, so the drop is only logged.
            LOGGER.warning("Dropping message event: %s", exc)
            return []

        try:
            emojis = await self._matcher.match(event.team_id, event.channel, event.user)
        except StorageError as exc:
            LOGGER.warning("Dropping message event for team %s: rules unavailable (%s)", event.team_id, exc)
            return []
        if not emojis:
            return []

        outcomes = await self._dispatcher.dispatch(client, event.channel, event.ts, emojis)
        failed = sum(1 for outcome in outcomes if not outcome.ok)
        LOGGER.info(
            "Reacted to %s/%s from %s: %s ok, %s failed",
            event.channel,
            event.ts,
            event.user,
            len(outcomes) - failed,
            failed,
        )
        return outcomes
