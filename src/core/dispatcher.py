"""Reaction dispatch (core domain).

Each emoji becomes one independent outbound request. Requests run
concurrently and every outcome is classified on its own, so one failing emoji
never prevents the others from being attempted.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from core.errors import DispatchFailure, ReactionError
from core.models import DispatchOutcome, DispatchStatus, ReactionRequest
from core.ports import ReactionClientPort

LOGGER = logging.getLogger(__name__)

# Platform error code returned when the bot already reacted with that emoji.
ALREADY_REACTED = "already_reacted"


class ReactionDispatcher:
    """Issues and classifies reaction requests. No retries are attempted."""

    async def dispatch(
        self,
        client: ReactionClientPort,
        channel: str,
        ts: str,
        emojis: Iterable[str],
    ) -> list[DispatchOutcome]:
        requests = [ReactionRequest(channel=channel, emoji=emoji, ts=ts) for emoji in emojis]
        if not requests:
            return []
        return list(await asyncio.gather(*(self._react(client, request) for request in requests)))

    async def _react(self, client: ReactionClientPort, request: ReactionRequest) -> DispatchOutcome:
        try:
            await client.add_reaction(request.channel, request.emoji, request.ts)
        except ReactionError as exc:
            if exc.code == ALREADY_REACTED:
                LOGGER.debug("Already reacted with %s on %s/%s", request.emoji, request.channel, request.ts)
                return DispatchOutcome(request, DispatchStatus.ALREADY_REACTED)
            failure = DispatchFailure(request.channel, request.emoji, request.ts, exc.code)
            LOGGER.warning("%s", failure)
            return DispatchOutcome(request, DispatchStatus.FAILED, failure)
        except Exception as exc:
            failure = DispatchFailure(request.channel, request.emoji, request.ts, type(exc).__name__)
            LOGGER.exception("Unexpected error while adding reaction %s", request.emoji)
            return DispatchOutcome(request, DispatchStatus.FAILED, failure)
        return DispatchOutcome(request, DispatchStatus.ADDED)
