"""Rule matching logic (core domain)."""

from __future__ import annotations

from core.subscriptions import SubscriptionStore


class RuleMatcher:
    """Looks up the emoji-set bound to a message's (team, channel, author).

    Matching is a pure read. "No rule" is by far the most common answer and is
    returned as an empty set, never as an error.
    """

    def __init__(self, store: SubscriptionStore) -> None:
        self._store = store

    async def match(self, team_id: str, channel: str, author: str) -> frozenset:
        return await self._store.get_rules(team_id, channel, author)
