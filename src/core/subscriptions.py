"""Subscription store (core domain).

Holds the `team -> channel -> user -> emoji-set` mapping. The whole team is
the unit of persistence and of mutation: every write re-reads the team record,
builds a fresh snapshot, and commits it in one storage call while holding that
team's lock. Readers only ever see committed snapshots, which are replaced
wholesale and never mutated.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from core.models import TeamRules, rules_from_document, rules_to_document
from core.ports import SubscriptionStoragePort

LOGGER = logging.getLogger(__name__)

_EMPTY: frozenset = frozenset()


class SubscriptionStore:
    """Per-team rule registry with serialized read-modify-write mutations."""

    def __init__(self, storage: SubscriptionStoragePort) -> None:
        self._storage = storage
        self._snapshots: dict[str, TeamRules] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, team_id: str) -> asyncio.Lock:
        lock = self._locks.get(team_id)
        if lock is None:
            lock = self._locks[team_id] = asyncio.Lock()
        return lock

    async def _load(self, team_id: str) -> dict[str, dict[str, frozenset]]:
        document = await asyncio.to_thread(self._storage.load_team, team_id)
        return rules_from_document(document)

    async def _team_rules(self, team_id: str) -> TeamRules:
        snapshot = self._snapshots.get(team_id)
        if snapshot is None:
            snapshot = await self._load(team_id)
            # A write may have committed while we were loading; keep the newer one.
            snapshot = self._snapshots.setdefault(team_id, snapshot)
        return snapshot

    async def _commit(self, team_id: str, rules: dict[str, dict[str, frozenset]]) -> None:
        await asyncio.to_thread(self._storage.save_team, team_id, rules_to_document(rules))
        # Publish only after the write succeeded so a failed write leaves the
        # previous committed snapshot in place.
        self._snapshots[team_id] = rules

    async def get_rules(self, team_id: str, channel: str, user: str) -> frozenset:
        """Return the emoji-set bound to (team, channel, user), or an empty set."""

        rules = await self._team_rules(team_id)
        return rules.get(channel, {}).get(user, _EMPTY)

    async def snapshot(self, team_id: str) -> dict[str, dict[str, list[str]]]:
        """Return the committed rules for a team in their persisted shape."""

        return rules_to_document(await self._team_rules(team_id))

    async def add_emojis(
        self, team_id: str, channel: str, user: str, emojis: Iterable[str]
    ) -> frozenset:
        """Union `emojis` into the rule for (team, channel, user).

        Returns the resulting emoji-set. Adding emojis already present is a
        no-op, and no write is issued in that case.
        """

        additions = frozenset(emoji for emoji in emojis if emoji)
        async with self._lock_for(team_id):
            rules = await self._load(team_id)
            current = rules.get(channel, {}).get(user, _EMPTY)
            merged = current | additions
            if merged == current:
                self._snapshots[team_id] = rules
                return current
            channel_rules = dict(rules.get(channel, {}))
            channel_rules[user] = merged
            rules[channel] = channel_rules
            await self._commit(team_id, rules)
        LOGGER.info(
            "Rule updated for team=%s channel=%s user=%s (%s emojis)",
            team_id,
            channel,
            user,
            len(merged),
        )
        return merged

    async def remove_rule(self, team_id: str, channel: str, user: str) -> bool:
        """Delete the (team, channel, user) rule entirely.

        Returns False when there was nothing to remove; that is not an error.
        """

        async with self._lock_for(team_id):
            rules = await self._load(team_id)
            channel_rules = dict(rules.get(channel, {}))
            if user not in channel_rules:
                self._snapshots[team_id] = rules
                return False
            del channel_rules[user]
            if channel_rules:
                rules[channel] = channel_rules
            else:
                rules.pop(channel, None)
            await self._commit(team_id, rules)
        LOGGER.info("Rule removed for team=%s channel=%s user=%s", team_id, channel, user)
        return True
