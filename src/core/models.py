"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any Slack-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

# channel -> user -> emoji-set. Snapshots are replaced, never mutated.
TeamRules = Mapping[str, Mapping[str, frozenset]]


@dataclass(frozen=True)
class MessageEvent:
    """A new message posted in a channel of an installed team."""

    team_id: str
    channel: str
    user: str
    # Slack message timestamps are strings like "1712345678.000200"; keeping
    # them as text avoids float rounding when echoing them back.
    ts: str
    text: str = ""


@dataclass(frozen=True)
class CommandRequest:
    """An administrative slash command invocation."""

    team_id: str
    channel: str
    command: str
    text: str


@dataclass(frozen=True)
class ReactionRequest:
    """One outbound reaction for one emoji on one message."""

    channel: str
    emoji: str
    ts: str


class DispatchStatus(str, Enum):
    ADDED = "added"
    ALREADY_REACTED = "already_reacted"
    FAILED = "failed"


@dataclass(frozen=True)
class DispatchOutcome:
    """Classified result of a single reaction request."""

    request: ReactionRequest
    status: DispatchStatus
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.status is not DispatchStatus.FAILED


def rules_from_document(document: Mapping) -> dict[str, dict[str, frozenset]]:
    """Build a team snapshot from the persisted JSON document.

    Empty emoji lists and malformed entries are dropped, so older records
    that stored "removed" users as empty lists load as if they were absent.
    """

    rules: dict[str, dict[str, frozenset]] = {}
    for channel, users in document.items():
        if not isinstance(users, Mapping):
            continue
        channel_rules = {
            user: frozenset(str(emoji) for emoji in emojis if emoji)
            for user, emojis in users.items()
            if isinstance(emojis, list)
        }
        channel_rules = {user: emojis for user, emojis in channel_rules.items() if emojis}
        if channel_rules:
            rules[channel] = channel_rules
    return rules


def rules_to_document(rules: TeamRules) -> dict[str, dict[str, list[str]]]:
    """Return the persisted `{channel: {user: [emoji, ...]}}` document."""

    return {
        channel: {user: sorted(emojis) for user, emojis in users.items()}
        for channel, users in rules.items()
        if users
    }
