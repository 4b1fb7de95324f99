"""Error taxonomy shared by the core and adapters."""

from __future__ import annotations


class GreetAndReactError(Exception):
    """Base class for all application errors."""


class ValidationError(GreetAndReactError):
    """Malformed administrative command input.

    The message is shown to the person who ran the command, so keep it short
    and human-readable.
    """


class StorageError(GreetAndReactError):
    """The persistence layer failed to read or write a record."""


class ClientUnavailable(GreetAndReactError):
    """No outbound client is available for a team."""

    def __init__(self, team_id: str, reason: str) -> None:
        super().__init__(f"No client for team {team_id}: {reason}")
        self.team_id = team_id
        self.reason = reason


class ReactionError(GreetAndReactError):
    """An outbound reaction request was rejected by the platform."""

    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code


class DispatchFailure(GreetAndReactError):
    """A single reaction request failed for a reason other than a duplicate."""

    def __init__(self, channel: str, emoji: str, ts: str, code: str) -> None:
        super().__init__(f"Failed to add :{emoji}: to {channel}/{ts}: {code}")
        self.channel = channel
        self.emoji = emoji
        self.ts = ts
        self.code = code
