"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for storage, outbound clients, and client
lookup so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Optional, Protocol


class SubscriptionStoragePort(Protocol):
    """Durable per-team rule documents.

    Implementations are synchronous; the subscription store runs them in a
    worker thread. Both methods raise StorageError on I/O failure.
    """

    def load_team(self, team_id: str) -> dict:
        ...

    def save_team(self, team_id: str, document: dict) -> None:
        ...


class ReactionClientPort(Protocol):
    """Outbound reaction operations for one team."""

    async def add_reaction(self, channel: str, emoji: str, ts: str) -> None:
        """Add a reaction, raising ReactionError when the platform refuses."""
        ...


class ClientRegistryPort(Protocol):
    """Lookup of the outbound client for a team."""

    async def get_client(self, team_id: str) -> Optional[ReactionClientPort]:
        ...
