"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

DEFAULT_SCOPES = (
    "channels:history",
    "commands",
    "groups:history",
    "im:history",
    "reactions:write",
)


@dataclass(frozen=True)
class CommandConfig:
    """Slash command names routed to the command processor."""

    watch: str = "/stalk"
    unwatch: str = "/unfollow"


@dataclass(frozen=True)
class ServerConfig:
    """HTTP listener settings."""

    host: str = "0.0.0.0"
    port: int = 3000


@dataclass(frozen=True)
class OAuthConfig:
    """Install flow settings consumed by the web adapter."""

    client_id: str
    client_secret: str
    scopes: tuple[str, ...] = field(default=DEFAULT_SCOPES)
    redirect_uri: Optional[str] = None
    state_dir: str = "data/oauth_state"
    state_ttl_seconds: int = 600
