"""Slack-to-core mapping adapter.

This keeps Slack payload details out of the core pipeline.
"""

from __future__ import annotations

from typing import Mapping, Optional

from core.errors import ValidationError
from core.models import CommandRequest, MessageEvent

# Subtypes that are not a fresh message typed by a person. Edits, deletions,
# and membership notices must not trigger reactions.
IGNORED_SUBTYPES = frozenset(
    {
        "bot_message",
        "channel_join",
        "channel_leave",
        "channel_topic",
        "channel_purpose",
        "channel_name",
        "group_join",
        "group_leave",
        "message_changed",
        "message_deleted",
        "message_replied",
    }
)


def event_from_payload(body: Mapping) -> Optional[MessageEvent]:
    """Build a MessageEvent from an Events API `event_callback` body.

    Returns None for anything that is not a reactable user message.
    """

    if body.get("type") != "event_callback":
        return None
    event = body.get("event") or {}
    if event.get("type") != "message":
        return None
    if event.get("subtype") in IGNORED_SUBTYPES or event.get("bot_id"):
        return None

    team_id = body.get("team_id") or event.get("team")
    channel = event.get("channel")
    user = event.get("user")
    ts = event.get("ts")
    if not (team_id and channel and user and ts):
        return None

    return MessageEvent(
        team_id=str(team_id),
        channel=str(channel),
        user=str(user),
        ts=str(ts),
        text=event.get("text") or "",
    )


def command_from_form(form: Mapping[str, str]) -> CommandRequest:
    """Build a CommandRequest from a slash command form post."""

    team_id = form.get("team_id")
    channel = form.get("channel_id")
    command = form.get("command")
    if not team_id or not channel or not command:
        raise ValidationError("Slash command payload is missing team, channel, or command")
    return CommandRequest(
        team_id=team_id,
        channel=channel,
        command=command,
        text=form.get("text") or "",
    )
