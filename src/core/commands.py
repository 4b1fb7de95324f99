"""Administrative command parsing and execution (core domain).

Slash command text arrives as one whitespace-separated string, for example
`<@U123|alice> :fire: :100:`. Parsing here is strict about the user mention
and lenient about emoji decoration, since people type emojis in many ways.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from core.config import CommandConfig
from core.errors import StorageError, ValidationError
from core.subscriptions import SubscriptionStore

LOGGER = logging.getLogger(__name__)

# The identifier is everything between "<@" and the first "|" or ">".
_MENTION_RE = re.compile(r"^<@([^|>\s]+)(?:\|[^>]*)?>$")
_SKIN_TONE_PREFIX = "skin-tone-"
# A leading mention is kept whole; display names may contain spaces.
_LEADING_MENTION_RE = re.compile(r"^\s*(<@[^>]*>)(.*)$", re.DOTALL)

WATCH_USAGE = "Usage: {command} @user :emoji: [:emoji: ...]"
UNWATCH_USAGE = "Usage: {command} @user"
GENERIC_FAILURE = "Something went wrong, please try again."


def parse_user_mention(raw_mention: str) -> str:
    """Return the user id from `<@U123>` or `<@U123|name>`."""

    match = _MENTION_RE.match(raw_mention.strip())
    if not match:
        raise ValidationError(f"I couldn't find a user mention in {raw_mention!r}.")
    return match.group(1)


def normalize_emoji_tokens(tokens: Iterable[str]) -> list[str]:
    """Strip colon delimiters and split concatenated emoji runs.

    `":fire::100:"` becomes `["fire", "100"]`. Skin tone modifiers stay attached
    to the emoji before them using the platform's `name::skin-tone-N` form.
    Duplicates are dropped, keeping the first occurrence.
    """

    names: list[str] = []
    for token in tokens:
        # A modifier only belongs to an emoji typed in the same token.
        token_names: list[str] = []
        for piece in token.strip().split(":"):
            piece = piece.strip()
            if not piece:
                continue
            if piece.startswith(_SKIN_TONE_PREFIX) and token_names:
                token_names[-1] = f"{token_names[-1]}::{piece}"
                continue
            token_names.append(piece)
        names.extend(token_names)
    return list(dict.fromkeys(names))


def split_arguments(text: str) -> list[str]:
    """Split command text on whitespace, keeping a leading `<@...>` intact."""

    match = _LEADING_MENTION_RE.match(text)
    if not match:
        return text.split()
    return [match.group(1), *match.group(2).split()]


def _format_emojis(emojis: Iterable[str]) -> str:
    return " ".join(f":{emoji}:" for emoji in sorted(emojis))


class CommandProcessor:
    """Validates watch/unwatch commands and applies them to the store."""

    def __init__(self, store: SubscriptionStore, commands: CommandConfig) -> None:
        self._store = store
        self._commands = commands

    async def watch(
        self,
        team_id: str,
        channel: str,
        raw_mention: str,
        emoji_tokens: Sequence[str],
    ) -> str:
        """React to every future message of the mentioned user in `channel`."""

        user = parse_user_mention(raw_mention)
        emojis = normalize_emoji_tokens(emoji_tokens)
        if not emojis:
            raise ValidationError("Please give me at least one emoji to react with.")
        current = await self._store.add_emojis(team_id, channel, user, emojis)
        return (
            f"Got it! I will react to <@{user}>'s next messages here with "
            f"{_format_emojis(current)}."
        )

    async def unwatch(
        self,
        team_id: str,
        channel: str,
        raw_mention: str,
        extra_args: Sequence[str] = (),
    ) -> str:
        """Stop reacting to the mentioned user's messages in `channel`."""

        if extra_args:
            raise ValidationError("Unfollowing takes only the user, no emojis.")
        user = parse_user_mention(raw_mention)
        removed = await self._store.remove_rule(team_id, channel, user)
        if not removed:
            return f"I wasn't following <@{user}> in this channel, nothing to do."
        return f"Got it! I just unfollowed <@{user}>."

    async def run(self, command: str, team_id: str, channel: str, text: str) -> str:
        """Execute a slash command and return the reply shown to the caller.

        Validation problems and storage failures never escape as exceptions:
        the command transport only carries text.
        """

        args = split_arguments(text)
        try:
            if command == self._commands.watch:
                if len(args) < 2:
                    raise ValidationError("Arguments should be @user <emojis>.")
                return await self.watch(team_id, channel, args[0], args[1:])
            if command == self._commands.unwatch:
                if not args:
                    raise ValidationError("Tell me which @user to unfollow.")
                return await self.unwatch(team_id, channel, args[0], args[1:])
        except ValidationError as exc:
            usage = WATCH_USAGE if command == self._commands.watch else UNWATCH_USAGE
            return f"{exc}\n{usage.format(command=command)}"
        except StorageError:
            LOGGER.exception("Failed to apply %s for team %s", command, team_id)
            return GENERIC_FAILURE

        LOGGER.warning("Unsupported command %s from team %s", command, team_id)
        return f"Sorry, I don't know the {command} command."
