from __future__ import annotations

import pytest

from adapters.slack_mapper import command_from_form, event_from_payload
from core.errors import ValidationError


def _body(**event_fields) -> dict:
    event = {"type": "message", "channel": "C1", "user": "U9", "ts": "123.45", "text": "hi"}
    event.update(event_fields)
    return {"type": "event_callback", "team_id": "T1", "event": event}


def test_event_from_payload_builds_message_event() -> None:
    event = event_from_payload(_body())

    assert event is not None
    assert (event.team_id, event.channel, event.user, event.ts) == ("T1", "C1", "U9", "123.45")
    assert event.text == "hi"


@pytest.mark.parametrize("subtype", ["message_changed", "message_deleted", "bot_message", "channel_join"])
def test_event_from_payload_ignores_non_user_messages(subtype: str) -> None:
    assert event_from_payload(_body(subtype=subtype)) is None


def test_event_from_payload_ignores_bots_and_incomplete_events() -> None:
    assert event_from_payload(_body(bot_id="B1")) is None
    assert event_from_payload(_body(user=None)) is None
    assert event_from_payload(_body(type="reaction_added")) is None
    assert event_from_payload({"type": "url_verification", "challenge": "x"}) is None


def test_event_from_payload_keeps_file_shares() -> None:
    assert event_from_payload(_body(subtype="file_share")) is not None


def test_command_from_form() -> None:
    request = command_from_form(
        {"team_id": "T1", "channel_id": "C1", "command": "/stalk", "text": "<@U9> :fire:"}
    )

    assert request.command == "/stalk"
    assert request.text == "<@U9> :fire:"


def test_command_from_form_allows_empty_text() -> None:
    assert command_from_form({"team_id": "T1", "channel_id": "C1", "command": "/stalk"}).text == ""


def test_command_from_form_requires_fields() -> None:
    with pytest.raises(ValidationError):
        command_from_form({"team_id": "T1", "command": "/stalk", "text": "<@U9> :fire:"})
