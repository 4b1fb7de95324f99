"""Slack credentials for greet-and-react.

We read secrets via python-dotenv to keep them out of the repo and out of
config.json.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class SlackCredentials:
    signing_secret: str
    client_id: Optional[str]
    client_secret: Optional[str]

    @property
    def can_install(self) -> bool:
        return bool(self.client_id and self.client_secret)


def load_credentials() -> SlackCredentials:
    """Read Slack app credentials from the environment.

    SLACK_SIGNING_SECRET is mandatory. SLACK_CLIENT_ID/SLACK_CLIENT_SECRET are
    only needed for the "Add to Slack" install flow.
    """

    load_dotenv()

    signing_secret = os.getenv("SLACK_SIGNING_SECRET")
    # Fail fast: without the secret every request would be rejected.
    if not signing_secret:
        raise RuntimeError("Missing SLACK_SIGNING_SECRET in environment")

    credentials = SlackCredentials(
        signing_secret=signing_secret,
        client_id=os.getenv("SLACK_CLIENT_ID"),
        client_secret=os.getenv("SLACK_CLIENT_SECRET"),
    )
    if not credentials.can_install:
        logging.getLogger(__name__).warning(
            "SLACK_CLIENT_ID/SLACK_CLIENT_SECRET not set; the install flow is disabled"
        )
    return credentials
