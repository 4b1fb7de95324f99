"""SQLite storage adapter.

Implements the core SubscriptionStoragePort and the installation lookups
used by the client registry, using a simple SQLite database.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from core.errors import StorageError


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the SubscriptionStoragePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        # Each call gets its own connection so the adapter can be used from
        # worker threads. The inner `with` commits or rolls back as a unit.
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open {self._db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - subscriptions: one rule document per team
        - installations: one bot token per installed team
        """

        with self._connect() as conn:
            # subscriptions stores the whole team as a single JSON document so
            # a write replaces every rule of the team atomically.
            # Fields:
            # - team_id: workspace id (PRIMARY KEY)
            # - rules: {"<channel>": {"<user>": ["emoji", ...]}}
            # - updated_at: timestamp of the last committed write
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS subscriptions (
                    team_id TEXT PRIMARY KEY,
                    rules TEXT NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
                """
            )
            # installations keeps the bot token issued by the OAuth flow.
            # Fields:
            # - team_id: workspace id (PRIMARY KEY)
            # - bot_token: xoxb- token used for outbound reactions
            # - installed_at: timestamp of the latest install
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS installations (
                    team_id TEXT PRIMARY KEY,
                    bot_token TEXT NOT NULL,
                    installed_at TIMESTAMP NOT NULL
                )
                """
            )

    def load_team(self, team_id: str) -> dict:
        """Return the rule document for a team, or an empty document."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT rules FROM subscriptions WHERE team_id = ?",
                (team_id,),
            ).fetchone()
        if not row:
            return {}
        try:
            document = json.loads(row["rules"])
        except json.JSONDecodeError as exc:
            raise StorageError(f"Corrupt rules for team {team_id}: {exc}") from exc
        return document if isinstance(document, dict) else {}

    def save_team(self, team_id: str, document: dict) -> None:
        """Upsert the full rule document for a team in one statement."""

        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO subscriptions (team_id, rules, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(team_id) DO UPDATE SET
                    rules = excluded.rules,
                    updated_at = excluded.updated_at
                """,
                (team_id, json.dumps(document, sort_keys=True), now.isoformat()),
            )

    def get_bot_token(self, team_id: str) -> Optional[str]:
        """Return the stored bot token for a team, if it is installed."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT bot_token FROM installations WHERE team_id = ?",
                (team_id,),
            ).fetchone()
        return str(row["bot_token"]) if row else None

    def save_installation(self, team_id: str, bot_token: str) -> None:
        """Upsert the bot token issued for a team."""

        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO installations (team_id, bot_token, installed_at)
                VALUES (?, ?, ?)
                ON CONFLICT(team_id) DO UPDATE SET
                    bot_token = excluded.bot_token,
                    installed_at = excluded.installed_at
                """,
                (team_id, bot_token, now.isoformat()),
            )

    def list_teams(self) -> set[str]:
        """Return all team ids that have a rule document."""

        with self._connect() as conn:
            rows = conn.execute("SELECT team_id FROM subscriptions").fetchall()
        return {row["team_id"] for row in rows}
