from __future__ import annotations

import asyncio
import sqlite3

import pytest

from adapters.sqlite_storage import SQLiteStorage
from core.errors import StorageError
from core.subscriptions import SubscriptionStore


@pytest.fixture
def storage(tmp_path) -> SQLiteStorage:
    db = SQLiteStorage(str(tmp_path / "rules.db"))
    db.init_db()
    return db


def test_load_unknown_team_is_empty(storage: SQLiteStorage) -> None:
    assert storage.load_team("T1") == {}


def test_save_team_replaces_whole_document(storage: SQLiteStorage) -> None:
    storage.save_team("T1", {"C1": {"U1": ["fire"]}})
    storage.save_team("T1", {"C2": {"U2": ["eyes", "tada"]}})

    assert storage.load_team("T1") == {"C2": {"U2": ["eyes", "tada"]}}
    assert storage.list_teams() == {"T1"}


def test_corrupt_document_raises_storage_error(storage: SQLiteStorage, tmp_path) -> None:
    conn = sqlite3.connect(str(tmp_path / "rules.db"))
    with conn:
        conn.execute(
            "INSERT INTO subscriptions (team_id, rules, updated_at) VALUES (?, ?, ?)",
            ("T1", "{not json", "2024-01-01T00:00:00+00:00"),
        )
    conn.close()

    with pytest.raises(StorageError):
        storage.load_team("T1")


def test_missing_tables_raise_storage_error(tmp_path) -> None:
    uninitialized = SQLiteStorage(str(tmp_path / "empty.db"))

    with pytest.raises(StorageError):
        uninitialized.load_team("T1")


def test_installations_upsert(storage: SQLiteStorage) -> None:
    assert storage.get_bot_token("T1") is None

    storage.save_installation("T1", "xoxb-old")
    storage.save_installation("T1", "xoxb-new")

    assert storage.get_bot_token("T1") == "xoxb-new"


def test_store_persists_across_instances(storage: SQLiteStorage) -> None:
    asyncio.run(SubscriptionStore(storage).add_emojis("T1", "C1", "U9", ["fire", "100"]))

    reopened = SubscriptionStore(storage)

    assert asyncio.run(reopened.get_rules("T1", "C1", "U9")) == {"fire", "100"}
    assert storage.load_team("T1") == {"C1": {"U9": ["100", "fire"]}}


def test_concurrent_store_writes_on_sqlite(storage: SQLiteStorage) -> None:
    store = SubscriptionStore(storage)

    async def scenario() -> None:
        await asyncio.gather(
            *(store.add_emojis("T1", f"C{index}", "U1", [f"e{index}"]) for index in range(5))
        )

    asyncio.run(scenario())

    assert storage.load_team("T1") == {f"C{index}": {"U1": [f"e{index}"]} for index in range(5)}
