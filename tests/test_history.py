"""Tests for replaying persisted messages as conversation history."""

from conftest import add_message

from repbot.config import DatabaseConfig
from repbot.database.connection import DatabaseManager
from repbot.llm.context import load_history

USER = 5511


async def test_limit_returns_earliest_in_ascending_order(db):
    for i in range(5):
        await add_message(db, USER, "user" if i % 2 == 0 else "assistant", f"m{i}")

    history = await load_history(db, USER, 3)

    assert [m.content for m in history] == ["m0", "m1", "m2"]
    assert [m.role for m in history] == ["user", "assistant", "user"]


async def test_only_requesting_user(db):
    await add_message(db, USER, "user", "mine")
    await add_message(db, USER + 1, "user", "theirs")

    history = await load_history(db, USER, 10)

    assert [m.content for m in history] == ["mine"]


async def test_fewer_messages_than_limit(db):
    await add_message(db, USER, "user", "only one")
    assert len(await load_history(db, USER, 10)) == 1


async def test_zero_limit(db):
    await add_message(db, USER, "user", "hello")
    assert await load_history(db, USER, 0) == []


async def test_storage_error_degrades_to_empty(tmp_path):
    # never initialized: every session request fails
    broken = DatabaseManager(DatabaseConfig(url=f"sqlite+aiosqlite:///{tmp_path / 'x.db'}"))
    assert await load_history(broken, USER, 10) == []
