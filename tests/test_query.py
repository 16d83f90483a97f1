"""Tests for generated data queries: per-user scoping, read-only execution, failures."""

import pytest
from conftest import FakeLLM, add_set, stored_rows

from repbot.config import ConversationConfig
from repbot.errors import GenerationError, QueryError, UnsafeQueryError
from repbot.query import QueryEngine
from repbot.state import ConversationState

ME = 1
SOMEONE_ELSE = 2


@pytest.fixture
async def seeded(db):
    await add_set(db, ME, "squat", 100.0, 5)
    await add_set(db, ME, "squat", 90.0, 8)
    await add_set(db, SOMEONE_ELSE, "squat", 200.0, 3)
    await add_set(db, SOMEONE_ELSE, "deadlift", 250.0, 1)
    return db


def _engine(db, llm, **conversation) -> QueryEngine:
    return QueryEngine(db, llm, ConversationConfig(**conversation))


async def test_other_users_rows_never_rendered(seeded):
    engine = _engine(seeded, FakeLLM())

    table = await engine.execute("SELECT exercise, weight, reps FROM my_sets ORDER BY weight DESC", ME)

    lines = table.splitlines()
    assert lines[0] == "exercise | weight | reps"
    assert lines[1:] == ["squat | 100.00 | 5", "squat | 90.00 | 8"]
    assert "200.00" not in table
    assert "deadlift" not in table


async def test_aggregate_without_filter_is_still_scoped(seeded):
    engine = _engine(seeded, FakeLLM())

    table = await engine.execute("SELECT MAX(weight) AS max_weight FROM my_sets", ME)

    assert table.splitlines() == ["max_weight", "100.00"]


async def test_filter_for_another_user_yields_nothing(seeded):
    engine = _engine(seeded, FakeLLM())

    table = await engine.execute(f"SELECT * FROM my_sets WHERE user_id = {SOMEONE_ELSE}", ME)

    assert len(table.splitlines()) == 1


async def test_direct_table_access_rejected(seeded):
    engine = _engine(seeded, FakeLLM())
    with pytest.raises(UnsafeQueryError):
        await engine.execute("SELECT * FROM workout_sets", ME)


async def test_double_quoted_tokens_cannot_hide_table(seeded):
    engine = _engine(seeded, FakeLLM())
    with pytest.raises(UnsafeQueryError):
        await engine.execute(
            'SELECT "\'", user_id, exercise, weight FROM workout_sets WHERE "\'" <> "x"', ME
        )

    _, mine = await stored_rows(seeded, ME)
    _, theirs = await stored_rows(seeded, SOMEONE_ELSE)
    assert len(mine) == 2
    assert len(theirs) == 2


async def test_write_rejected_and_rows_untouched(seeded):
    engine = _engine(seeded, FakeLLM())
    with pytest.raises(UnsafeQueryError):
        await engine.execute("DELETE FROM my_sets", ME)

    _, sets = await stored_rows(seeded, ME)
    assert len(sets) == 2


async def test_invalid_sql_raises_query_error(seeded):
    engine = _engine(seeded, FakeLLM())
    with pytest.raises(QueryError):
        await engine.execute("SELECT no_such_column FROM my_sets", ME)


async def test_rows_capped(seeded):
    engine = _engine(seeded, FakeLLM(), max_result_rows=1)

    table = await engine.execute("SELECT reps FROM my_sets ORDER BY id", ME)

    assert table.splitlines() == ["reps", "5"]


async def test_answer_appends_summary(seeded):
    llm = FakeLLM(
        sql="```sql\nSELECT MAX(weight) AS max_weight FROM my_sets WHERE user_id = 1;\n```",
        summary="Your heaviest squat is 100 kg.",
    )
    state = ConversationState.start(ME, "what's my max weight")

    reply = await _engine(seeded, llm).answer(state)

    assert reply == "Your heaviest squat is 100 kg."
    assert state.reply == reply
    assert llm.calls == ["sql", "summary"]
    results = llm.summary_messages[-1]["content"]
    assert results == "Query Results:\nmax_weight\n100.00"
    assert llm.summary_messages[1] == {"role": "user", "content": "what's my max weight"}


@pytest.mark.parametrize(
    "llm, error",
    [
        (FakeLLM(fail=("sql",)), GenerationError),
        (FakeLLM(sql="SELECT broken FROM my_sets"), QueryError),
        (FakeLLM(sql="DROP TABLE workout_sets"), UnsafeQueryError),
        (FakeLLM(fail=("summary",)), GenerationError),
    ],
)
async def test_failure_leaves_no_reply(seeded, llm, error):
    state = ConversationState.start(ME, "how much did I squat?")

    with pytest.raises(error):
        await _engine(seeded, llm).answer(state)

    assert state.reply is None
    assert len(state.messages) == 1
