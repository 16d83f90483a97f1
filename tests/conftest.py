"""Shared fixtures: a throwaway SQLite database and a scripted stand-in for the LLM."""

import pytest

from repbot.config import Config, DatabaseConfig
from repbot.core import MessageHandler
from repbot.database.connection import DatabaseManager
from repbot.database.repository import message_repo, workout_set_repo
from repbot.errors import ClassificationError, ExtractionError, GenerationError
from repbot.llm.schemas import ExerciseList, IntentCategory
from repbot.query import SQL_GENERATOR_PROMPT


class FakeLLM:
    """Returns canned answers and records which capability was called.

    ``fail`` names capabilities that should raise: classify, extract, sql,
    summary, chat.
    """

    def __init__(
        self,
        *,
        category: str = "chat",
        exercises: ExerciseList | None = None,
        sql: str = "SELECT exercise, weight, reps FROM my_sets",
        summary: str = "Here is your data.",
        chat: str = "Hi! Send me your workout.",
        fail: tuple[str, ...] = (),
    ) -> None:
        self.category = category
        self.exercises = exercises if exercises is not None else ExerciseList()
        self.sql = sql
        self.summary = summary
        self.chat = chat
        self.fail = set(fail)
        self.calls: list[str] = []
        self.summary_messages: list[dict] | None = None
        self.history = None

    def _record(self, name: str) -> None:
        self.calls.append(name)

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def classify_intent(self, message: str) -> IntentCategory:
        self._record("classify")
        if "classify" in self.fail:
            raise ClassificationError("classifier unavailable")
        # model_construct lets tests inject labels outside the schema
        return IntentCategory.model_construct(category=self.category)

    async def extract_exercises(self, message: str) -> ExerciseList:
        self._record("extract")
        if "extract" in self.fail:
            raise ExtractionError("bad shape")
        return self.exercises

    async def generate_text(self, messages, *, model=None, temperature=None) -> str:
        is_sql = messages[0]["content"].startswith(SQL_GENERATOR_PROMPT[:30])
        name = "sql" if is_sql else "summary"
        self._record(name)
        if name in self.fail:
            raise GenerationError(f"{name} unavailable")
        if is_sql:
            return self.sql
        self.summary_messages = messages
        return self.summary

    async def chat_reply(self, history, message: str) -> str:
        self._record("chat")
        if "chat" in self.fail:
            raise GenerationError("chat unavailable")
        self.history = history
        return self.chat


@pytest.fixture
async def db(tmp_path):
    manager = DatabaseManager(DatabaseConfig(url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"))
    await manager.initialize()
    await manager.create_schema()
    yield manager
    await manager.close()


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def make_handler(db, config):
    def _make(llm: FakeLLM, **kwargs) -> MessageHandler:
        return MessageHandler(kwargs.pop("config", config), db=db, llm=llm, **kwargs)

    return _make


async def add_message(db: DatabaseManager, user_id: int, role: str, content: str) -> None:
    async with db.get_session() as session:
        await message_repo.create(
            session, obj_in={"user_id": user_id, "role": role, "content": content}
        )


async def add_set(db: DatabaseManager, user_id: int, exercise: str, weight: float, reps: int) -> None:
    async with db.get_session() as session:
        await workout_set_repo.create(
            session,
            obj_in={"user_id": user_id, "exercise": exercise, "weight": weight, "reps": reps},
        )


async def stored_rows(db: DatabaseManager, user_id: int) -> tuple[list, list]:
    """(messages, workout_sets) persisted for a user, in id order."""
    async with db.read_only_session() as session:
        messages = await message_repo.get_history(session, user_id, limit=1000)
        sets = await workout_set_repo.get_by_user(session, user_id)
    return messages, sets
