"""Core message processing — shared by CLI and Telegram bot."""

import logging

from .config import Config
from .database.connection import DatabaseManager
from .database.persistence import PersistenceGateway
from .errors import PersistenceError, RepbotError
from .llm.client import LLMClient
from .llm.context import load_history
from .query import QueryEngine
from .state import ConversationState

logger = logging.getLogger(__name__)


class MessageHandler:
    """Routes a message through classification to one branch, then persists the turn.

    Collaborators are built from ``config`` unless passed in explicitly.
    """

    def __init__(
        self,
        config: Config,
        *,
        db: DatabaseManager | None = None,
        llm: LLMClient | None = None,
        query_engine: QueryEngine | None = None,
        gateway: PersistenceGateway | None = None,
    ) -> None:
        self._config = config
        self._db = db or DatabaseManager(config.database, echo=config.debug)
        self._llm = llm or LLMClient(config.llm)
        self._query = query_engine or QueryEngine(self._db, self._llm, config.conversation)
        self._gateway = gateway or PersistenceGateway(self._db)
        self._branches = {
            "insert": self._handle_insert,
            "query": self._handle_query,
            "chat": self._handle_chat,
        }

    async def initialize(self) -> None:
        await self._db.initialize()
        await self._db.create_schema()
        await self._llm.initialize()

    async def close(self) -> None:
        await self._llm.close()
        await self._db.close()

    async def process(self, message: str, user_id: int) -> str | None:
        """Handle one inbound message and return the reply to send, if any.

        Returns None when nothing should be sent: classification or branch
        failure, or an unrecognized category. Errors never escape.
        """
        state = ConversationState.start(user_id, message)

        try:
            intent = await self._llm.classify_intent(message)
            state.set_category(intent.category)
        except Exception:
            logger.exception("classify failed for user %s", user_id)
            return None
        logger.info("User %s message classified as %s", user_id, state.category)

        branch = self._branches.get(state.category)
        if branch is None:
            logger.warning(
                "No branch for category %r (user %s); dropping message",
                state.category,
                user_id,
            )
            return None

        try:
            await branch(state)
        except RepbotError as e:
            logger.error("%s failed for user %s: %s", state.category, user_id, e)
            return None
        except Exception:
            logger.exception("%s failed for user %s", state.category, user_id)
            return None

        if not state.has_single_reply():
            logger.error(
                "%s branch for user %s did not produce exactly one reply",
                state.category,
                user_id,
            )
            return None

        try:
            await self._gateway.persist(state)
        except PersistenceError:
            return self._config.conversation.retry_reply

        return state.reply

    # ------------------------------------------------------------------
    # Branches: each appends exactly one assistant message or raises
    # ------------------------------------------------------------------

    async def _handle_insert(self, state: ConversationState) -> None:
        exercise_list = await self._llm.extract_exercises(state.user_input)
        if not exercise_list.set_count:
            state.add_reply(self._config.conversation.empty_insert_reply)
            return
        state.exercise_list = exercise_list
        state.add_reply(self._config.conversation.insert_reply)

    async def _handle_query(self, state: ConversationState) -> None:
        await self._query.answer(state)

    async def _handle_chat(self, state: ConversationState) -> None:
        history = await load_history(
            self._db, state.user_id, self._config.conversation.history_limit
        )
        reply = await self._llm.chat_reply(history, state.user_input)
        state.add_reply(reply)
