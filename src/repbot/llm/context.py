"""Conversation context assembly — replays persisted messages into a chat history."""

import logging

from ..database.connection import DatabaseManager
from ..database.repository import MessageRepository, message_repo
from .schemas import ChatMessage

logger = logging.getLogger(__name__)


async def load_history(
    db: DatabaseManager,
    user_id: int,
    limit: int,
    *,
    repo: MessageRepository = message_repo,
) -> list[ChatMessage]:
    """Load the user's earliest ``limit`` messages, oldest first.

    Storage errors are logged and yield an empty history; missing context
    degrades the reply but never blocks the request.
    """
    if limit <= 0:
        return []

    try:
        async with db.read_only_session() as session:
            rows = await repo.get_history(session, user_id, limit=limit)
    except Exception:
        logger.warning("load_history failed for user %s", user_id, exc_info=True)
        return []

    history: list[ChatMessage] = []
    for row in rows:
        if row.role not in ("user", "assistant"):
            logger.debug("Skipping message %s with unknown role %r", row.id, row.role)
            continue
        history.append(ChatMessage(role=row.role, content=row.content))
    return history


def to_openai_messages(history: list[ChatMessage]) -> list[dict]:
    return [{"role": m.role, "content": m.content} for m in history]
