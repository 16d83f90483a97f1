"""Transactional write path for a handled conversation turn."""

import logging

from ..errors import PersistenceError
from ..state import ConversationState
from .connection import DatabaseManager
from .repository import (
    MessageRepository,
    WorkoutSetRepository,
    message_repo,
    workout_set_repo,
)

logger = logging.getLogger(__name__)


class PersistenceGateway:
    """Writes a conversation turn's messages and logged sets in one transaction.

    Either every row of the turn is committed or none is. Replaying the same
    state twice writes the rows twice; there is no dedup key.
    """

    def __init__(
        self,
        db: DatabaseManager,
        *,
        messages: MessageRepository = message_repo,
        workout_sets: WorkoutSetRepository = workout_set_repo,
    ) -> None:
        self._db = db
        self._messages = messages
        self._workout_sets = workout_sets

    async def persist(self, state: ConversationState) -> None:
        """Persist ``state`` atomically. Raises PersistenceError after rolling back."""
        try:
            async with self._db.get_session() as session:
                for message in state.messages:
                    await self._messages.create(
                        session,
                        obj_in={
                            "user_id": state.user_id,
                            "role": message.role,
                            "content": message.content,
                        },
                    )

                if state.exercise_list is not None:
                    for exercise_name, exercise_set in state.exercise_list.iter_sets():
                        await self._workout_sets.create(
                            session,
                            obj_in={
                                "user_id": state.user_id,
                                "exercise": exercise_name,
                                "weight": exercise_set.weight,
                                "reps": exercise_set.reps,
                            },
                        )
        except Exception as e:
            logger.error(
                "persist failed for user %s, batch rolled back", state.user_id, exc_info=True
            )
            raise PersistenceError(f"Could not persist turn for user {state.user_id}") from e

        logger.debug(
            "Persisted %d messages and %d sets for user %s",
            len(state.messages),
            state.exercise_list.set_count if state.exercise_list else 0,
            state.user_id,
        )
