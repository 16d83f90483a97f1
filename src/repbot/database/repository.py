"""Async repository pattern implementation for database operations."""

from typing import Generic, List, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Base, Message, WorkoutSet

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with async create/read operations."""

    def __init__(self, model: Type[ModelType]) -> None:
        self.model = model

    async def create(self, session: AsyncSession, *, obj_in: dict) -> ModelType:
        """Create a new record."""
        db_obj = self.model(**obj_in)
        session.add(db_obj)
        await session.flush()
        await session.refresh(db_obj)
        return db_obj


class WorkoutSetRepository(BaseRepository[WorkoutSet]):
    """Repository for WorkoutSet operations."""

    async def get_by_user(
        self, session: AsyncSession, user_id: int, *, limit: int = 1000
    ) -> List[WorkoutSet]:
        """Get a user's sets in the order they were logged."""
        stmt = (
            select(WorkoutSet)
            .where(WorkoutSet.user_id == user_id)
            .order_by(WorkoutSet.id)
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())


class MessageRepository(BaseRepository[Message]):
    """Repository for Message operations."""

    async def get_history(
        self, session: AsyncSession, user_id: int, *, limit: int = 10
    ) -> List[Message]:
        """Get the user's *earliest* ``limit`` messages, oldest first.

        This is a replay window anchored at the start of the conversation,
        not the most recent messages.
        """
        stmt = (
            select(Message)
            .where(Message.user_id == user_id)
            .order_by(Message.id.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())


# Repository instances
workout_set_repo = WorkoutSetRepository(WorkoutSet)
message_repo = MessageRepository(Message)
