"""SQLAlchemy async models for repbot: users, logged sets and the message log."""

from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

MESSAGE_ROLES = ("user", "assistant")


def _now_utc() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class User(Base):
    """A person talking to the bot, keyed by the messaging channel's numeric id."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    first_name: Mapped[str | None] = mapped_column(String(20), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    phone: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_now_utc
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_now_utc, onupdate=_now_utc
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, first_name='{self.first_name}', active={self.active})>"


class WorkoutSet(Base):
    """A single logged set. One row per (exercise, set) pair from a message."""

    __tablename__ = "workout_sets"

    # BigInteger primary keys do not autoincrement on SQLite; Integer variant keeps it working there.
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    exercise: Mapped[str] = mapped_column(String(100), nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False)
    reps: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_now_utc
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_now_utc, onupdate=_now_utc
    )

    __table_args__ = (
        Index("idx_workout_sets_user_id", "user_id"),
        Index("idx_workout_sets_user_exercise", "user_id", "exercise"),
    )

    def __repr__(self) -> str:
        return (
            f"<WorkoutSet(id={self.id}, user_id={self.user_id}, exercise='{self.exercise}', "
            f"reps={self.reps}, weight={self.weight})>"
        )


class Message(Base):
    """Every user message and assistant reply, in arrival order."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    role: Mapped[str] = mapped_column(
        Enum(*MESSAGE_ROLES, name="message_role"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_now_utc
    )

    __table_args__ = (
        Index("idx_messages_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, user_id={self.user_id}, role='{self.role}')>"
