"""LLM schemas for intent classification, workout extraction and chat messages."""

from typing import Iterator, List, Literal, Tuple

from pydantic import BaseModel, Field


class IntentCategory(BaseModel):
    """Classification of a user message into one of the routing categories."""
    category: Literal["insert", "query", "chat"] = Field(
        description=(
            "insert: the message reports workout data (exercise, sets, reps, weight). "
            "query: the message asks about previously logged workout data. "
            "chat: anything else."
        )
    )


class ExerciseSet(BaseModel):
    """A single set: repetitions performed at a given weight."""
    reps: int = Field(
        ge=0,
        le=255,
        description="Number of repetitions in the set"
    )
    weight: float = Field(
        description="Weight used in the set, in kilograms (kg)"
    )


class ExerciseRecord(BaseModel):
    """One exercise from the message with its own ordered sets."""
    exercise_name: str = Field(
        description="Name of the exercise (e.g. 'squats', 'bench press')"
    )
    sets: List[ExerciseSet] = Field(
        default_factory=list,
        description="The sets of the exercise, in the order they were performed"
    )


class ExerciseList(BaseModel):
    """All exercises extracted from a single message."""
    exercises: List[ExerciseRecord] = Field(
        default_factory=list,
        description="List of exercises, each exercise with its own sets"
    )

    def iter_sets(self) -> Iterator[Tuple[str, ExerciseSet]]:
        """Yield (exercise_name, set) pairs in message order."""
        for record in self.exercises:
            for exercise_set in record.sets:
                yield record.exercise_name, exercise_set

    @property
    def set_count(self) -> int:
        return sum(len(record.sets) for record in self.exercises)


class ChatMessage(BaseModel):
    """A role-tagged conversation message."""
    role: Literal["user", "assistant"]
    content: str
