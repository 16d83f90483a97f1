"""Per-request conversation state threaded through classification, routing and persistence."""

from pydantic import BaseModel, Field

from .llm.schemas import ChatMessage, ExerciseList


class ConversationState(BaseModel):
    """Everything produced while handling one inbound message.

    Created when a message arrives and discarded once the reply is sent.
    Continuity across messages comes from persisted history, never from here.
    """

    user_id: int = Field(frozen=True)
    user_input: str = Field(frozen=True)
    category: str | None = None
    messages: list[ChatMessage] = Field(default_factory=list)
    exercise_list: ExerciseList | None = None

    @classmethod
    def start(cls, user_id: int, user_input: str) -> "ConversationState":
        return cls(
            user_id=user_id,
            user_input=user_input,
            messages=[ChatMessage(role="user", content=user_input)],
        )

    def set_category(self, category: str) -> None:
        if self.category is not None:
            raise ValueError(f"Category already set to {self.category!r}")
        self.category = category

    def add_reply(self, content: str) -> None:
        self.messages.append(ChatMessage(role="assistant", content=content))

    @property
    def reply(self) -> str | None:
        """Content of the last message if it came from the assistant."""
        if self.messages and self.messages[-1].role == "assistant":
            return self.messages[-1].content
        return None

    def has_single_reply(self) -> bool:
        assistant = [m for m in self.messages if m.role == "assistant"]
        return len(assistant) == 1 and self.messages[-1].role == "assistant"
