"""Async OpenAI-compatible client with Instructor integration for structured outputs."""

import logging
from typing import Awaitable, Callable, Optional, TypeVar

import instructor
from openai import APIConnectionError, AsyncOpenAI
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config import LLMConfig
from ..errors import ClassificationError, ExtractionError, GenerationError
from .context import to_openai_messages
from .schemas import ChatMessage, ExerciseList, IntentCategory

logger = logging.getLogger(__name__)

T = TypeVar("T")

CLASSIFIER_PROMPT = """You classify messages sent to a fitness app into exactly one category:
- insert: the message reports workout data such as exercise, sets, reps and weight.
- query: the message asks for information about previously logged workout data.
- chat: neither insert nor query."""

EXTRACTION_PROMPT = """Parse the user's message to extract the workout session it describes.
Identify every exercise and its sets; each set has its own reps and weight.
- Keep exercise names as the user wrote them, lower case (e.g. "squats").
- "3 sets of 10 at 60kg" means three sets, each with 10 reps at 60.
- "10x60kg" means 10 reps at 60 kg.
- Weights are in kilograms. Convert pounds to kilograms.
- If no sets are described, return an empty exercises list."""

CHAT_PROMPT = """You are a helpful assistant of a fitness app. Tell the user they can send \
their workouts with exercise name, sets, reps and weight, and ask about their logged \
training. The earlier messages of this conversation follow as context."""


class LLMClient:
    """Manages LLM communication via an OpenAI-compatible API + Instructor."""

    def __init__(self, config: LLMConfig) -> None:
        self._config = config
        self._client: Optional[AsyncOpenAI] = None
        self._instructor_client: Optional[instructor.AsyncInstructor] = None

    async def initialize(self) -> None:
        """Initialize the LLM client."""
        if self._client is not None:
            return
        self._client = AsyncOpenAI(
            base_url=self._config.base_url,
            api_key=self._config.api_key or "unset",
            timeout=self._config.timeout,
            max_retries=0,
        )
        self._instructor_client = instructor.from_openai(
            self._client, mode=instructor.Mode.JSON
        )

    async def _call(self, request: Callable[[], Awaitable[T]]) -> T:
        """Run ``request``, retrying only connection and timeout failures."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._config.max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(APIConnectionError),
            reraise=True,
        ):
            with attempt:
                return await request()

    async def classify_intent(self, message: str) -> IntentCategory:
        """Classify a message as insert, query or chat. No fallback label is guessed."""
        if not self._instructor_client:
            await self.initialize()

        try:
            return await self._call(
                lambda: self._instructor_client.chat.completions.create(
                    model=self._config.model,
                    messages=[
                        {"role": "system", "content": CLASSIFIER_PROMPT},
                        {"role": "user", "content": message},
                    ],
                    response_model=IntentCategory,
                    temperature=self._config.temperature,
                    max_retries=1,
                )
            )
        except Exception as e:
            raise ClassificationError(f"Intent classification failed: {e}") from e

    async def extract_exercises(self, message: str) -> ExerciseList:
        """Extract exercises and their sets. Any shape violation is a hard failure."""
        if not self._instructor_client:
            await self.initialize()

        try:
            return await self._call(
                lambda: self._instructor_client.chat.completions.create(
                    model=self._config.model,
                    messages=[
                        {"role": "system", "content": EXTRACTION_PROMPT},
                        {"role": "user", "content": message},
                    ],
                    response_model=ExerciseList,
                    temperature=self._config.temperature,
                    max_retries=1,
                )
            )
        except Exception as e:
            raise ExtractionError(f"Workout extraction failed: {e}") from e

    async def generate_text(
        self,
        messages: list[dict],
        *,
        model: str | None = None,
        temperature: float | None = None,
    ) -> str:
        """Free-text completion for an already assembled message list."""
        if not self._client:
            await self.initialize()

        try:
            response = await self._call(
                lambda: self._client.chat.completions.create(
                    model=model or self._config.model,
                    messages=messages,
                    temperature=self._config.temperature if temperature is None else temperature,
                )
            )
        except Exception as e:
            raise GenerationError(f"Text generation failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise GenerationError("Text generation returned no content")
        return content.strip()

    async def chat_reply(self, history: list[ChatMessage], message: str) -> str:
        """Open conversation reply, given the replayed history window."""
        messages = [{"role": "system", "content": CHAT_PROMPT}]
        messages.extend(to_openai_messages(history))
        messages.append({"role": "user", "content": message})
        return await self.generate_text(
            messages, model=self._config.chat_model, temperature=0.7
        )

    async def close(self) -> None:
        """Clean up LLM client resources."""
        if self._client:
            await self._client.close()
            self._client = None
            self._instructor_client = None
