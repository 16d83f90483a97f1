"""Configuration management for repbot."""

import logging
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str = Field(
        default="sqlite+aiosqlite:///fitness_app.db",
        description="SQLAlchemy database URL",
    )
    pool_size: int = Field(default=5, description="Connection pool size (ignored for SQLite)")
    max_overflow: int = Field(default=10, description="Max overflow connections (ignored for SQLite)")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")


class LLMConfig(BaseModel):
    """LLM configuration for any OpenAI-compatible endpoint."""

    base_url: str = Field(
        default="https://api.groq.com/openai/v1", description="OpenAI-compatible base URL"
    )
    api_key: str = Field(default="", description="API key for the endpoint")
    model: str = Field(
        default="moonshotai/kimi-k2-instruct-0905",
        description="Model for classification, extraction, SQL and summaries",
    )
    chat_model: str = Field(
        default="llama-3.3-70b-versatile", description="Model for open chat replies"
    )
    timeout: float = Field(default=60, description="Per-request timeout in seconds")
    max_attempts: int = Field(
        default=3, ge=1, description="Attempts on connection/timeout errors"
    )
    temperature: float = Field(default=0.1, description="Sampling temperature for structured calls")


class ConversationConfig(BaseModel):
    """Routing and reply behaviour."""

    history_limit: int = Field(default=10, ge=0, description="Past messages replayed into chat")
    max_result_rows: int = Field(default=200, ge=1, description="Rows rendered for a data query")
    insert_reply: str = Field(default="Workout saved.", description="Reply after logging sets")
    empty_insert_reply: str = Field(
        default=(
            "I couldn't find any sets in that. Send the exercise name, "
            "reps and weight, e.g. 'squats: 10x60kg, 8x70kg'."
        ),
        description="Reply when extraction finds no exercises",
    )
    retry_reply: str = Field(
        default="Sorry, I couldn't save that. Please try again.",
        description="Reply sent when the conversation could not be persisted",
    )


class TelegramConfig(BaseModel):
    """Telegram bot configuration."""

    token: str = Field(default="", description="Bot token")
    allowed_user_ids: list[int] = Field(
        default_factory=list,
        description="Telegram user IDs allowed to use the bot (empty = no restriction)",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Log level"
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    conversation: ConversationConfig = Field(default_factory=ConversationConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Application settings
    debug: bool = Field(default=False, description="Enable debug mode")
    environment: Literal["development", "production"] = Field(
        default="development", description="Application environment"
    )


def load_config(**overrides) -> Config:
    """Build the process-wide configuration. Call once at startup and pass it down."""
    return Config(**overrides)


def configure_logging(config: Config) -> None:
    logging.basicConfig(
        level=config.logging.level,
        format=config.logging.format,
    )
