"""Exceptions raised along the message pipeline."""


class RepbotError(Exception):
    """Base class for failures that abort a single request."""


class ClassificationError(RepbotError):
    """The intent classifier failed or returned no usable label."""


class ExtractionError(RepbotError):
    """Structured workout extraction failed or violated the expected shape."""


class GenerationError(RepbotError):
    """A free-text generation call (chat, SQL, summary) failed."""


class QueryError(RepbotError):
    """A generated read statement could not be executed."""


class UnsafeQueryError(QueryError):
    """A generated statement was rejected before it reached the database."""


class PersistenceError(RepbotError):
    """The persistence batch failed and was rolled back."""
