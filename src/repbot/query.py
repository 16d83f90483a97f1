"""Natural-language data queries: generate SQL, run it read-only, summarize the rows.

Generated statements never touch ``workout_sets`` directly. They are written
against ``my_sets``, a common table expression the executor prepends, which
selects only the requesting user's rows. Statements that are not a single
plain SELECT, or that name a real table or system catalog, are rejected
before reaching the database.
"""

import logging
import re
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Iterable, Sequence

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .config import ConversationConfig
from .database.connection import DatabaseManager
from .database.models import Base
from .errors import QueryError, UnsafeQueryError
from .llm.client import LLMClient
from .state import ConversationState

logger = logging.getLogger(__name__)

SCOPED_VIEW = "my_sets"
SCOPED_VIEW_SQL = (
    "SELECT id, user_id, exercise, weight, reps, created_at "
    "FROM workout_sets WHERE user_id = :user_id"
)

SQL_GENERATOR_PROMPT = """You are a SQL query generator for a fitness app database ({dialect}).
Translate the user's request into ONE read-only SELECT statement.
Always include "user_id = {user_id}" in the WHERE clause of your query.
The only table you may use is:

{view} (
    id INTEGER PRIMARY KEY,
    user_id INTEGER,
    exercise VARCHAR(100),  -- exercise name as the user wrote it, lower case
    weight FLOAT,           -- kilograms
    reps INTEGER,
    created_at TIMESTAMP
);

Do not use any other table, WITH clauses, comments or multiple statements.
Write string values in single quotes; never use double quotes, backticks, brackets or backslashes.
CRITICAL: Return ONLY the SQL query, no markdown formatting, no code blocks, no explanations."""

SUMMARY_PROMPT = """You read the user's question and the results of the database query \
that was run for it, and answer the user based on that data. If there are no rows, \
say there is no logged data for that yet. Just give the answer, no flags, labels or SQL."""

FORBIDDEN_KEYWORDS = frozenset({
    "alter", "analyze", "attach", "call", "create", "delete", "detach", "drop",
    "dumpfile", "exec", "execute", "grant", "handler", "insert", "into",
    "load_file", "lock", "merge", "outfile", "pragma", "reindex", "rename",
    "replace", "revoke", "set", "truncate", "unlock", "update", "upsert",
    "vacuum", "with",
})

SYSTEM_CATALOGS = frozenset({
    "information_schema", "mysql", "performance_schema", "pg_catalog",
    "sqlite_master", "sqlite_schema", "sqlite_temp_master", "sqlite_temp_schema",
    "sys",
})

_STRING_LITERAL = re.compile(r"'(?:[^']|'')*'")
_QUOTING_CHARS = frozenset('"`[]\\')
_WORD = re.compile(r"[a-z_][a-z0-9_$]*")


def clean_sql_response(raw: str) -> str:
    """Strip a surrounding markdown code fence from model output.

    >>> clean_sql_response("```sql\\nSELECT 1;\\n```")
    'SELECT 1;'
    """
    cleaned = raw.strip()
    cleaned = cleaned.removeprefix("```sql")
    cleaned = cleaned.removeprefix("```")
    cleaned = cleaned.removesuffix("```")
    return cleaned.strip()


def scope_statement(sql: str) -> str:
    """Validate a generated statement and wrap it in the per-user CTE.

    Raises UnsafeQueryError for anything but a single SELECT over ``my_sets``.
    """
    statement = sql.strip()
    while statement.endswith(";"):
        statement = statement[:-1].rstrip()
    if not statement:
        raise UnsafeQueryError("Empty statement")

    # Only plain single-quoted literals are understood; any other quoting or
    # escaping could hide a table name from the checks below.
    quoting = sorted(set(statement) & _QUOTING_CHARS)
    if quoting:
        raise UnsafeQueryError(
            f"Quoted identifiers and escapes are not allowed: {' '.join(quoting)}"
        )

    inspected = _STRING_LITERAL.sub("''", statement).lower()
    if ";" in inspected:
        raise UnsafeQueryError("Multiple statements are not allowed")
    if "--" in inspected or "/*" in inspected or "#" in inspected:
        raise UnsafeQueryError("Comments are not allowed")
    if not re.match(r"select\b", inspected):
        raise UnsafeQueryError("Only SELECT statements are allowed")

    words = set(_WORD.findall(inspected))
    forbidden = words & FORBIDDEN_KEYWORDS
    if forbidden:
        raise UnsafeQueryError(f"Forbidden keyword(s): {', '.join(sorted(forbidden))}")
    tables = words & (set(Base.metadata.tables) | SYSTEM_CATALOGS)
    if tables:
        raise UnsafeQueryError(
            f"Only {SCOPED_VIEW} may be queried, got: {', '.join(sorted(tables))}"
        )

    # Colons in the generated text are literal, not bind parameters.
    escaped = statement.replace(":", "\\:")
    return f"WITH {SCOPED_VIEW} AS ({SCOPED_VIEW_SQL}) {escaped}"


class CellKind(Enum):
    """Closed set of value kinds a result cell can hold."""

    NULL = "null"
    BYTES = "bytes"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    OTHER = "other"


def cell_kind(value: Any) -> CellKind:
    if value is None:
        return CellKind.NULL
    if isinstance(value, (bytes, bytearray, memoryview)):
        return CellKind.BYTES
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return CellKind.BOOLEAN
    if isinstance(value, int):
        return CellKind.INTEGER
    if isinstance(value, (float, Decimal)):
        return CellKind.FLOAT
    if isinstance(value, date):
        return CellKind.TIMESTAMP
    return CellKind.OTHER


_RENDERERS: dict[CellKind, Callable[[Any], str]] = {
    CellKind.NULL: lambda v: "NULL",
    CellKind.BYTES: lambda v: bytes(v).decode("utf-8", errors="replace"),
    CellKind.INTEGER: lambda v: str(v),
    CellKind.FLOAT: lambda v: f"{v:.2f}",
    CellKind.BOOLEAN: lambda v: "true" if v else "false",
    CellKind.TIMESTAMP: lambda v: v.strftime("%Y-%m-%d"),
    CellKind.OTHER: lambda v: str(v),
}


def render_cell(value: Any) -> str:
    return _RENDERERS[cell_kind(value)](value)


def render_table(columns: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Header of column names, then one pipe-delimited line per row."""
    lines = [" | ".join(columns)]
    for row in rows:
        lines.append(" | ".join(render_cell(value) for value in row))
    return "\n".join(lines)


class QueryEngine:
    """Answers data questions: generate -> execute (rolled back) -> summarize."""

    def __init__(
        self, db: DatabaseManager, llm: LLMClient, config: ConversationConfig
    ) -> None:
        self._db = db
        self._llm = llm
        self._config = config

    async def generate(self, question: str, user_id: int) -> str:
        system = SQL_GENERATOR_PROMPT.format(
            dialect=self._db.dialect_name, user_id=user_id, view=SCOPED_VIEW
        )
        raw = await self._llm.generate_text(
            [
                {"role": "system", "content": system},
                {"role": "user", "content": question},
            ],
            temperature=0.0,
        )
        sql = clean_sql_response(raw)
        logger.debug("Generated SQL for user %s: %s", user_id, sql)
        return sql

    async def execute(self, sql: str, user_id: int) -> str:
        """Run a generated statement scoped to ``user_id`` and render the rows."""
        statement = scope_statement(sql)
        try:
            async with self._db.read_only_session() as session:
                result = await session.execute(text(statement), {"user_id": user_id})
                columns = list(result.keys())
                rows = []
                for row in result:
                    rows.append(tuple(row))
                    if len(rows) >= self._config.max_result_rows:
                        logger.info(
                            "Query for user %s truncated at %d rows",
                            user_id,
                            self._config.max_result_rows,
                        )
                        break
        except SQLAlchemyError as e:
            raise QueryError(f"Generated query failed: {e}") from e
        return render_table(columns, rows)

    async def summarize(self, question: str, table: str) -> str:
        return await self._llm.generate_text(
            [
                {"role": "system", "content": SUMMARY_PROMPT},
                {"role": "user", "content": question},
                {"role": "system", "content": f"Query Results:\n{table}"},
            ]
        )

    async def answer(self, state: ConversationState) -> str:
        """Run the whole flow and append the summary as the assistant reply.

        Any failure propagates and leaves ``state.messages`` untouched.
        """
        sql = await self.generate(state.user_input, state.user_id)
        table = await self.execute(sql, state.user_id)
        reply = await self.summarize(state.user_input, table)
        state.add_reply(reply)
        return reply
