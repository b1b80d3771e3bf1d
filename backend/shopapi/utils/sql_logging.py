"""Pretty SQL statement logging for the SQLAlchemy engine.

Every statement executed through an engine with logging installed is
written to the ``shopapi.sql`` logger as a single entry::

    3.21ms | statement | connection 1 |
        SELECT orders.id, member.name
        FROM orders
        JOIN member ON member.id = orders.member_id
        -- params: ()

DDL (``CREATE``/``ALTER``/``DROP``) keeps one column definition per line.
The module also exposes :func:`count_statements`, used by tests and local
profiling to check how many queries a given loading strategy issues.
"""

from __future__ import annotations

import itertools
import logging
import re
import time
from contextlib import contextmanager
from typing import Iterator, List

from sqlalchemy import event
from sqlalchemy.engine import Engine

logger = logging.getLogger("shopapi.sql")

_DDL_PREFIXES = ("create", "alter", "drop", "comment")
_CLAUSE_BREAK = re.compile(
    r"(?<!OUTER)(?<!INNER)(?<!LEFT)\s+"
    r"(?=(?:LEFT OUTER JOIN|INNER JOIN|LEFT JOIN|JOIN|FROM|WHERE|GROUP BY|HAVING|ORDER BY|LIMIT|OFFSET|VALUES|SET)\b)"
)
_INDENT = "    "
_connection_ids = itertools.count(1)


def _split_top_level(text: str, sep: str = ",") -> List[str]:
    """Split ``text`` on ``sep`` ignoring separators nested in parentheses."""
    parts = []
    depth = 0
    current = []
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == sep and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return parts


def _format_ddl(text: str) -> str:
    start = text.find("(")
    end = text.rfind(")")
    if start == -1 or end <= start:
        return "\n" + _INDENT + text
    head = text[:start].strip()
    body = _split_top_level(text[start + 1:end])
    lines = [head + " ("]
    lines.extend(_INDENT + col + ("," if i < len(body) - 1 else "") for i, col in enumerate(body))
    lines.append(")" + text[end + 1:])
    return "\n" + "\n".join(_INDENT + line for line in lines)


def _format_basic(text: str) -> str:
    lines = []
    for clause in _CLAUSE_BREAK.sub("\n", text).split("\n"):
        if clause.startswith("SELECT "):
            columns = _split_top_level(clause[len("SELECT "):])
            clause = "SELECT\n" + ",\n".join(_INDENT * 2 + c for c in columns)
        lines.append(clause)
    return "\n" + "\n".join(_INDENT + line for line in lines)


def format_sql(sql: str) -> str:
    """Return ``sql`` laid out over several lines for logging."""
    text = " ".join(sql.split())
    if not text:
        return ""
    if text.lower().startswith(_DDL_PREFIXES):
        return _format_ddl(text)
    return _format_basic(text)


def format_message(elapsed_ms: float, category: str, connection_id: int, sql: str, parameters=None) -> str:
    message = f"{elapsed_ms:.2f}ms | {category} | connection {connection_id} |{format_sql(sql)}"
    if parameters:
        message += f"\n{_INDENT}-- params: {parameters!r}"
    return message


def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    conn.info.setdefault("query_start_time", []).append(time.perf_counter())


def _connection_id(conn) -> int:
    if "connection_id" not in conn.info:
        conn.info["connection_id"] = next(_connection_ids)
    return conn.info["connection_id"]


def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    started = conn.info["query_start_time"].pop()
    if not logger.isEnabledFor(logging.INFO):
        return
    elapsed_ms = (time.perf_counter() - started) * 1000.0
    category = "batch" if executemany else "statement"
    logger.info(format_message(elapsed_ms, category, _connection_id(conn), statement, parameters))


def _handle_error(exception_context):
    # after_cursor_execute is skipped for failed statements
    conn = exception_context.connection
    if conn is None:
        return
    started = conn.info.get("query_start_time")
    if started:
        started.pop()


def install_sql_logging(engine: Engine) -> None:
    """Attach the statement logger to ``engine`` (idempotent)."""
    if event.contains(engine, "before_cursor_execute", _before_cursor_execute):
        return
    event.listen(engine, "before_cursor_execute", _before_cursor_execute)
    event.listen(engine, "after_cursor_execute", _after_cursor_execute)
    event.listen(engine, "handle_error", _handle_error)


class StatementCounter:
    """Collects the statements executed while a :func:`count_statements` block is open."""

    def __init__(self):
        self.statements: List[str] = []

    @property
    def selects(self) -> List[str]:
        return [s for s in self.statements if s.lstrip().upper().startswith("SELECT")]

    @property
    def select_count(self) -> int:
        return len(self.selects)

    def __len__(self) -> int:
        return len(self.statements)


@contextmanager
def count_statements(engine: Engine) -> Iterator[StatementCounter]:
    """Record every statement ``engine`` executes inside the ``with`` block."""
    counter = StatementCounter()

    def _record(conn, cursor, statement, parameters, context, executemany):
        counter.statements.append(statement)

    event.listen(engine, "before_cursor_execute", _record)
    try:
        yield counter
    finally:
        event.remove(engine, "before_cursor_execute", _record)
