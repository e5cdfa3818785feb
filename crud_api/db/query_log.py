"""Per-request recorder of SQL statements, keyed by connection name."""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from sqlalchemy import Engine
from sqlalchemy import event

QueryLogs = dict[str, list[str]]


def format_query_entry(statement: str, parameters: Any) -> str:
    """Render one executed statement as a single log line."""
    sql = " ".join(statement.split())
    if not parameters:
        return sql
    return f"{sql} -- params={parameters!r}"


class QueryLogger:
    """Collect statements executed on attached engines while a capture is open.

    Outside a `capture()` block nothing is recorded, so the listeners are
    inert for scripts and background work.
    """

    def __init__(self) -> None:
        self._current: ContextVar[QueryLogs | None] = ContextVar("crud_api_query_log", default=None)
        self._listeners: dict[str, tuple[Engine, Any]] = {}

    def attach(self, name: str, engine: Engine) -> None:
        """Record statements executed on `engine` under `name`."""
        if name in self._listeners:
            self.detach(name)

        def _record(conn, cursor, statement, parameters, context, executemany) -> None:
            logs = self._current.get()
            if logs is None:
                return
            logs.setdefault(name, []).append(format_query_entry(statement, parameters))

        event.listen(engine, "before_cursor_execute", _record)
        self._listeners[name] = (engine, _record)

    def detach(self, name: str) -> None:
        """Stop recording statements for a connection name."""
        attached = self._listeners.pop(name, None)
        if attached is None:
            return
        engine, listener = attached
        if event.contains(engine, "before_cursor_execute", listener):
            event.remove(engine, "before_cursor_execute", listener)

    @contextmanager
    def capture(self) -> Generator[QueryLogs, None, None]:
        """Open a fresh log buffer for the current context."""
        logs: QueryLogs = {}
        token = self._current.set(logs)
        try:
            yield logs
        finally:
            self._current.reset(token)

    def get_logs(self) -> QueryLogs:
        """Return a copy of the statements recorded in the open buffer."""
        logs = self._current.get()
        if not logs:
            return {}
        return {name: list(entries) for name, entries in logs.items() if entries}


query_logger = QueryLogger()
