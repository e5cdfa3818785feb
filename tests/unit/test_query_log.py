"""Unit tests for the per-request query log collector."""

from __future__ import annotations

from sqlalchemy import text

from crud_api.db.base import build_engine
from crud_api.db.query_log import QueryLogger
from crud_api.db.query_log import format_query_entry


def _logger_with_engine():
    engine = build_engine("sqlite+pysqlite://")
    logger = QueryLogger()
    logger.attach("test", engine)
    with engine.connect():
        pass
    return logger, engine


def test_nothing_is_recorded_outside_a_capture() -> None:
    logger, engine = _logger_with_engine()

    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))

    assert logger.get_logs() == {}


def test_statements_are_recorded_per_connection_name() -> None:
    logger, engine = _logger_with_engine()

    with logger.capture() as logs:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            conn.execute(text("SELECT :value"), {"value": 7})
        recorded = logger.get_logs()

    assert recorded["test"][0] == "SELECT 1"
    assert recorded["test"][1].startswith("SELECT ?")
    assert "params=(7,)" in recorded["test"][1]
    assert logs == recorded
    assert logger.get_logs() == {}


def test_each_capture_starts_empty() -> None:
    logger, engine = _logger_with_engine()

    with logger.capture():
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    with logger.capture():
        assert logger.get_logs() == {}


def test_detach_stops_recording() -> None:
    logger, engine = _logger_with_engine()
    logger.detach("test")

    with logger.capture():
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        assert logger.get_logs() == {}


def test_format_query_entry_collapses_whitespace() -> None:
    assert format_query_entry("SELECT id\n  FROM posts", ()) == "SELECT id FROM posts"
    assert format_query_entry("SELECT ?", (1,)) == "SELECT ? -- params=(1,)"
