"""Shared pytest fixtures for CRUD API test suites."""

from collections.abc import Generator
from dataclasses import replace
import os
from pathlib import Path
import sys

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Must be set before crud_api.db.base builds its engine.
os.environ["CRUD_API_DATABASE_URL"] = "sqlite+pysqlite://"
os.environ.pop("CRUD_API_DEBUG", None)
os.environ.pop("CRUD_API_QUERY_LOG", None)
os.environ.pop("CRUD_API_VALIDATION_SINGLE_MESSAGE", None)


@pytest.fixture(scope="session")
def engine():
    from crud_api.db.base import engine as app_engine
    from crud_api.db.base import init_db

    init_db(app_engine)
    return app_engine


@pytest.fixture(autouse=True)
def clean_tables(engine) -> None:
    """Reset mutable tables for deterministic test execution."""
    with engine.begin() as conn:
        conn.execute(text("DELETE FROM comments"))
        conn.execute(text("DELETE FROM posts"))
        conn.execute(text("DELETE FROM authors"))


def _build_client(**overrides) -> TestClient:
    from crud_api.core.config import get_settings
    from crud_api.main import create_app

    settings = replace(get_settings(), **overrides)
    return TestClient(create_app(settings), raise_server_exceptions=False)


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """API client with production settings: no debug detail, no query log."""
    with _build_client(debug=False, query_log=False) as test_client:
        yield test_client


@pytest.fixture
def debug_client() -> Generator[TestClient, None, None]:
    """API client with debug detail and query logging enabled."""
    with _build_client(debug=True, query_log=True) as test_client:
        yield test_client
