"""Unit tests for shared API error envelope handlers."""

from __future__ import annotations

from dataclasses import replace

from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from crud_api.core.config import get_settings
from crud_api.core.errors import APIError
from crud_api.core.errors import MissingFieldSelectionError
from crud_api.core.errors import NotFoundError
from crud_api.core.errors import ValidationFailedError
from crud_api.core.errors import register_error_handlers


class _Counter(BaseModel):
    n: int


def _build_client(*, debug: bool = False, single_message: bool = False) -> TestClient:
    app = FastAPI()
    app.state.settings = replace(
        get_settings(),
        debug=debug,
        query_log=False,
        validation_single_message=single_message,
    )
    register_error_handlers(app)

    @app.get("/query")
    def query(limit: int) -> dict[str, int]:
        return {"limit": limit}

    @app.get("/not-found")
    def not_found() -> None:
        raise NotFoundError(message="Post not found")

    @app.get("/domain")
    def domain_error() -> None:
        raise APIError(status_code=409, message="Author is still referenced")

    @app.get("/validation")
    def validation_error() -> None:
        raise ValidationFailedError({"title": ["error message"]})

    @app.get("/fields")
    def missing_fields() -> None:
        raise MissingFieldSelectionError()

    @app.get("/http")
    def http_error() -> None:
        raise StarletteHTTPException(status_code=404, detail="Author not found")

    @app.get("/internal-validation")
    def internal_validation() -> None:
        _Counter.model_validate({"n": "not-int"})

    @app.get("/boom")
    def boom() -> None:
        raise RuntimeError("database exploded")

    return TestClient(app, raise_server_exceptions=False)


def test_request_validation_errors_are_normalized_to_envelope() -> None:
    client = _build_client()

    response = client.get("/query")

    assert response.status_code == 422
    assert response.json() == {
        "success": False,
        "data": {
            "code": 422,
            "url": "/query",
            "message": "A validation error occurred",
            "errorCount": 1,
            "errors": {"limit": ["Field required"]},
        },
    }


def test_domain_errors_use_shared_envelope() -> None:
    client = _build_client()

    response = client.get("/domain")

    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "data": {"code": 409, "url": "/domain", "message": "Author is still referenced"},
    }


def test_not_found_errors_keep_query_string_in_url() -> None:
    client = _build_client()

    response = client.get("/not-found", params={"fields": "id"})

    assert response.status_code == 404
    payload = response.json()
    assert payload["data"]["url"] == "/not-found?fields=id"
    assert payload["data"]["message"] == "Post not found"


def test_validation_failures_list_field_errors() -> None:
    client = _build_client()

    response = client.get("/validation")

    assert response.status_code == 422
    data = response.json()["data"]
    assert data["errorCount"] == 1
    assert data["errors"] == {"title": ["error message"]}
    assert data["message"] == "A validation error occurred"


def test_single_message_setting_is_applied() -> None:
    client = _build_client(single_message=True)

    response = client.get("/validation")

    assert response.json()["data"]["message"] == "error message"


def test_missing_field_selection_is_a_client_error() -> None:
    client = _build_client()

    response = client.get("/fields")

    assert response.status_code == 400
    assert response.json()["data"]["message"] == "Please specify which fields you would like to select"


def test_http_errors_are_wrapped_in_shared_envelope() -> None:
    client = _build_client()

    response = client.get("/http")

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "data": {"code": 404, "url": "/http", "message": "Author not found"},
    }


def test_unhandled_errors_do_not_leak_without_debug() -> None:
    client = _build_client()

    response = client.get("/boom")

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "data": {"code": 500, "url": "/boom", "message": "Internal server error"},
    }


def test_unhandled_errors_include_exception_detail_in_debug() -> None:
    client = _build_client(debug=True)

    response = client.get("/boom")

    assert response.status_code == 500
    data = response.json()["data"]
    assert data["message"] == "database exploded"
    assert data["exception"]["class"] == "RuntimeError"
    assert data["exception"]["code"] == 500
    assert any("in boom" in frame for frame in data["exception"]["trace"])


def test_internal_model_validation_errors_are_server_errors() -> None:
    client = _build_client()

    response = client.get("/internal-validation")

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "data": {"code": 500, "url": "/internal-validation", "message": "Internal server error"},
    }


def test_internal_model_validation_errors_in_debug_keep_generic_category() -> None:
    client = _build_client(debug=True)

    response = client.get("/internal-validation")

    assert response.status_code == 500
    data = response.json()["data"]
    assert "errors" not in data
    assert "errorCount" not in data
    assert data["exception"]["class"].endswith(".ValidationError")
