"""API error types and exception handler registration."""

from __future__ import annotations

from collections.abc import Mapping
from collections.abc import Sequence
import logging

from fastapi import FastAPI
from fastapi import Request
from fastapi import status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from crud_api.core.config import Settings
from crud_api.core.config import get_settings
from crud_api.core.renderer import StatusResolver
from crud_api.core.renderer import translate
from crud_api.core.renderer import validation_summary

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base application exception for explicit API error responses."""

    def __init__(self, *, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class NotFoundError(APIError):
    """Convenience exception for missing resources."""

    def __init__(self, *, message: str = "Resource not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, message=message)


class ValidationFailedError(APIError):
    """Field-level validation failure; `errors` maps field names to messages."""

    def __init__(
        self,
        errors: Mapping[str, Sequence[str]],
        *,
        message: str | None = None,
        status_code: int = 422,
    ) -> None:
        self.errors = {field: list(messages) for field, messages in errors.items()}
        super().__init__(
            status_code=status_code,
            message=message or validation_summary(self.errors),
        )


class MissingFieldSelectionError(APIError):
    """Raised when a read requires a `fields` selection and none was usable."""

    def __init__(self, *, message: str = "Please specify which fields you would like to select") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, message=message)


def _settings_for(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    if isinstance(settings, Settings):
        return settings
    return get_settings()


def _request_url(request: Request) -> str:
    url = request.url.path
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return url


def render_error_response(
    request: Request,
    exc: BaseException,
    *,
    status_resolver: StatusResolver | None = None,
    public_message: str | None = None,
) -> JSONResponse:
    """Translate `exc` and wrap it in a JSON response.

    `public_message` replaces the exception text when debug mode is off.
    """
    settings = _settings_for(request)
    query_logs = getattr(request.state, "query_log", None) if settings.query_log else None

    payload = translate(
        exc,
        settings.debug,
        query_logs,
        url=_request_url(request),
        status_resolver=status_resolver,
        single_message=settings.validation_single_message,
    )
    if public_message is not None and not settings.debug:
        payload.data.message = public_message
    return JSONResponse(
        status_code=payload.data.code,
        content=payload.to_payload(),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render FastAPI request validation errors as validation failures."""
    logger.info("Request validation failed for %s %s", request.method, request.url.path)
    return render_error_response(request, exc)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP exceptions in the shared envelope."""
    return render_error_response(request, exc)


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Render explicit domain errors in the shared envelope."""
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("API error %s on %s %s: %s", exc.status_code, request.method, request.url.path, exc.message)
    else:
        logger.info("API error %s on %s %s: %s", exc.status_code, request.method, request.url.path, exc.message)
    return render_error_response(request, exc)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render unexpected exceptions; details are only exposed in debug mode."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return render_error_response(request, exc, public_message="Internal server error")


def register_error_handlers(app: FastAPI) -> None:
    """Attach all error handlers to a FastAPI app instance."""

    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
