"""Translate raised exceptions into the shared error response envelope.

`translate()` runs on the failure path of a request, so it never raises:
every lookup that can fail (status code, message, traceback, cause chain)
degrades to a safe default instead of masking the original error.
"""

from __future__ import annotations

from collections.abc import Callable
from collections.abc import Mapping
import logging
import traceback
from typing import Any

from fastapi.exceptions import RequestValidationError

from crud_api.schemas.error import ErrorData
from crud_api.schemas.error import ErrorResponse
from crud_api.schemas.error import ExceptionDetail

logger = logging.getLogger(__name__)

GENERIC_STATUS_CODE = 500
VALIDATION_STATUS_CODE = 422
MAX_CAUSE_DEPTH = 10

_LOCATION_PREFIXES = frozenset({"body", "query", "path", "header", "cookie"})

StatusResolver = Callable[[], Any]


def exception_class_name(error: BaseException) -> str:
    """Return the fully qualified class name of an exception."""
    cls = type(error)
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def format_location(location: Any) -> str:
    if not isinstance(location, (tuple, list)):
        return str(location)

    filtered = [str(part) for part in location if part not in _LOCATION_PREFIXES]
    if filtered:
        return ".".join(filtered)

    if not location:
        return "request"

    return str(location[0])


def _issues_to_errors(issues: list[Mapping[str, Any]]) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for issue in issues:
        field = format_location(issue.get("loc", ()))
        errors.setdefault(field, []).append(str(issue.get("msg", "Invalid value")))
    return errors


def validation_detail(error: BaseException) -> dict[str, list[str]] | None:
    """Return field-level validation messages carried by `error`, if any."""
    try:
        if isinstance(error, RequestValidationError):
            return _issues_to_errors(list(error.errors()))

        errors = getattr(error, "errors", None)
        if isinstance(errors, Mapping):
            return {str(field): [str(message) for message in messages] for field, messages in errors.items()}
    except Exception:
        logger.debug("Could not read validation detail from %s", exception_class_name(error), exc_info=True)
    return None


def validation_summary(errors: Mapping[str, list[str]], *, single_message: bool = False) -> str:
    """Summarize validation errors in one human readable sentence."""
    count = len(errors)
    if count == 1:
        messages = next(iter(errors.values()))
        if single_message and len(messages) == 1:
            return messages[0]
        return "A validation error occurred"
    return f"{count} validation errors occurred"


def _coerce_status(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        code = int(value)
    except (TypeError, ValueError):
        return None
    if 400 <= code <= 599:
        return code
    return None


def resolve_status_code(
    error: BaseException,
    default: int,
    status_resolver: StatusResolver | None = None,
) -> int:
    """Resolve the HTTP status for `error`, falling back to `default`.

    The resolver is the outgoing response's view of the status; if asking it
    fails, the failure is swallowed and the category default is used.
    """
    try:
        if status_resolver is not None:
            raw = status_resolver()
        else:
            raw = getattr(error, "status_code", None)
    except Exception:
        logger.debug("Status code lookup failed for %s; using %s", exception_class_name(error), default, exc_info=True)
        return default

    code = _coerce_status(raw)
    return default if code is None else code


def error_message(error: BaseException) -> str:
    try:
        message = getattr(error, "message", None)
        if isinstance(message, str) and message:
            return message
        detail = getattr(error, "detail", None)
        if isinstance(detail, str) and detail:
            return detail
        return str(error)
    except Exception:
        return exception_class_name(error)


def stack_trace(error: BaseException) -> list[str]:
    """Return `file:line in function` frames, outermost call first."""
    try:
        frames = traceback.extract_tb(error.__traceback__)
    except Exception:
        return []
    return [f"{frame.filename}:{frame.lineno} in {frame.name}" for frame in frames]


def _cause_of(error: BaseException) -> BaseException | None:
    if error.__cause__ is not None:
        return error.__cause__
    if error.__suppress_context__:
        return None
    return error.__context__


def exception_detail(
    error: BaseException,
    code: int,
    message: str,
    *,
    _seen: set[int] | None = None,
    _depth: int = 0,
) -> ExceptionDetail:
    """Describe `error` and, recursively, the exceptions that caused it."""
    seen = _seen if _seen is not None else set()
    seen.add(id(error))

    previous = None
    cause = _cause_of(error)
    if cause is not None and id(cause) not in seen and _depth < MAX_CAUSE_DEPTH:
        cause_code = resolve_status_code(cause, GENERIC_STATUS_CODE)
        previous = exception_detail(
            cause,
            cause_code,
            error_message(cause),
            _seen=seen,
            _depth=_depth + 1,
        )

    return ExceptionDetail(
        class_name=exception_class_name(error),
        code=code,
        message=message,
        trace=stack_trace(error),
        previous=previous,
    )


def _non_empty_logs(query_logs: Mapping[str, Any] | None) -> dict[str, list[str]] | None:
    if not query_logs:
        return None
    try:
        logs = {str(name): [str(entry) for entry in entries] for name, entries in query_logs.items() if entries}
    except Exception:
        logger.debug("Discarding unreadable query log", exc_info=True)
        return None
    return logs or None


def translate(
    error: BaseException,
    debug: bool,
    query_logs: Mapping[str, Any] | None = None,
    *,
    url: str = "",
    status_resolver: StatusResolver | None = None,
    single_message: bool = False,
) -> ErrorResponse:
    """Build the error envelope for `error`.

    Validation failures default to 422 and list their per-field messages;
    anything else defaults to 500. With `debug` enabled the envelope also
    carries the exception class, traceback and cause chain.
    """
    try:
        return _translate(error, debug, query_logs, url, status_resolver, single_message)
    except Exception:
        logger.exception("Failed to translate %s; returning a bare envelope", exception_class_name(error))
        return ErrorResponse(data=ErrorData(code=GENERIC_STATUS_CODE, url=url, message="Internal server error"))


def _translate(
    error: BaseException,
    debug: bool,
    query_logs: Mapping[str, Any] | None,
    url: str,
    status_resolver: StatusResolver | None,
    single_message: bool,
) -> ErrorResponse:
    errors = validation_detail(error)

    if errors is not None:
        code = resolve_status_code(error, VALIDATION_STATUS_CODE, status_resolver)
        message = validation_summary(errors, single_message=single_message)
        data = ErrorData(code=code, url=url, message=message, error_count=len(errors), errors=errors)
    else:
        code = resolve_status_code(error, GENERIC_STATUS_CODE, status_resolver)
        message = error_message(error)
        data = ErrorData(code=code, url=url, message=message)

    if debug:
        data.exception = exception_detail(error, code, message)

    return ErrorResponse(data=data, query_log=_non_empty_logs(query_logs))
