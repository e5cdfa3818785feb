"""Error envelope schemas shared across API handlers."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class ExceptionDetail(BaseModel):
    """Debug-only description of a raised exception and its causes."""

    model_config = ConfigDict(populate_by_name=True)

    class_name: str = Field(alias="class")
    code: int
    message: str
    trace: list[str] | None = None
    previous: ExceptionDetail | None = None


class ErrorData(BaseModel):
    """Body of a failed request."""

    model_config = ConfigDict(populate_by_name=True)

    code: int
    url: str
    message: str
    error_count: int | None = Field(default=None, alias="errorCount")
    errors: dict[str, list[str]] | None = None
    exception: ExceptionDetail | None = None


class ErrorResponse(BaseModel):
    """Top-level API error response envelope."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    data: ErrorData
    query_log: dict[str, list[str]] | None = Field(default=None, alias="queryLog")

    def serialize_keys(self) -> list[str]:
        """Top-level keys a view layer should emit, in order."""
        keys = ["success", "data"]
        if self.query_log:
            keys.append("queryLog")
        return keys

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-serializable dict limited to `serialize_keys()`."""
        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        return {key: payload[key] for key in self.serialize_keys()}
