"""Success envelope returned by CRUD actions."""

from __future__ import annotations

from typing import Any
from typing import Generic
from typing import TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class SuccessResponse(BaseModel, Generic[T]):
    """`{"success": true, "data": ...}` wrapper for successful actions."""

    success: bool = True
    data: T


class DeletedResource(BaseModel):
    """Payload for a deleted resource."""

    id: Any
