"""Pydantic schemas for comment API payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class CommentCreate(BaseModel):
    """Payload to create a comment."""

    post_id: int
    body: str = Field(min_length=1)


class CommentUpdate(BaseModel):
    """Payload to update a comment."""

    body: str | None = Field(default=None, min_length=1)


class Comment(BaseModel):
    """Comment response payload."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    post_id: int
    body: str
    created_at: datetime
