"""Pydantic schemas for post API payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class PostCreate(BaseModel):
    """Payload to create a post."""

    author_id: int
    title: str = Field(min_length=1, max_length=255)
    body: str | None = None
    published: bool = False


class PostUpdate(BaseModel):
    """Payload to update mutable post fields."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    body: str | None = None
    published: bool | None = None


class Post(BaseModel):
    """Post response payload."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    author_id: int
    title: str
    body: str | None = None
    published: bool
    created_at: datetime
