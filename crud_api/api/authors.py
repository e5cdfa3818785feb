"""Author API routes."""

from __future__ import annotations

from crud_api.api.crud import build_crud_router
from crud_api.core.field_filter import FilterPolicy
from crud_api.db.models.author import Author
from crud_api.schemas.author import Author as AuthorRead
from crud_api.schemas.author import AuthorCreate
from crud_api.schemas.author import AuthorUpdate
from crud_api.services.crud import CrudService

author_service = CrudService(
    Author,
    read_schema=AuthorRead,
    policies={
        "index": FilterPolicy.build(allow_unfiltered=True),
        "view": FilterPolicy.build(allow_unfiltered=True),
    },
)

router = build_crud_router(
    author_service,
    path="authors",
    create_schema=AuthorCreate,
    update_schema=AuthorUpdate,
    tags=["authors"],
)
