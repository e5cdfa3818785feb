"""Comment API routes."""

from __future__ import annotations

from crud_api.api.crud import build_crud_router
from crud_api.core.field_filter import FilterPolicy
from crud_api.db.models.comment import Comment
from crud_api.schemas.comment import Comment as CommentRead
from crud_api.schemas.comment import CommentCreate
from crud_api.schemas.comment import CommentUpdate
from crud_api.services.crud import CrudService

# Listing comments must name its fields; single reads may fall back to the full record.
comment_service = CrudService(
    Comment,
    read_schema=CommentRead,
    policies={
        "index": FilterPolicy.build(relation_whitelist=["post"]),
        "view": FilterPolicy.build(relation_whitelist=["post"], allow_unfiltered=True),
    },
)

router = build_crud_router(
    comment_service,
    path="comments",
    create_schema=CommentCreate,
    update_schema=CommentUpdate,
    tags=["comments"],
)
