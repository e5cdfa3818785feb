"""Post API routes."""

from __future__ import annotations

from crud_api.api.crud import build_crud_router
from crud_api.core.field_filter import FilterPolicy
from crud_api.db.models.post import Post
from crud_api.schemas.post import Post as PostRead
from crud_api.schemas.post import PostCreate
from crud_api.schemas.post import PostUpdate
from crud_api.services.crud import CrudService

_POST_READ_POLICY = FilterPolicy.build(
    relation_whitelist=["author", "comments"],
    field_blacklist=["author.email"],
    allow_unfiltered=True,
)

post_service = CrudService(
    Post,
    read_schema=PostRead,
    policies={"index": _POST_READ_POLICY, "view": _POST_READ_POLICY},
)

router = build_crud_router(
    post_service,
    path="posts",
    create_schema=PostCreate,
    update_schema=PostUpdate,
    tags=["posts"],
)
