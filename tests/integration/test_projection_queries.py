"""Integration tests for applying field selections to ORM queries."""

from __future__ import annotations

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from crud_api.core.field_filter import FilterPolicy
from crud_api.core.field_filter import resolve_fields
from crud_api.db.models.author import Author
from crud_api.db.models.comment import Comment
from crud_api.db.models.post import Post
from crud_api.db.projection import project_row
from crud_api.db.projection import schema_for_model
from crud_api.db.repository.crud import create_record
from crud_api.db.repository.crud import get_record
from crud_api.db.repository.crud import list_records

POLICY = FilterPolicy.build(relation_whitelist=["author", "comments"])


def _seed(engine) -> int:
    with Session(engine) as session:
        author = create_record(session, Author, {"name": "Ada", "email": "ada@example.com"})
        post = create_record(
            session,
            Post,
            {"author_id": author.id, "title": "Engines", "body": "Long text", "published": True},
        )
        create_record(session, Comment, {"post_id": post.id, "body": "First"})
        create_record(session, Comment, {"post_id": post.id, "body": "Second"})
        session.commit()
        return post.id


def test_schema_for_model_describes_columns_and_one_hop_relations() -> None:
    schema = schema_for_model(Post)

    assert schema.name == "Post"
    assert {"id", "author_id", "title", "body", "published", "created_at"} <= schema.fields
    assert set(schema.associations) == {"author", "comments"}
    assert "email" in schema.associations["author"].fields
    assert schema.associations["author"].associations == {}


def test_projected_list_loads_only_requested_columns(engine) -> None:
    _seed(engine)
    schema = schema_for_model(Post)
    selection = resolve_fields("title", schema, POLICY)

    with Session(engine) as session:
        posts = list_records(session, Post, selection=selection, schema_name="Post")
        state = inspect(posts[0])

        assert "title" not in state.unloaded
        assert "body" in state.unloaded
        assert "author" in state.unloaded
        assert project_row(posts[0], selection, "Post") == {"title": "Engines"}


def test_projected_relations_are_eager_loaded_and_nested(engine) -> None:
    post_id = _seed(engine)
    schema = schema_for_model(Post)
    selection = resolve_fields("id,title,author.name,comments.body", schema, POLICY)

    with Session(engine) as session:
        post = get_record(session, Post, post_id, selection=selection, schema_name="Post")
        state = inspect(post)
        assert "author" not in state.unloaded
        assert "comments" not in state.unloaded

        row = project_row(post, selection, "Post")

    assert row == {
        "id": post_id,
        "title": "Engines",
        "author": {"name": "Ada"},
        "comments": [{"body": "First"}, {"body": "Second"}],
    }


def test_relation_only_selection_still_loads_join_columns(engine) -> None:
    post_id = _seed(engine)
    schema = schema_for_model(Post)
    selection = resolve_fields("author.email", schema, POLICY)

    with Session(engine) as session:
        post = get_record(session, Post, post_id, selection=selection, schema_name="Post")
        row = project_row(post, selection, "Post")

    assert row == {"author": {"email": "ada@example.com"}}


def test_unprojected_get_returns_full_record(engine) -> None:
    post_id = _seed(engine)

    with Session(engine) as session:
        post = get_record(session, Post, post_id)
        assert post.body == "Long text"
        assert post.published is True


def test_missing_record_returns_none(engine) -> None:
    schema = schema_for_model(Post)
    selection = resolve_fields("title", schema, POLICY)

    with Session(engine) as session:
        assert get_record(session, Post, 12345, selection=selection, schema_name="Post") is None
