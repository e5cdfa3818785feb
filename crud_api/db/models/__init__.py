"""Model module imports for SQLAlchemy relationship registration."""

from crud_api.db.models.author import Author
from crud_api.db.models.comment import Comment
from crud_api.db.models.post import Post

__all__ = [
    "Author",
    "Comment",
    "Post",
]
