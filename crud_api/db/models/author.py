"""SQLAlchemy model for blog authors."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime
from sqlalchemy import Integer
from sqlalchemy import PrimaryKeyConstraint
from sqlalchemy import String
from sqlalchemy import UniqueConstraint
from sqlalchemy import func
from sqlalchemy.orm import Mapped
from sqlalchemy.orm import mapped_column
from sqlalchemy.orm import relationship

from crud_api.db.base import Base

if TYPE_CHECKING:
    from crud_api.db.models.post import Post


class Author(Base):
    """Person who writes posts."""

    __tablename__ = "authors"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="pk_authors"),
        UniqueConstraint("email", name="uq_authors_email"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    posts: Mapped[list["Post"]] = relationship(
        "Post",
        back_populates="author",
        passive_deletes="all",
    )
