"""
posts/store.py -- SQLAlchemy Core persistence layer for posts.

Pattern: Repository + Data Mapper. PostStore is the repository; _row_to_post
is the mapper. Route handlers never touch SQL directly.

Ownership scoping: update_post() and delete_post() filter on BOTH the post id
and the owner's user id in a single statement. A miss returns None whether the
post is absent or owned by someone else -- the store cannot tell the two apart
and neither can the caller. Row-level atomicity of the filtered UPDATE/DELETE
is what serializes concurrent writers; last write wins on update.

Security: all queries use bound parameters. Search terms go through
icontains(autoescape=True) so % and _ match literally.

Usage:
    store = PostStore(engine)
    post_id = store.create_post(Post(title="Hi", body="...", user_id=1))
    page = store.list_posts(offset=0, limit=10, search="hi")
    store.delete_post(post_id, user_id=1)
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Column, ForeignKey, Integer, String, Table, Text, func, select
from sqlalchemy.engine import Engine

from auth.store import users
from core.db import SQL_INTEGER_MAX, metadata, now_iso
from posts.models import Author, Post, PostPage


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

posts = Table(
    "posts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("body", Text, nullable=False),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("created_at", String(32), nullable=False, index=True),
)


class PostStore:
    """Repository for Post entities."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine, tables=[users, posts])

    def create_post(self, post: Post) -> int:
        """Insert a post owned by post.user_id and return its ID.

        Raises sqlalchemy.exc.IntegrityError if user_id references no user.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                posts.insert().values(
                    title=post.title,
                    body=post.body,
                    user_id=post.user_id,
                    created_at=now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_post(self, post_id: int) -> Optional[Post]:
        if not _storable_id(post_id):
            return None
        with self.engine.connect() as conn:
            row = conn.execute(posts.select().where(posts.c.id == post_id)).fetchone()
        return _row_to_post(row) if row is not None else None

    def list_posts(self, offset: int, limit: int, search: str = "") -> PostPage:
        """Return one page of posts, newest first, with the exact match count.

        search filters on a case-insensitive substring of the title; an empty
        string means no filter. id breaks ties between equal timestamps so
        repeated calls return the same order. An offset past the INTEGER range
        yields an empty page with the real count.
        """
        where = posts.c.title.icontains(search, autoescape=True) if search else None

        stmt = (
            select(
                posts,
                users.c.name.label("author_name"),
                users.c.email.label("author_email"),
            )
            .select_from(posts.outerjoin(users, users.c.id == posts.c.user_id))
            .order_by(posts.c.created_at.desc(), posts.c.id.desc())
            .offset(offset)
            .limit(limit)
        )
        count_stmt = select(func.count()).select_from(posts)
        if where is not None:
            stmt = stmt.where(where)
            count_stmt = count_stmt.where(where)

        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall() if offset <= SQL_INTEGER_MAX else []
            total = conn.execute(count_stmt).scalar() or 0
        return PostPage(posts=[_row_to_post(r) for r in rows], total=total)

    def update_post(self, post_id: int, user_id: int, title: str, body: str) -> Optional[Post]:
        """Update title/body if the post exists AND belongs to user_id.

        Returns the updated post, or None on a miss.
        """
        if not _storable_id(post_id):
            return None
        owned = (posts.c.id == post_id) & (posts.c.user_id == user_id)
        with self.engine.begin() as conn:
            result = conn.execute(posts.update().where(owned).values(title=title, body=body))
            if result.rowcount == 0:
                return None
            row = conn.execute(posts.select().where(posts.c.id == post_id)).fetchone()
        return _row_to_post(row) if row is not None else None

    def delete_post(self, post_id: int, user_id: int) -> Optional[Post]:
        """Delete the post if it exists AND belongs to user_id.

        Returns the deleted post, or None on a miss. A concurrent delete that
        lands first also yields None.
        """
        if not _storable_id(post_id):
            return None
        owned = (posts.c.id == post_id) & (posts.c.user_id == user_id)
        with self.engine.begin() as conn:
            row = conn.execute(posts.select().where(owned)).fetchone()
            if row is None:
                return None
            result = conn.execute(posts.delete().where(owned))
            if result.rowcount == 0:
                return None
        return _row_to_post(row)

# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _storable_id(post_id: int) -> bool:
    """An id outside the INTEGER range cannot match any row."""
    return -SQL_INTEGER_MAX <= post_id <= SQL_INTEGER_MAX


def _row_to_post(row) -> Post:
    author = None
    author_name = getattr(row, "author_name", None)
    if author_name is not None:
        author = Author(id=row.user_id, name=author_name, email=row.author_email)
    return Post(
        id=row.id,
        title=row.title,
        body=row.body,
        user_id=row.user_id,
        created_at=row.created_at,
        author=author,
    )
