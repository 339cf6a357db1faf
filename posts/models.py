"""
posts/models.py -- Domain dataclasses for posts.

Pure data containers. Ownership rules live in posts/policy.py; SQL lives in
posts/store.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Author:
    """Public view of a post's owner -- never includes the password hash."""

    id: int
    name: str
    email: str


@dataclass
class Post:
    """A blog post owned by exactly one user.

    user_id is the owner recorded at creation; only that identity may update
    or delete the post. id is None before the record is written.
    """

    title: str
    body: str
    user_id: int
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    author: Optional[Author] = None  # filled in by list queries


@dataclass
class PostPage:
    """One page of a post listing plus the exact count of matching rows."""

    posts: list[Post]
    total: int
