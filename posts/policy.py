"""
posts/policy.py -- Resource access policy for posts.

Two concerns:
  Ownership: update/delete go through the owner-scoped store methods. A miss
      raises NotFoundOrForbidden with one message for "no such post" and "not
      your post" so non-owners learn nothing about which ids exist.

  Listing: GET /posts is public. PageRequest turns raw query strings into a
      clamped page/limit/search triple and the offset the store needs.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from auth.errors import NotFoundOrForbidden
from posts.models import Post
from posts.store import PostStore

DEFAULT_LIMIT = 10
MAX_LIMIT = 100

UPDATE_DENIED = "Not authorized to update this post or post not found"
DELETE_DENIED = "not authorized to delete this post or post not found"


def _parse_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int
    search: str = ""

    @classmethod
    def from_query(cls, page: str | None, limit: str | None, search: str | None) -> "PageRequest":
        """Clamp raw query values.

        page: missing, unparseable or < 1 -> 1.
        limit: missing, unparseable or < 1 -> 10; anything above 100 -> 100.
        search: stripped; empty means unfiltered.
        """
        p = _parse_int(page)
        n = _parse_int(limit)
        if p is None or p < 1:
            p = 1
        if n is None or n < 1:
            n = DEFAULT_LIMIT
        return cls(page=p, limit=min(n, MAX_LIMIT), search=(search or "").strip())

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def total_pages(self, total: int) -> int:
        return math.ceil(total / self.limit)


def update_owned_post(store: PostStore, post_id: int, owner_id: int, title: str, body: str) -> Post:
    updated = store.update_post(post_id, owner_id, title, body)
    if updated is None:
        raise NotFoundOrForbidden(UPDATE_DENIED)
    return updated


def delete_owned_post(store: PostStore, post_id: int, owner_id: int) -> Post:
    deleted = store.delete_post(post_id, owner_id)
    if deleted is None:
        raise NotFoundOrForbidden(DELETE_DENIED)
    return deleted
