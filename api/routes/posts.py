"""
api/routes/posts.py -- Post CRUD routes.

Routes:
  GET    /posts          -- public; paginated, searchable, newest first
  POST   /posts          -- create a post owned by the caller
  PUT    /posts/{id}     -- update title/body; owner only
  DELETE /posts/{id}     -- delete; owner only

Ownership: PUT and DELETE go through posts.policy, which answers "not found"
and "not yours" with the same 400 so a non-owner cannot probe which ids exist.

Store failures are logged and mapped to UpstreamError (500); nothing is
retried.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError

from api.models import (
    PostCreatedResponse,
    PostDeletedResponse,
    PostListResponse,
    PostResponse,
    PostUpdatedResponse,
    PostWrite,
)
from auth.dependencies import get_current_identity
from auth.errors import UpstreamError, ValidationError
from auth.models import TokenClaims
from posts.models import Post
from posts.policy import PageRequest, delete_owned_post, update_owned_post
from posts.store import PostStore

logger = logging.getLogger("blogapi.api.posts")

# Auth policy:
# - GET    /posts:       public
# - POST   /posts:       requires token (get_current_identity)
# - PUT    /posts/{id}:  requires token + ownership (posts.policy)
# - DELETE /posts/{id}:  requires token + ownership (posts.policy)
router = APIRouter()

_MISSING_FIELDS = "title and body are required"


def _require_fields(body: Optional[PostWrite]) -> PostWrite:
    if body is None or not body.title or not body.body:
        raise ValidationError(_MISSING_FIELDS)
    return body


@router.get("/posts", response_model=PostListResponse)
def list_posts(
    request: Request,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    search: Optional[str] = None,
) -> PostListResponse:
    """List posts. page < 1 behaves as 1; limit is capped at 100."""
    page_req = PageRequest.from_query(page, limit, search)
    post_store: PostStore = request.app.state.post_store
    try:
        result = post_store.list_posts(page_req.offset, page_req.limit, page_req.search)
    except SQLAlchemyError as exc:
        logger.exception("Post listing failed")
        raise UpstreamError("error fetching posts") from exc

    return PostListResponse(
        posts=[PostResponse.from_post(p) for p in result.posts],
        total_posts=result.total,
        total_pages=page_req.total_pages(result.total),
        current_page=page_req.page,
    )


# A body that is not valid JSON is rejected (400) while FastAPI parses it, before
# get_current_identity runs; a well-formed body without a token gets the 401.
@router.post("/posts", response_model=PostCreatedResponse, status_code=201)
def create_post(
    request: Request,
    body: Optional[PostWrite] = None,
    identity: TokenClaims = Depends(get_current_identity),
) -> PostCreatedResponse:
    """Create a post owned by the authenticated caller."""
    body = _require_fields(body)
    post_store: PostStore = request.app.state.post_store
    try:
        post_id = post_store.create_post(Post(title=body.title, body=body.body, user_id=identity.user_id))
        created = post_store.get_post(post_id)
    except SQLAlchemyError as exc:
        logger.exception("Post insert failed for user id=%s", identity.user_id)
        raise UpstreamError("error creating post") from exc
    if created is None:
        raise UpstreamError("error creating post")
    return PostCreatedResponse(message="post created successfully", post=PostResponse.from_post(created))


@router.put("/posts/{post_id}", response_model=PostUpdatedResponse)
def update_post(
    request: Request,
    post_id: int,
    body: Optional[PostWrite] = None,
    identity: TokenClaims = Depends(get_current_identity),
) -> PostUpdatedResponse:
    """Replace title and body. Owner only; misses are indistinguishable."""
    body = _require_fields(body)
    post_store: PostStore = request.app.state.post_store
    try:
        updated = update_owned_post(post_store, post_id, identity.user_id, body.title, body.body)
    except SQLAlchemyError as exc:
        logger.exception("Post update failed for post id=%s", post_id)
        raise UpstreamError("internal server error") from exc
    return PostUpdatedResponse(updated_post=PostResponse.from_post(updated))


@router.delete("/posts/{post_id}", response_model=PostDeletedResponse)
def delete_post(
    request: Request,
    post_id: int,
    identity: TokenClaims = Depends(get_current_identity),
) -> PostDeletedResponse:
    """Delete a post. Owner only; misses are indistinguishable."""
    post_store: PostStore = request.app.state.post_store
    try:
        deleted = delete_owned_post(post_store, post_id, identity.user_id)
    except SQLAlchemyError as exc:
        logger.exception("Post delete failed for post id=%s", post_id)
        raise UpstreamError("internal server error") from exc
    return PostDeletedResponse(message="post deleted successfully", post=PostResponse.from_post(deleted))
