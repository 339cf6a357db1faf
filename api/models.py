"""
API request and response models for BlogAPI REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py and
posts/models.py, which own the internal domain representation. Route handlers
map between the two.

Request fields are Optional on purpose: a missing field must produce the
route's own 400 message ("all fields are required", "title and body are
required") rather than a generic 422 from Pydantic.

Wire names that are camelCase (totalPosts, updatedPost, ...) are declared as
field aliases with populate_by_name; FastAPI dumps response models by alias
and re-validates the result against response_model.
"""

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator

from auth.models import User
from posts.models import Post

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register. Password is not stripped."""

    name: Optional[Annotated[str, StringConstraints(strip_whitespace=True, max_length=255)]] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, max_length=72)

    @field_validator("email", mode="before")
    @classmethod
    def _strip_email(cls, value):
        # Blank counts as missing so the route answers "all fields are required".
        if isinstance(value, str):
            return value.strip() or None
        return value


class LoginRequest(BaseModel):
    """Request body for POST /auth/login.

    Password is neither stripped nor length-capped: any wrong password, however
    long, must come back as "Invalid credentials".
    """

    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = None


class PostWrite(BaseModel):
    """Request body for POST /posts and PUT /posts/{id}."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, max_length=255)
    body: Optional[str] = None


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserSummary(BaseModel):
    """Public user fields. No password field."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(id=user.id, name=user.name, email=user.email)


class UserProfile(UserSummary):
    profile_picture: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            profile_picture=user.profile_picture,
            created_at=user.created_at,
        )


class RegisterResponse(BaseModel):
    message: str
    user: UserSummary


class LoginResponse(BaseModel):
    message: str
    user: UserProfile


class MeResponse(BaseModel):
    """GET /auth/me -- user is null when the cookie is absent or invalid."""

    user: Optional[UserProfile] = None


class OAuthProviderInfo(BaseModel):
    name: str
    label: str


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------


class PostAuthor(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str


class PostResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    body: str
    user_id: int
    created_at: str
    author: Optional[PostAuthor] = None

    @classmethod
    def from_post(cls, post: Post) -> "PostResponse":
        author = None
        if post.author is not None:
            author = PostAuthor(id=post.author.id, name=post.author.name, email=post.author.email)
        return cls(
            id=post.id,
            title=post.title,
            body=post.body,
            user_id=post.user_id,
            created_at=post.created_at,
            author=author,
        )


class PostListResponse(BaseModel):
    """GET /posts -- one page plus the totals the frontend paginates with."""

    model_config = ConfigDict(populate_by_name=True)

    posts: list[PostResponse]
    total_posts: int = Field(alias="totalPosts")
    total_pages: int = Field(alias="totalPages")
    current_page: int = Field(alias="currentPage")


class PostCreatedResponse(BaseModel):
    message: str
    post: PostResponse


class PostUpdatedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    updated_post: PostResponse = Field(alias="updatedPost")


class PostDeletedResponse(BaseModel):
    message: str
    post: PostResponse


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Error body returned on every 4xx/5xx JSON response."""

    model_config = ConfigDict(frozen=True)

    message: str
    code: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
