"""Post-related Pydantic schemas."""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, model_validator

from threadvote.models.post import URL_POST_KINDS, PostKind


class PostCreate(BaseModel):
    """Schema for creating a new post."""

    title: str = Field(..., min_length=1, max_length=300)
    community: str = Field(..., min_length=3, max_length=21, pattern=r"^[A-Za-z0-9_]+$")
    kind: PostKind = "text"
    body: str | None = Field(None, max_length=40000)
    url: str | None = Field(None, max_length=2048)

    @model_validator(mode="after")
    def _check_kind_payload(self) -> "PostCreate":
        if self.kind in URL_POST_KINDS and not self.url:
            raise ValueError(f"{self.kind} posts require a url")
        return self


class PostUpdate(BaseModel):
    """Partial update of a post by its author."""

    title: str | None = Field(None, min_length=1, max_length=300)
    body: str | None = Field(None, max_length=40000)
    url: str | None = Field(None, max_length=2048)


class PostResponse(BaseModel):
    """Schema for post information returned by the API."""

    id: int
    author_id: int
    author_username: str | None = None
    community: str
    title: str
    kind: str
    body: str | None
    url: str | None
    score: int
    comment_count: int
    deleted: bool
    created_at: datetime
    viewer_vote: int | None = None

    model_config = ConfigDict(from_attributes=True)


class PostPage(BaseModel):
    """A page of ranked posts."""

    items: list[PostResponse]
    page: int
    page_size: int
    total: int
    total_pages: int
