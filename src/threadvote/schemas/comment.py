"""Comment-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CommentCreate(BaseModel):
    """Schema for creating a comment or a reply."""

    post_id: int
    body: str = Field(..., min_length=1, max_length=10000)
    parent_id: int | None = Field(None, description="Comment being replied to, if any")


class CommentUpdate(BaseModel):
    """Schema for editing a comment body."""

    body: str = Field(..., min_length=1, max_length=10000)


class CommentResponse(BaseModel):
    """Flat comment representation."""

    id: int
    post_id: int
    parent_id: int | None
    author_id: int
    body: str
    score: int
    edited: bool
    deleted: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CommentNodeResponse(BaseModel):
    """A comment inside an assembled thread.

    Tombstones have `deleted=True`, a placeholder body and no author.
    """

    id: int
    post_id: int
    parent_id: int | None
    body: str
    author_id: int | None
    author_username: str | None
    score: int
    created_at: datetime
    edited: bool
    deleted: bool
    viewer_vote: int | None = None
    children: list[CommentNodeResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


CommentNodeResponse.model_rebuild()
