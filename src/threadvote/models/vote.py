# src/threadvote/models/vote.py
"""Models capturing voting interactions on posts and comments."""

from __future__ import annotations

import enum

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, SmallInteger
from sqlalchemy.orm import Mapped, mapped_column

from threadvote.db.session import Base


class VotableKind(str, enum.Enum):
    """The two entity types that carry a vote set."""

    POST = "post"
    COMMENT = "comment"


class PostVote(Base):
    """Per-user vote on a post."""

    __tablename__ = "post_vote"
    __table_args__ = (
        CheckConstraint("value IN (1, -1)", name="ck_post_vote_value"),
        Index("ix_post_vote_post_id", "post_id"),
    )

    # Composite primary key prevents duplicate votes from the same user.
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    voter_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("app_user.id"),
        primary_key=True,
    )

    # 1 = upvote, -1 = downvote. Retraction deletes the row.
    value: Mapped[int] = mapped_column(SmallInteger, nullable=False)


class CommentVote(Base):
    """Per-user vote on a comment."""

    __tablename__ = "comment_vote"
    __table_args__ = (
        CheckConstraint("value IN (1, -1)", name="ck_comment_vote_value"),
        Index("ix_comment_vote_comment_id", "comment_id"),
    )

    comment_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("comment.id", ondelete="CASCADE"),
        primary_key=True,
    )
    voter_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("app_user.id"),
        primary_key=True,
    )
    value: Mapped[int] = mapped_column(SmallInteger, nullable=False)
