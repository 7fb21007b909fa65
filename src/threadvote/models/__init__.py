# src/threadvote/models/__init__.py
"""SQLAlchemy models for the threadvote application."""

from .comment import Comment
from .post import Post
from .user import User
from .vote import CommentVote, PostVote, VotableKind

__all__ = [
    "Comment",
    "Post",
    "User",
    "CommentVote", "PostVote", "VotableKind",
]
