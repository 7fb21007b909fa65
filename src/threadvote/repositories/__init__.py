"""Data access wrappers around the SQLAlchemy session."""

from .comment_repo import CommentRepository
from .post_repo import PostRepository
from .user_repo import UserRepository
from .votable_repo import VotableRepository

__all__ = [
    "CommentRepository",
    "PostRepository",
    "UserRepository",
    "VotableRepository",
]
