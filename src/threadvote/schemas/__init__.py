"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .comment import CommentCreate, CommentNodeResponse, CommentResponse, CommentUpdate
from .post import PostCreate, PostPage, PostResponse, PostUpdate
from .user import UserResponse
from .vote import VoteCreate, VoteResponse, VoterValueResponse

__all__ = [
    "CommentCreate", "CommentNodeResponse", "CommentResponse", "CommentUpdate",
    "PostCreate", "PostPage", "PostResponse", "PostUpdate",
    "UserResponse",
    "VoteCreate", "VoteResponse", "VoterValueResponse",
]
