"""Comment creation, editing and deletion."""
from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from threadvote.core.errors import AcyclicViolation, Forbidden, NotFound
from threadvote.core.settings import settings
from threadvote.models import Comment, Post, User, VotableKind
from threadvote.repositories.comment_repo import CommentRepository
from threadvote.repositories.post_repo import PostRepository
from threadvote.repositories.votable_repo import VotableRepository
from threadvote.services.voting import run_votable_unit

logger = logging.getLogger(__name__)


class CommentService:
    """Service handling the comment lifecycle."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.comments = CommentRepository(session)
        self.posts = PostRepository(session)
        self.votables = VotableRepository(session)

    def create_comment(
        self,
        *,
        author: User,
        post_id: int,
        body: str,
        parent_id: int | None = None,
    ) -> Comment:
        """Create a root comment or a reply.

        A reply's parent must be a live comment on the same post, which keeps
        every thread acyclic: a new comment can only hang below existing ones.

        Raises:
            NotFound: If the post or the parent comment is missing or deleted.
            AcyclicViolation: If the parent belongs to another post.
        """
        if self.posts.get_by_id(post_id) is None:
            raise NotFound("Post not found")

        if parent_id is not None:
            parent = self.comments.get_by_id(parent_id, include_deleted=True)
            if parent is None or parent.deleted:
                raise NotFound("Parent comment not found")
            if parent.post_id != post_id:
                raise AcyclicViolation(
                    f"Parent comment {parent_id} belongs to a different post"
                )

        comment = self.comments.create(
            post_id=post_id,
            author_id=author.id,
            body=body,
            parent_id=parent_id,
        )
        # Plain counter bump; it does not take part in the post's version check.
        self.session.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(comment_count=Post.comment_count + 1)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        self.session.refresh(comment)
        logger.debug("User %s commented %s on post %s", author.id, comment.id, post_id)
        return comment

    def _locked_comment(self, comment_id: int) -> Comment:
        comment = self.votables.get(VotableKind.COMMENT, comment_id, for_update=True)
        if comment is None:
            raise NotFound("Comment not found")
        return comment

    def update_comment(self, *, comment_id: int, actor: User, body: str) -> Comment:
        """Replace the body of a comment; only its author may do so."""

        def apply() -> Comment:
            comment = self._locked_comment(comment_id)
            if comment.author_id != actor.id:
                raise Forbidden("Not authorized to update this comment")
            comment.body = body
            comment.edited = True
            self.session.flush()
            return comment

        comment = run_votable_unit(self.session, VotableKind.COMMENT, comment_id, apply)
        self.session.refresh(comment)
        return comment

    def delete_comment(self, *, comment_id: int, actor: User) -> Comment:
        """Soft-delete a comment; its author or an admin may do so.

        The body is replaced by the placeholder and the vote set is frozen.
        Replies stay in place below the tombstone.
        """

        def apply() -> Comment:
            comment = self._locked_comment(comment_id)
            if comment.author_id != actor.id and not actor.is_admin:
                raise Forbidden("Not authorized to delete this comment")
            comment.deleted = True
            comment.body = settings.deleted_placeholder
            self.session.flush()
            return comment

        return run_votable_unit(self.session, VotableKind.COMMENT, comment_id, apply)
