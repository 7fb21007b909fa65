"""Assembly of nested comment threads.

All comments of a post are fetched in one query and linked through a
parent -> children index. The tree is walked breadth first with an explicit
queue, so neither the number of storage calls nor the Python stack grows
with thread depth.

Soft-deleted comments are kept as tombstones while any descendant is still
live, so replies never disappear with their parent. Deleted comments with
no live descendants are pruned.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session

from threadvote.core.errors import NotFound
from threadvote.core.settings import settings
from threadvote.db.time import utcnow
from threadvote.models import Comment, VotableKind
from threadvote.repositories.comment_repo import CommentRepository
from threadvote.repositories.post_repo import PostRepository
from threadvote.repositories.votable_repo import VotableRepository
from threadvote.services.ranking import RankingKey, rank

logger = logging.getLogger(__name__)


@dataclass
class CommentNode:
    """One comment of an assembled thread."""

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
    children: list[CommentNode] = field(default_factory=list)


def _to_node(comment: Comment, viewer_votes: Mapping[int, int] | None) -> CommentNode:
    if comment.deleted:
        return CommentNode(
            id=comment.id,
            post_id=comment.post_id,
            parent_id=comment.parent_id,
            body=settings.deleted_placeholder,
            author_id=None,
            author_username=None,
            score=comment.score,
            created_at=comment.created_at,
            edited=False,
            deleted=True,
        )
    author = comment.author
    return CommentNode(
        id=comment.id,
        post_id=comment.post_id,
        parent_id=comment.parent_id,
        body=comment.body,
        author_id=comment.author_id,
        author_username=author.username if author is not None else None,
        score=comment.score,
        created_at=comment.created_at,
        edited=comment.edited,
        deleted=False,
        viewer_vote=None if viewer_votes is None else viewer_votes.get(comment.id, 0),
    )


def assemble_forest(
    comments: Sequence[Comment],
    *,
    ranking: RankingKey = RankingKey.TOP,
    viewer_votes: Mapping[int, int] | None = None,
    now: datetime | None = None,
) -> list[CommentNode]:
    """Build the ordered reply forest from the flat comment list of one post.

    Args:
        comments: Every comment of the post, soft-deleted ones included.
        ranking: Order applied to the roots and to every sibling group.
        viewer_votes: ``{comment_id: value}`` for the viewer, or None for
            anonymous readers (no ``viewer_vote`` annotation).
        now: Reference time for ``hot`` ranking.

    Returns:
        The root nodes in display order, children attached.
    """
    now = now or utcnow()
    by_id = {comment.id: comment for comment in comments}

    children: dict[int | None, list[Comment]] = defaultdict(list)
    for comment in comments:
        parent_id = comment.parent_id
        if parent_id is not None and parent_id not in by_id:
            logger.warning(
                "Comment %s references missing parent %s; attaching it at the root",
                comment.id, parent_id,
            )
            parent_id = None
        children[parent_id].append(comment)

    # Breadth-first order: every parent precedes its children.
    order: list[Comment] = []
    queue = deque(children[None])
    while queue:
        comment = queue.popleft()
        order.append(comment)
        queue.extend(children.get(comment.id, ()))

    if len(order) != len(by_id):
        logger.warning(
            "Ignoring %d comments on a parent cycle", len(by_id) - len(order),
        )

    # Children are decided before parents when walking the order backwards.
    visible: set[int] = set()
    for comment in reversed(order):
        if not comment.deleted or any(
            child.id in visible for child in children.get(comment.id, ())
        ):
            visible.add(comment.id)

    nodes = {
        comment.id: _to_node(comment, viewer_votes)
        for comment in order
        if comment.id in visible
    }
    for comment in order:
        if comment.id not in visible:
            continue
        siblings = [child for child in children.get(comment.id, ()) if child.id in visible]
        nodes[comment.id].children = [
            nodes[child.id] for child in rank(siblings, ranking, now=now)
        ]

    roots = [comment for comment in children[None] if comment.id in visible]
    return [nodes[comment.id] for comment in rank(roots, ranking, now=now)]


class ThreadAssembler:
    """Builds the comment tree of a post for display."""

    def __init__(self, session: Session) -> None:
        self.posts = PostRepository(session)
        self.comments = CommentRepository(session)
        self.votables = VotableRepository(session)

    def build_tree(
        self,
        post_id: int,
        viewer_id: int | None = None,
        *,
        ranking: RankingKey = RankingKey.TOP,
    ) -> list[CommentNode]:
        """Return the ordered comment forest of a live post.

        Raises:
            NotFound: If the post does not exist or is soft-deleted.
        """
        if self.posts.get_by_id(post_id) is None:
            raise NotFound("Post not found")

        comments = self.comments.list_for_post(post_id)
        viewer_votes = None
        if viewer_id is not None:
            viewer_votes = self.votables.viewer_votes(
                VotableKind.COMMENT,
                (comment.id for comment in comments if not comment.deleted),
                viewer_id,
            )
        return assemble_forest(comments, ranking=ranking, viewer_votes=viewer_votes)
