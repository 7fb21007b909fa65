"""Service-level helpers for creating, editing, deleting and listing posts."""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from threadvote.core.errors import Forbidden, NotFound
from threadvote.core.settings import settings
from threadvote.models import Post, User, VotableKind
from threadvote.repositories.post_repo import PostRepository
from threadvote.repositories.votable_repo import VotableRepository
from threadvote.schemas.post import PostCreate, PostUpdate
from threadvote.services.ranking import RankingKey, rank, sql_order_by
from threadvote.services.voting import run_votable_unit


@dataclass(frozen=True)
class PostListing:
    """A ranked page of posts plus paging totals."""

    posts: list[Post]
    page: int
    page_size: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0


def create_post(db: Session, *, author: User, data: PostCreate) -> Post:
    """Create a post with an empty vote set.

    Text posts keep their body; link and image posts keep their url.
    """
    post = PostRepository(db).create(
        author_id=author.id,
        community=data.community,
        title=data.title,
        kind=data.kind,
        body=data.body if data.kind == "text" else None,
        url=data.url if data.kind != "text" else None,
    )
    db.commit()
    db.refresh(post)
    return post


def get_post(db: Session, post_id: int) -> Post:
    """Return a live post or raise NotFound."""
    post = PostRepository(db).get_by_id(post_id)
    if post is None:
        raise NotFound("Post not found")
    return post


def update_post(db: Session, *, post_id: int, actor: User, data: PostUpdate) -> Post:
    """Apply an author's edit to the title and kind-specific payload."""
    votables = VotableRepository(db)

    def apply() -> Post:
        post = votables.get(VotableKind.POST, post_id, for_update=True)
        if post is None:
            raise NotFound("Post not found")
        if post.author_id != actor.id:
            raise Forbidden("Not authorized to update this post")
        if data.title:
            post.title = data.title
        if post.kind == "text" and data.body is not None:
            post.body = data.body
        elif post.kind != "text" and data.url:
            post.url = data.url
        db.flush()
        return post

    post = run_votable_unit(db, VotableKind.POST, post_id, apply)
    db.refresh(post)
    return post


def delete_post(db: Session, *, post_id: int, actor: User) -> Post:
    """Soft-delete a post; its author or an admin may do so.

    The vote set is kept but frozen, and the post stops counting toward
    its author's karma.
    """
    votables = VotableRepository(db)

    def apply() -> Post:
        post = votables.get(VotableKind.POST, post_id, for_update=True)
        if post is None:
            raise NotFound("Post not found")
        if post.author_id != actor.id and not actor.is_admin:
            raise Forbidden("Not authorized to delete this post")
        post.deleted = True
        db.flush()
        return post

    return run_votable_unit(db, VotableKind.POST, post_id, apply)


def list_ranked_posts(
    db: Session,
    *,
    ranking: RankingKey,
    page: int,
    page_size: int,
    community: str | None = None,
    now: datetime | None = None,
) -> PostListing:
    """Return one page of live posts in the requested order.

    ``new`` and ``top`` are ordered by the database. ``hot`` is ranked in
    Python over the newest ``HOT_CANDIDATE_LIMIT`` posts, so pages past that
    window are empty.
    """
    repo = PostRepository(db)
    total = repo.count_visible(community)
    offset = (page - 1) * page_size

    order_by = sql_order_by(ranking, Post)
    if order_by is not None:
        posts = repo.list_ordered(order_by, offset=offset, limit=page_size, community=community)
    else:
        total = min(total, settings.hot_candidate_limit)
        candidates = repo.list_recent(settings.hot_candidate_limit, community)
        posts = rank(candidates, ranking, now=now)[offset:offset + page_size]

    return PostListing(posts=posts, page=page, page_size=page_size, total=total)
