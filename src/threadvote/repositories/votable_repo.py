"""Load/store access to votables and their vote sets."""
from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import delete, insert, select, update
from sqlalchemy.orm import InstrumentedAttribute, Session

from threadvote.models import Comment, CommentVote, Post, PostVote, VotableKind

__all__ = ["Votable", "VotableRepository"]

Votable = Post | Comment

_ENTITY_MODELS: dict[VotableKind, type[Post] | type[Comment]] = {
    VotableKind.POST: Post,
    VotableKind.COMMENT: Comment,
}
_VOTE_MODELS: dict[VotableKind, type[PostVote] | type[CommentVote]] = {
    VotableKind.POST: PostVote,
    VotableKind.COMMENT: CommentVote,
}
_TARGET_COLUMNS: dict[VotableKind, str] = {
    VotableKind.POST: "post_id",
    VotableKind.COMMENT: "comment_id",
}


def _target_column(kind: VotableKind) -> InstrumentedAttribute[int]:
    return getattr(_VOTE_MODELS[kind], _TARGET_COLUMNS[kind])


class VotableRepository:
    """Thin wrapper around database access for posts and comments as votables."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get(
        self,
        kind: VotableKind,
        target_id: int,
        *,
        for_update: bool = False,
        include_deleted: bool = False,
    ) -> Votable | None:
        """Return the votable, optionally locking its row for the current transaction."""
        model = _ENTITY_MODELS[kind]
        stmt = select(model).where(model.id == target_id)
        if not include_deleted:
            stmt = stmt.where(model.deleted.is_(False))
        if for_update:
            # Reload the row even if the session already holds a stale copy.
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalars().first()

    def load_vote_set(self, kind: VotableKind, target_id: int) -> dict[int, int]:
        """Return the vote set of a votable as ``{voter_id: value}``."""
        vote_model = _VOTE_MODELS[kind]
        rows = self.session.execute(
            select(vote_model.voter_id, vote_model.value).where(
                _target_column(kind) == target_id
            )
        )
        return {voter_id: value for voter_id, value in rows}

    def store_vote(
        self,
        kind: VotableKind,
        target_id: int,
        voter_id: int,
        *,
        previous: int | None,
        value: int,
    ) -> None:
        """Persist the transition of one voter's vote from ``previous`` to ``value``.

        ``value == 0`` deletes the row. Nothing is written when the vote is unchanged.
        """
        vote_model = _VOTE_MODELS[kind]
        match_row = (_target_column(kind) == target_id, vote_model.voter_id == voter_id)
        if value == 0:
            if previous is not None:
                self.session.execute(delete(vote_model).where(*match_row))
        elif previous is None:
            self.session.execute(
                insert(vote_model).values(
                    {_TARGET_COLUMNS[kind]: target_id, "voter_id": voter_id, "value": value}
                )
            )
        elif previous != value:
            self.session.execute(update(vote_model).where(*match_row).values(value=value))
        self.session.flush()

    def get_vote(self, kind: VotableKind, target_id: int, voter_id: int) -> int:
        """Return the voter's value on a votable, 0 when there is none."""
        vote_model = _VOTE_MODELS[kind]
        value = self.session.execute(
            select(vote_model.value).where(
                _target_column(kind) == target_id,
                vote_model.voter_id == voter_id,
            )
        ).scalar_one_or_none()
        return value or 0

    def viewer_votes(
        self,
        kind: VotableKind,
        target_ids: Iterable[int],
        voter_id: int,
    ) -> dict[int, int]:
        """Return the voter's values for many votables in one query."""
        ids = list(target_ids)
        if not ids:
            return {}
        vote_model = _VOTE_MODELS[kind]
        target = _target_column(kind)
        rows = self.session.execute(
            select(target, vote_model.value).where(
                vote_model.voter_id == voter_id,
                target.in_(ids),
            )
        )
        return {target_id: value for target_id, value in rows}
