"""Atomic vote casting.

Casting a vote, recomputing the score and persisting both is one unit per
votable. Three layers keep concurrent units from losing each other's
updates:

1. an in-process lock per votable serialises writers inside one worker,
2. ``SELECT ... FOR UPDATE`` serialises writers across processes on
   databases that support row locks,
3. the ``version`` column of posts and comments turns any remaining
   interleaving into a ``StaleDataError``, and the unit is retried on
   fresh state.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from threadvote.core.errors import AggregationFailure, EngineError, Forbidden, NotFound
from threadvote.core.settings import settings
from threadvote.models import VotableKind
from threadvote.repositories.votable_repo import VotableRepository
from threadvote.services.ledger import AggregateCounter, VoteLedger, validate_vote_value

logger = logging.getLogger(__name__)

T = TypeVar("T")


class VotableLocks:
    """Per-votable mutexes, created on demand and dropped when unused."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # key -> [lock, number of holders and waiters]
        self._locks: dict[tuple[VotableKind, int], list] = {}

    @contextmanager
    def hold(self, kind: VotableKind, target_id: int) -> Iterator[None]:
        key = (VotableKind(kind), target_id)
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


votable_locks = VotableLocks()


def run_votable_unit(
    session: Session,
    kind: VotableKind,
    target_id: int,
    work: Callable[[], T],
    *,
    max_retries: int | None = None,
    locks: VotableLocks | None = None,
) -> T:
    """Run ``work`` and commit it as one atomic unit on a single votable.

    ``work`` must read everything it needs from the session on every call,
    since a conflicting attempt is rolled back and ``work`` runs again.

    Raises:
        EngineError: Whatever ``work`` raised; the unit is rolled back first.
        AggregationFailure: If the unit could not be persisted or kept
            conflicting for ``max_retries`` attempts.
    """
    attempts = max_retries or settings.vote_max_retries
    locks = votable_locks if locks is None else locks
    for attempt in range(1, attempts + 1):
        with locks.hold(kind, target_id):
            try:
                result = work()
                session.commit()
                return result
            except (StaleDataError, IntegrityError) as exc:
                session.rollback()
                logger.info(
                    "Concurrent update on %s %s (attempt %d/%d): %s",
                    kind.value, target_id, attempt, attempts, exc,
                )
            except EngineError:
                session.rollback()
                raise
            except SQLAlchemyError as exc:
                session.rollback()
                raise AggregationFailure(
                    f"Could not persist update to {kind.value} {target_id}"
                ) from exc

    raise AggregationFailure(
        f"Update to {kind.value} {target_id} kept conflicting after {attempts} attempts"
    )


@dataclass(frozen=True)
class VoteOutcome:
    """Result of a cast: the fresh score and the value the voter now holds."""

    kind: VotableKind
    target_id: int
    author_id: int
    score: int
    voter_value: int
    changed: bool


class VoteService:
    """Casts and retracts votes on posts and comments."""

    def __init__(
        self,
        session: Session,
        *,
        allow_self_votes: bool | None = None,
        max_retries: int | None = None,
        locks: VotableLocks | None = None,
    ) -> None:
        self.session = session
        self.votables = VotableRepository(session)
        self.allow_self_votes = (
            settings.allow_self_votes if allow_self_votes is None else allow_self_votes
        )
        self.max_retries = max_retries
        self.locks = locks

    def cast_vote(
        self,
        kind: VotableKind,
        target_id: int,
        voter_id: int,
        value: int,
    ) -> VoteOutcome:
        """Apply ``value`` for ``voter_id`` and persist the refreshed score.

        Raises:
            InvalidValue: If ``value`` is not one of -1, 0, 1.
            NotFound: If the votable does not exist or is soft-deleted.
            Forbidden: If self-votes are disabled and the voter is the author.
            AggregationFailure: If the vote and score could not be persisted.
        """
        kind = VotableKind(kind)
        value = validate_vote_value(value)

        def apply() -> VoteOutcome:
            votable = self.votables.get(kind, target_id, for_update=True)
            if votable is None:
                raise NotFound(f"{kind.value.capitalize()} not found")
            if not self.allow_self_votes and votable.author_id == voter_id:
                raise Forbidden("You cannot vote on your own content")

            votes = self.votables.load_vote_set(kind, target_id)
            updated = VoteLedger.cast_vote(votes, voter_id, value)
            self.votables.store_vote(
                kind, target_id, voter_id, previous=votes.get(voter_id), value=value
            )
            score = AggregateCounter.recompute(updated)
            if votable.score != score:
                votable.score = score
            # Flush here so a version conflict surfaces inside the unit.
            self.session.flush()
            return VoteOutcome(
                kind=kind,
                target_id=target_id,
                author_id=votable.author_id,
                score=score,
                voter_value=value,
                changed=updated != votes,
            )

        outcome = run_votable_unit(
            self.session,
            kind,
            target_id,
            apply,
            max_retries=self.max_retries,
            locks=self.locks,
        )
        logger.debug(
            "Voter %s cast %d on %s %s; score now %d",
            voter_id, value, kind.value, target_id, outcome.score,
        )
        return outcome

    def current_vote(self, kind: VotableKind, target_id: int, voter_id: int) -> int:
        """Return the voter's value on a live votable, 0 when there is none."""
        kind = VotableKind(kind)
        if self.votables.get(kind, target_id) is None:
            raise NotFound(f"{kind.value.capitalize()} not found")
        return self.votables.get_vote(kind, target_id, voter_id)
