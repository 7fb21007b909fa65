"""Tests for atomic vote casting against the database."""

from __future__ import annotations

import threading
from collections.abc import Callable

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from tests.conftest import make_comment, make_post, make_user
from threadvote.core.errors import AggregationFailure, Forbidden, InvalidValue, NotFound
from threadvote.models import Comment, Post, PostVote, User, VotableKind
from threadvote.services.voting import VotableLocks, VoteService, run_votable_unit


def _vote_rows(session: Session, post_id: int) -> int:
    return session.execute(
        select(func.count()).select_from(PostVote).where(PostVote.post_id == post_id)
    ).scalar_one()


def test_upvote_updates_cached_score(
    db_session: Session, test_post: Post, other_user: User
) -> None:
    outcome = VoteService(db_session).cast_vote(VotableKind.POST, test_post.id, other_user.id, 1)

    db_session.refresh(test_post)
    assert outcome.score == 1
    assert outcome.voter_value == 1
    assert outcome.changed is True
    assert outcome.author_id == test_post.author_id
    assert test_post.score == 1


def test_same_vote_twice_is_idempotent(
    db_session: Session, test_post: Post, other_user: User
) -> None:
    service = VoteService(db_session)
    service.cast_vote(VotableKind.POST, test_post.id, other_user.id, 1)
    again = service.cast_vote(VotableKind.POST, test_post.id, other_user.id, 1)

    assert again.score == 1
    assert again.changed is False
    assert _vote_rows(db_session, test_post.id) == 1


def test_flip_and_retract(db_session: Session, test_post: Post, other_user: User) -> None:
    voter = make_user(db_session)
    service = VoteService(db_session)
    service.cast_vote(VotableKind.POST, test_post.id, voter.id, 1)
    service.cast_vote(VotableKind.POST, test_post.id, other_user.id, 1)

    flipped = service.cast_vote(VotableKind.POST, test_post.id, other_user.id, -1)
    assert flipped.score == 0

    retracted = service.cast_vote(VotableKind.POST, test_post.id, other_user.id, 0)
    assert retracted.score == 1
    assert retracted.voter_value == 0
    assert service.current_vote(VotableKind.POST, test_post.id, other_user.id) == 0
    assert service.current_vote(VotableKind.POST, test_post.id, voter.id) == 1
    assert _vote_rows(db_session, test_post.id) == 1


def test_retract_without_vote_is_noop(
    db_session: Session, test_post: Post, other_user: User
) -> None:
    outcome = VoteService(db_session).cast_vote(VotableKind.POST, test_post.id, other_user.id, 0)

    assert outcome.score == 0
    assert outcome.changed is False


def test_comment_votes_are_independent_of_post_votes(
    db_session: Session, test_post: Post, test_user: User, other_user: User
) -> None:
    comment = make_comment(db_session, test_post, test_user)
    service = VoteService(db_session)

    service.cast_vote(VotableKind.COMMENT, comment.id, other_user.id, -1)

    db_session.refresh(comment)
    db_session.refresh(test_post)
    assert comment.score == -1
    assert test_post.score == 0


def test_invalid_value_is_rejected_before_touching_storage(
    db_session: Session, test_post: Post, other_user: User
) -> None:
    with pytest.raises(InvalidValue):
        VoteService(db_session).cast_vote(VotableKind.POST, test_post.id, other_user.id, 2)
    assert _vote_rows(db_session, test_post.id) == 0


def test_missing_and_deleted_votables_are_not_found(
    db_session: Session, test_user: User, other_user: User
) -> None:
    deleted = make_post(db_session, test_user, deleted=True)
    service = VoteService(db_session)

    with pytest.raises(NotFound):
        service.cast_vote(VotableKind.POST, 999_999, other_user.id, 1)
    with pytest.raises(NotFound):
        service.cast_vote(VotableKind.POST, deleted.id, other_user.id, 1)
    with pytest.raises(NotFound):
        service.current_vote(VotableKind.COMMENT, 999_999, other_user.id)


def test_self_votes_follow_policy(db_session: Session, test_post: Post, test_user: User) -> None:
    allowed = VoteService(db_session, allow_self_votes=True)
    assert allowed.cast_vote(VotableKind.POST, test_post.id, test_user.id, 1).score == 1

    strict = VoteService(db_session, allow_self_votes=False)
    with pytest.raises(Forbidden):
        strict.cast_vote(VotableKind.POST, test_post.id, test_user.id, -1)

    db_session.refresh(test_post)
    assert test_post.score == 1


def test_conflicting_unit_is_retried(db_session: Session, test_post: Post) -> None:
    attempts: list[int] = []

    def work() -> str:
        attempts.append(1)
        if len(attempts) < 3:
            raise StaleDataError("simulated concurrent update")
        return "done"

    result = run_votable_unit(db_session, VotableKind.POST, test_post.id, work, max_retries=5)

    assert result == "done"
    assert len(attempts) == 3


def test_unit_gives_up_after_max_retries(db_session: Session, test_post: Post) -> None:
    def work() -> None:
        raise StaleDataError("always conflicting")

    with pytest.raises(AggregationFailure):
        run_votable_unit(db_session, VotableKind.POST, test_post.id, work, max_retries=2)


def test_failed_unit_leaves_score_untouched(
    db_session: Session, test_post: Post, other_user: User
) -> None:
    VoteService(db_session).cast_vote(VotableKind.POST, test_post.id, other_user.id, 1)

    def work() -> None:
        post = db_session.get(Post, test_post.id)
        post.score = 100
        db_session.flush()
        raise NotFound("abort after writing")

    with pytest.raises(NotFound):
        run_votable_unit(db_session, VotableKind.POST, test_post.id, work)

    db_session.refresh(test_post)
    assert test_post.score == 1


def test_locks_are_released_after_use() -> None:
    locks = VotableLocks()
    with locks.hold(VotableKind.POST, 1):
        with locks.hold(VotableKind.COMMENT, 1):
            assert len(locks) == 2
    assert len(locks) == 0


def test_unit_holds_the_locks_it_is_given(db_session: Session, test_post: Post) -> None:
    locks = VotableLocks()

    def work() -> int:
        return len(locks)

    held = run_votable_unit(db_session, VotableKind.POST, test_post.id, work, locks=locks)

    assert held == 1
    assert len(locks) == 0



@pytest.mark.parametrize(
    "shared_locks", [True, False], ids=["process-locks", "version-column-only"]
)
def test_concurrent_voters_lose_no_updates(
    file_session_factory: Callable[[], Session], shared_locks: bool
) -> None:
    setup = file_session_factory()
    author = User(username="author")
    voters = [User(username=f"voter{i}") for i in range(16)]
    setup.add_all([author, *voters])
    setup.flush()
    post = Post(author_id=author.id, community="testing", title="busy", kind="text")
    setup.add(post)
    setup.commit()
    post_id = post.id
    voter_ids = [voter.id for voter in voters]
    start_version = post.version
    setup.close()

    values = [1 if i % 3 else -1 for i in range(len(voter_ids))]
    errors: list[BaseException] = []
    barrier = threading.Barrier(len(voter_ids))

    def cast(voter_id: int, value: int) -> None:
        session = file_session_factory()
        try:
            barrier.wait()
            if shared_locks:
                service = VoteService(session)
            else:
                # Only the version column stands between concurrent writers.
                service = VoteService(
                    session, locks=VotableLocks(), max_retries=len(voter_ids) + 1
                )
            service.cast_vote(VotableKind.POST, post_id, voter_id, value)
        except BaseException as exc:  # pragma: no cover - surfaced below
            errors.append(exc)
        finally:
            session.close()

    threads = [
        threading.Thread(target=cast, args=(voter_id, value))
        for voter_id, value in zip(voter_ids, values)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    check = file_session_factory()
    try:
        stored = check.get(Post, post_id)
        assert stored.score == sum(values)
        assert stored.version == start_version + len(voter_ids)
        assert check.execute(
            select(func.sum(PostVote.value)).where(PostVote.post_id == post_id)
        ).scalar_one() == sum(values)
    finally:
        check.close()


def test_concurrent_comment_votes_bump_version(
    file_session_factory: Callable[[], Session],
) -> None:
    setup = file_session_factory()
    author, voter = User(username="author"), User(username="voter")
    setup.add_all([author, voter])
    setup.flush()
    post = Post(author_id=author.id, community="testing", title="t", kind="text")
    setup.add(post)
    setup.flush()
    comment = Comment(post_id=post.id, author_id=author.id, body="hi")
    setup.add(comment)
    setup.commit()
    comment_id, voter_id = comment.id, voter.id
    start_version = comment.version
    setup.close()

    first = file_session_factory()
    VoteService(first).cast_vote(VotableKind.COMMENT, comment_id, voter_id, 1)
    first.close()

    second = file_session_factory()
    try:
        stored = second.get(Comment, comment_id)
        assert stored.score == 1
        assert stored.version == start_version + 1
    finally:
        second.close()
