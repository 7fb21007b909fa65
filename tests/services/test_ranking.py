"""Tests for the new/top/hot orders."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import pytest

from threadvote.models import Post
from threadvote.services.ranking import RankingKey, hot_score, rank, sql_order_by

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


@dataclass
class Item:
    id: int
    score: int
    created_at: datetime


def _hours_ago(hours: float) -> datetime:
    return NOW - timedelta(hours=hours)


def test_top_breaks_ties_by_recency() -> None:
    older = Item(id=1, score=3, created_at=_hours_ago(5))
    newer = Item(id=2, score=3, created_at=_hours_ago(1))
    best = Item(id=3, score=5, created_at=_hours_ago(10))

    ranked = rank([older, newer, best], RankingKey.TOP)

    assert [item.id for item in ranked] == [3, 2, 1]


def test_new_orders_by_creation_then_id() -> None:
    same_time = _hours_ago(2)
    items = [
        Item(id=1, score=50, created_at=_hours_ago(3)),
        Item(id=2, score=0, created_at=same_time),
        Item(id=3, score=-4, created_at=same_time),
    ]

    assert [item.id for item in rank(items, "new")] == [3, 2, 1]


def test_hot_decays_with_age() -> None:
    fresh = Item(id=1, score=10, created_at=_hours_ago(1))
    stale = Item(id=2, score=50, created_at=_hours_ago(72))

    ranked = rank([stale, fresh], RankingKey.HOT, now=NOW)

    assert [item.id for item in ranked] == [1, 2]


def test_hot_score_formula() -> None:
    value = hot_score(9, _hours_ago(1), now=NOW, gravity=2.0, offset_hours=2.0)
    assert value == pytest.approx(1.0)


def test_hot_score_treats_future_items_as_new() -> None:
    future = NOW + timedelta(hours=3)
    assert hot_score(4, future, now=NOW) == hot_score(4, NOW, now=NOW)


def test_hot_handles_naive_timestamps() -> None:
    naive = _hours_ago(1).replace(tzinfo=None)
    assert hot_score(1, naive, now=NOW) == hot_score(1, _hours_ago(1), now=NOW)


def test_negative_scores_sink_under_hot() -> None:
    items = [
        Item(id=1, score=-3, created_at=_hours_ago(1)),
        Item(id=2, score=0, created_at=_hours_ago(30)),
    ]
    assert [item.id for item in rank(items, RankingKey.HOT, now=NOW)] == [2, 1]


def test_unknown_key_is_rejected() -> None:
    with pytest.raises(ValueError):
        rank([], "controversial")


def test_sql_order_by_only_covers_static_orders() -> None:
    assert sql_order_by(RankingKey.NEW, Post) is not None
    assert len(sql_order_by(RankingKey.TOP, Post)) == 3
    assert sql_order_by(RankingKey.HOT, Post) is None
