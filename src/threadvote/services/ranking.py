"""Ranking strategies for posts and comments.

Three named total orders are supported:

- ``new``: newest first.
- ``top``: highest score first, newer first among equal scores.
- ``hot``: highest time-decayed score first, where
  ``hot = score / (age_hours + offset) ** gravity``.

The same orders are used for flat listings and for every sibling group in a
comment thread.
"""
from __future__ import annotations

import enum
import math
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from typing import Protocol, TypeVar

from sqlalchemy import ColumnElement

from threadvote.core.settings import settings
from threadvote.db.time import ensure_utc, utcnow


class RankingKey(str, enum.Enum):
    """Names of the supported orders."""

    NEW = "new"
    TOP = "top"
    HOT = "hot"


class Rankable(Protocol):
    """Anything exposing the attributes the orders look at."""

    id: int
    score: int
    created_at: datetime


R = TypeVar("R", bound=Rankable)


def hot_score(
    score: int,
    created_at: datetime,
    *,
    now: datetime,
    gravity: float | None = None,
    offset_hours: float | None = None,
) -> float:
    """Return the time-decayed score of an item.

    Items from the future (clock skew) are treated as brand new.
    """
    gravity = settings.hot_gravity if gravity is None else gravity
    offset_hours = settings.hot_offset_hours if offset_hours is None else offset_hours
    age_hours = max(0.0, (ensure_utc(now) - ensure_utc(created_at)).total_seconds() / 3600.0)
    return score / math.pow(age_hours + offset_hours, gravity)


def _timestamp(value: datetime) -> float:
    return ensure_utc(value).timestamp()


def sort_key(key: RankingKey, *, now: datetime | None = None) -> Callable[[Rankable], tuple]:
    """Return a ``sorted`` key function implementing the named order."""
    key = RankingKey(key)
    if key is RankingKey.NEW:
        return lambda item: (-_timestamp(item.created_at), -item.id)
    if key is RankingKey.TOP:
        return lambda item: (-item.score, -_timestamp(item.created_at), -item.id)
    if key is RankingKey.HOT:
        reference = now or utcnow()
        return lambda item: (
            -hot_score(item.score, item.created_at, now=reference),
            -_timestamp(item.created_at),
            -item.id,
        )
    raise ValueError(f"Unknown ranking key: {key!r}")


def rank(items: Iterable[R], key: RankingKey, *, now: datetime | None = None) -> list[R]:
    """Return ``items`` sorted by the named order."""
    return sorted(items, key=sort_key(key, now=now))


def sql_order_by(key: RankingKey, model) -> Sequence[ColumnElement] | None:
    """Return ORDER BY clauses for orders a database can evaluate, else None.

    ``hot`` depends on the current time and needs floating point powers, so
    it is ranked in Python over a bounded candidate window instead.
    """
    key = RankingKey(key)
    if key is RankingKey.NEW:
        return (model.created_at.desc(), model.id.desc())
    if key is RankingKey.TOP:
        return (model.score.desc(), model.created_at.desc(), model.id.desc())
    return None
