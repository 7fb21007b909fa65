# src/threadvote/services/__init__.py
"""Business logic services for the threadvote application."""

from .comment_service import CommentService
from .karma import InlineKarmaScheduler, KarmaAggregator, KarmaWorker
from .ledger import AggregateCounter, VoteLedger
from .ranking import RankingKey
from .threads import ThreadAssembler
from .voting import VoteService

__all__ = [
    "AggregateCounter",
    "CommentService",
    "InlineKarmaScheduler",
    "KarmaAggregator",
    "KarmaWorker",
    "RankingKey",
    "ThreadAssembler",
    "VoteLedger",
    "VoteService",
]
