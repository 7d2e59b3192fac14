"""Recommendation scoring and per-user daily archives."""

from newsfeeder.recommend.constants import FRESHNESS_PENALTY_PER_DAY, MAX_CONTENT_SIZE
from newsfeeder.recommend.errors import RefreshNotAvailableError
from newsfeeder.recommend.models import KeywordWeights, RankedCandidate, ScoreComponents
from newsfeeder.recommend.resolver import ArchiveResolver, RecommendStore
from newsfeeder.recommend.scorer import RecommendScorer
from newsfeeder.recommend.state_machine import (
    ArchiveState,
    ArchiveStateError,
    ArchiveStateMachine,
)


__all__ = [
    "FRESHNESS_PENALTY_PER_DAY",
    "MAX_CONTENT_SIZE",
    "ArchiveResolver",
    "ArchiveState",
    "ArchiveStateError",
    "ArchiveStateMachine",
    "KeywordWeights",
    "RankedCandidate",
    "RecommendScorer",
    "RecommendStore",
    "RefreshNotAvailableError",
    "ScoreComponents",
]
