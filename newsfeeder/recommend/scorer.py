"""Recommendation scoring from keyword weights and content age."""

import math
from collections.abc import Callable
from datetime import date

from newsfeeder.recommend.constants import FRESHNESS_PENALTY_PER_DAY
from newsfeeder.recommend.models import KeywordWeights, ScoreComponents


class RecommendScorer:
    """Scores content for a user from keyword weights and freshness.

    The keyword score is the product of positive weights minus the
    product of negated negative weights, floored at zero. Each day of age
    then costs ``FRESHNESS_PENALTY_PER_DAY`` points, and the total is
    floored at zero again.

    Future-dated content is treated as published today unless
    ``allow_future_bonus`` is set, in which case it earns a bonus.
    """

    def __init__(
        self,
        today: Callable[[], date] = date.today,
        allow_future_bonus: bool = False,
        penalty_per_day: float = FRESHNESS_PENALTY_PER_DAY,
    ) -> None:
        """Initialize the scorer.

        Args:
            today: Provider of the reference day.
            allow_future_bonus: Reward content dated after the reference day.
            penalty_per_day: Points lost per day of age.
        """
        self._today = today
        self._allow_future_bonus = allow_future_bonus
        self._penalty_per_day = penalty_per_day

    def score(
        self,
        weights: KeywordWeights,
        published_date: date,
        as_of: date | None = None,
    ) -> float:
        """Compute the final score of one content item.

        Args:
            weights: Weights of the keywords the content carries.
            published_date: Publication day of the content.
            as_of: Reference day (defaults to today).

        Returns:
            Non-negative score.
        """
        return self.score_components(weights, published_date, as_of).final_score

    def score_components(
        self,
        weights: KeywordWeights,
        published_date: date,
        as_of: date | None = None,
    ) -> ScoreComponents:
        """Compute the score with its breakdown."""
        positive_product = math.prod(weights.positive, start=1.0)
        negative_product = math.prod((-w for w in weights.negative), start=1.0)
        keyword_score = max(positive_product - negative_product, 0.0)

        reference = as_of or self._today()
        days_old = (reference - published_date).days
        if not self._allow_future_bonus:
            days_old = max(days_old, 0)

        freshness_score = -self._penalty_per_day * days_old
        final_score = max(keyword_score + freshness_score, 0.0)

        return ScoreComponents(
            positive_product=positive_product,
            negative_product=negative_product,
            keyword_score=keyword_score,
            days_old=days_old,
            freshness_score=freshness_score,
            final_score=final_score,
        )
