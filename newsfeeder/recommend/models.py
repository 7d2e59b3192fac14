"""Data models for recommendation scoring."""

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class KeywordWeights:
    """Category weights of the keywords a content item carries.

    Attributes:
        positive: Weights greater than zero.
        negative: Weights lower than zero, kept signed.
    """

    positive: tuple[float, ...] = ()
    negative: tuple[float, ...] = ()

    @classmethod
    def from_signed(cls, weights: Iterable[float]) -> "KeywordWeights":
        """Split signed weights into positive and negative groups.

        Zero weights carry no signal and are dropped.

        Args:
            weights: Signed weights of the matched keywords.

        Returns:
            Grouped weights.
        """
        values = list(weights)
        return cls(
            positive=tuple(w for w in values if w > 0),
            negative=tuple(w for w in values if w < 0),
        )


@dataclass(frozen=True)
class ScoreComponents:
    """Breakdown of a recommendation score.

    Attributes:
        positive_product: Product of positive weights (1.0 when none).
        negative_product: Product of negated negative weights (1.0 when none).
        keyword_score: Keyword contribution, floored at zero.
        days_old: Age of the content used for freshness.
        freshness_score: Freshness contribution (zero or negative by default).
        final_score: Total, floored at zero.
    """

    positive_product: float
    negative_product: float
    keyword_score: float
    days_old: int
    freshness_score: float
    final_score: float

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary for serialization.

        Returns:
            Dictionary of component name to value.
        """
        return {
            "positive_product": self.positive_product,
            "negative_product": self.negative_product,
            "keyword_score": self.keyword_score,
            "days_old": self.days_old,
            "freshness_score": self.freshness_score,
            "final_score": self.final_score,
        }


@dataclass(frozen=True)
class RankedCandidate:
    """Candidate exposure with its score.

    Attributes:
        exposure_id: Exposure record to show.
        content_id: Underlying content item.
        components: Score breakdown.
    """

    exposure_id: int
    content_id: int
    components: ScoreComponents

    @property
    def score(self) -> float:
        """Final score."""
        return self.components.final_score
