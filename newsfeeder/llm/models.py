"""Data models for LLM requests and responses."""

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class ModelDescriptor:
    """Static description of a Gemini model and its free-tier quota.

    Attributes:
        name: API model identifier.
        rpm_limit: Requests allowed per minute.
        rpd_limit: Requests allowed per calendar day.
        cost_per_million_tokens_in: Input token price in USD.
        cost_per_million_tokens_out: Output token price in USD.
    """

    name: str
    rpm_limit: int
    rpd_limit: int
    cost_per_million_tokens_in: float = 0.0
    cost_per_million_tokens_out: float = 0.0


# Cheapest and fastest first; the orchestrator walks this order.
MODEL_CATALOG: tuple[ModelDescriptor, ...] = (
    ModelDescriptor(
        name="gemini-2.5-flash-lite",
        rpm_limit=10,
        rpd_limit=20,
        cost_per_million_tokens_in=0.10,
        cost_per_million_tokens_out=0.40,
    ),
    ModelDescriptor(
        name="gemini-2.5-flash",
        rpm_limit=5,
        rpd_limit=20,
        cost_per_million_tokens_in=0.30,
        cost_per_million_tokens_out=2.50,
    ),
)


class CallOutcome(str, Enum):
    """Why one model was passed over during orchestration."""

    RPM_DENIED = "RPM_DENIED"
    NO_RESPONSE = "NO_RESPONSE"
    PARSE_FAILED = "PARSE_FAILED"
    BACKEND_ERROR = "BACKEND_ERROR"

    @property
    def is_format_failure(self) -> bool:
        """Whether the model answered but the answer was unusable."""
        return self in (CallOutcome.NO_RESPONSE, CallOutcome.PARSE_FAILED)


@dataclass(frozen=True)
class ModelAttempt:
    """One model tried by the orchestrator.

    Attributes:
        model_name: Model that was tried.
        outcome: What happened.
        detail: Optional error text for logs.
    """

    model_name: str
    outcome: CallOutcome
    detail: str = ""


class ContentAnalysisPayload(BaseModel):
    """Wire shape of a single-content analysis response."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    summary: str
    provocative_headlines: list[str] = Field(alias="provocativeHeadlines")
    matched_keywords: list[str] = Field(alias="matchedKeywords")
    suggested_keywords: list[str] = Field(alias="suggestedKeywords")
    provocative_keywords: list[str] = Field(alias="provocativeKeywords")


class BatchContentAnalysisEntry(ContentAnalysisPayload):
    """One entry of a batch analysis response, keyed by content id."""

    model_config = ConfigDict(
        populate_by_name=True, extra="ignore", coerce_numbers_to_str=True
    )

    content_id: str = Field(alias="contentId")


class BatchContentAnalysisPayload(BaseModel):
    """Wire shape of a batch analysis response."""

    model_config = ConfigDict(extra="ignore")

    results: list[BatchContentAnalysisEntry]


@dataclass(frozen=True)
class AnalysisResult:
    """Structured AI output for one content item.

    Attributes:
        summary: Short summary of the content.
        headlines: Attention-grabbing headlines, best first.
        matched_keywords: Requested keywords found in the content.
        suggested_keywords: New keywords proposed by the model.
        provocative_keywords: Click-worthy keywords, best first.
        producing_model: Model that produced the result.
    """

    summary: str
    headlines: tuple[str, ...]
    matched_keywords: tuple[str, ...]
    suggested_keywords: tuple[str, ...]
    provocative_keywords: tuple[str, ...]
    producing_model: str

    @classmethod
    def from_payload(
        cls, payload: ContentAnalysisPayload, producing_model: str
    ) -> "AnalysisResult":
        """Build a result from a validated response payload."""
        return cls(
            summary=payload.summary.strip(),
            headlines=tuple(h for h in payload.provocative_headlines if h.strip()),
            matched_keywords=tuple(payload.matched_keywords),
            suggested_keywords=tuple(payload.suggested_keywords),
            provocative_keywords=tuple(
                k for k in payload.provocative_keywords if k.strip()
            ),
            producing_model=producing_model,
        )


@dataclass(frozen=True)
class BatchAnalysisResult:
    """Structured AI output for a batch of content items.

    Attributes:
        results: Analysis per content id as returned by the model.
        producing_model: Model that produced the batch.
    """

    results: dict[str, AnalysisResult] = field(default_factory=dict)
    producing_model: str | None = None

    def for_content(self, content_id: int) -> AnalysisResult | None:
        """Get the entry for a content item, if the model returned one."""
        return self.results.get(str(content_id))
