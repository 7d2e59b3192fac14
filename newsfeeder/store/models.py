"""Data models for the SQLite state store."""

from datetime import UTC, date, datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ContentItem(BaseModel):
    """A piece of newsletter or RSS content awaiting or past AI processing.

    Immutable once created. ``provider_priority`` orders batch selection:
    lower values are processed first.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int | None = Field(default=None, description="Row id (None until saved)")
    title: Annotated[str, Field(min_length=1, description="Original title")]
    body: Annotated[str, Field(description="Plain-text body")]
    published_date: date = Field(description="Publication day")
    provider_priority: int = Field(default=100, ge=0, description="Selection priority")
    newsletter_name: str = Field(default="", description="Sender or feed name")
    original_url: str = Field(default="", description="Link to the original article")
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def length_chars(self) -> int:
        """Body length in characters."""
        return len(self.body)


class Summary(BaseModel):
    """AI-generated summary of a content item."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int | None = None
    content_id: int
    title: Annotated[str, Field(min_length=1)]
    summarized_content: str
    model: str = Field(description="Producing model name")
    created_at: datetime = Field(default_factory=_utcnow)


class ExposureRecord(BaseModel):
    """User-facing rendering of a processed content item.

    At most one record exists per content item.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int | None = None
    content_id: int
    provocative_keyword: str
    headline: Annotated[str, Field(min_length=1)]
    summary_text: str
    created_at: datetime = Field(default_factory=_utcnow)


class Keyword(BaseModel):
    """Reserved keyword that content can be tagged with."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int | None = None
    name: Annotated[str, Field(min_length=1)]


class Category(BaseModel):
    """User-selectable content category."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int | None = None
    name: Annotated[str, Field(min_length=1)]


class KeywordWeight(BaseModel):
    """Signed weight of a keyword within a category.

    Positive weights boost content carrying the keyword, negative
    weights suppress it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    keyword_id: int
    keyword: str
    category_id: int
    signed_weight: float


class User(BaseModel):
    """Reader with category preferences."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int | None = None
    name: Annotated[str, Field(min_length=1)]
    category_ids: tuple[int, ...] = ()


class CandidateKeyword(BaseModel):
    """Keyword suggested by the AI that is not reserved yet."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int | None = None
    name: Annotated[str, Field(min_length=1)]
    suggestion_count: int = Field(default=1, ge=1)


class RateLimitCounter(BaseModel):
    """Per-model per-day request counter.

    Only ever mutated through a conditional increment in the store.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    model_name: Annotated[str, Field(min_length=1)]
    limit_date: date
    request_count: int = Field(default=0, ge=0)
    max_requests_per_day: int = Field(gt=0)


class ExposureCandidate(BaseModel):
    """Not-yet-exposed content eligible for a user's daily archive."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    exposure_id: int
    content_id: int
    published_date: date
    keyword_ids: frozenset[int]


class PreferenceSnapshot(BaseModel):
    """Inputs that produced a daily archive."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    user_id: int
    category_ids: tuple[int, ...]
    keyword_ids: tuple[int, ...]


class DailyArchive(BaseModel):
    """Per-user per-day ranking result.

    Unique per (user_id, archive_date) and never recomputed once stored.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int | None = None
    user_id: int
    archive_date: date
    snapshot: PreferenceSnapshot
    exposure_ids: tuple[int, ...]
    created_at: datetime = Field(default_factory=_utcnow)
