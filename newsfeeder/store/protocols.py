"""Narrow persistence interfaces consumed by the processing and recommend cores.

``SqliteStore`` implements all of them; tests substitute in-memory fakes
where a real database would only add noise.
"""

from datetime import date
from typing import Protocol

from newsfeeder.store.models import (
    Category,
    ContentItem,
    DailyArchive,
    ExposureCandidate,
    ExposureRecord,
    KeywordWeight,
    RateLimitCounter,
    Summary,
    User,
)


class ContentStore(Protocol):
    """Source of content awaiting AI processing."""

    def fetch_unprocessed(
        self, limit: int, order_by_priority: bool = True
    ) -> list[ContentItem]:
        """Return up to ``limit`` content items without an exposure record."""
        ...

    def count_unprocessed(self) -> int:
        """Return how many content items still lack an exposure record."""
        ...

    def save_content(self, content: ContentItem) -> ContentItem:
        """Persist a content item and return it with its id."""
        ...


class SummaryStore(Protocol):
    """Summaries and keyword tagging produced by the AI."""

    def save_summary(self, summary: Summary) -> Summary:
        """Persist a summary and return it with its id."""
        ...

    def find_summaries_by_content(self, content_id: int) -> list[Summary]:
        """Return summaries for a content item, newest first."""
        ...

    def list_keyword_names(self) -> list[str]:
        """Return all reserved keyword names."""
        ...

    def assign_keywords(self, content_id: int, keyword_names: list[str]) -> list[str]:
        """Tag content with the reserved keywords among ``keyword_names``.

        Returns:
            Names of the reserved keywords that matched, in input order.
        """
        ...

    def record_candidate_keywords(self, names: list[str]) -> int:
        """Record AI-suggested keywords that are not reserved yet."""
        ...


class ExposureStore(Protocol):
    """User-facing exposure records, unique per content item."""

    def upsert_exposure(self, record: ExposureRecord) -> ExposureRecord:
        """Create or replace the exposure record for ``record.content_id``."""
        ...

    def find_exposure_by_content(self, content_id: int) -> ExposureRecord | None:
        """Return the exposure record for a content item, if any."""
        ...


class RateLimitStore(Protocol):
    """Persistent per-model per-day request counters."""

    def find_or_create_rate_limit(
        self, model_name: str, limit_date: date, max_requests_per_day: int
    ) -> RateLimitCounter:
        """Return the counter for (model, date), creating it at zero."""
        ...

    def conditional_increment(self, counter: RateLimitCounter) -> bool:
        """Atomically increment the counter unless it already hit its cap.

        Returns:
            True if the counter was incremented.
        """
        ...

    def list_rate_limits(self, limit_date: date) -> list[RateLimitCounter]:
        """Return all counters for a calendar day."""
        ...


class PreferenceStore(Protocol):
    """Users, categories and keyword weights used for recommendation."""

    def get_user(self, user_id: int) -> User:
        """Return a user or raise ``UserNotFoundError``."""
        ...

    def get_category(self, category_id: int) -> Category:
        """Return a category or raise ``CategoryNotFoundError``."""
        ...

    def list_categories(self) -> list[Category]:
        """Return every category."""
        ...

    def get_keyword_weights(self, category_ids: list[int]) -> list[KeywordWeight]:
        """Return keyword weights configured for the given categories."""
        ...

    def find_unexposed_candidates(
        self, user_id: int | None, keyword_ids: list[int]
    ) -> list[ExposureCandidate]:
        """Return processed content the user has not been shown yet.

        Only content tagged with at least one of ``keyword_ids`` and
        carrying an exposure record is returned. A ``user_id`` of None
        excludes nothing.
        """
        ...


class ArchiveStore(Protocol):
    """Per-user per-day archives and their exposure history."""

    def find_archive_by_user_and_date(
        self, user_id: int, archive_date: date
    ) -> DailyArchive | None:
        """Return the archive for (user, date), if any."""
        ...

    def save_archive(self, archive: DailyArchive) -> DailyArchive:
        """Persist a new archive and record its exposures for the user.

        Raises:
            DuplicateArchiveError: If an archive already exists for the key.
        """
        ...

    def delete_archive(self, user_id: int, archive_date: date) -> bool:
        """Delete an archive and soft-delete its exposure history."""
        ...

    def has_refreshed(self, user_id: int, archive_date: date) -> bool:
        """Return whether the user already refreshed the archive for a day."""
        ...
