"""SQLite state store for content, AI results, quotas and daily archives.

This module provides persistent storage for:
- Content items and their summaries, keyword tags and exposure records
- Per-model per-day request counters with conditional increments
- Users, categories, keyword weights and per-day archives
"""

from newsfeeder.store.errors import (
    CandidateKeywordNotFoundError,
    CategoryNotFoundError,
    ConnectionError,
    ContentNotFoundError,
    DuplicateArchiveError,
    MigrationError,
    NotFoundError,
    StateStoreError,
    UserNotFoundError,
)
from newsfeeder.store.metrics import StoreMetrics
from newsfeeder.store.models import (
    CandidateKeyword,
    Category,
    ContentItem,
    DailyArchive,
    ExposureCandidate,
    ExposureRecord,
    Keyword,
    KeywordWeight,
    PreferenceSnapshot,
    RateLimitCounter,
    Summary,
    User,
)
from newsfeeder.store.store import SqliteStore


__all__ = [
    # Errors
    "CandidateKeywordNotFoundError",
    "CategoryNotFoundError",
    "ConnectionError",
    "ContentNotFoundError",
    "DuplicateArchiveError",
    "MigrationError",
    "NotFoundError",
    "StateStoreError",
    "UserNotFoundError",
    # Metrics
    "StoreMetrics",
    # Models
    "CandidateKeyword",
    "Category",
    "ContentItem",
    "DailyArchive",
    "ExposureCandidate",
    "ExposureRecord",
    "Keyword",
    "KeywordWeight",
    "PreferenceSnapshot",
    "RateLimitCounter",
    "Summary",
    "User",
    # Store
    "SqliteStore",
]
