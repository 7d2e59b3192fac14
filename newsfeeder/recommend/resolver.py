"""Per-user daily archive resolution."""

import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import Protocol

import structlog

from newsfeeder.recommend.constants import MAX_CONTENT_SIZE
from newsfeeder.recommend.errors import RefreshNotAvailableError
from newsfeeder.recommend.models import KeywordWeights, RankedCandidate
from newsfeeder.recommend.scorer import RecommendScorer
from newsfeeder.recommend.state_machine import ArchiveState, ArchiveStateMachine
from newsfeeder.store.errors import DuplicateArchiveError
from newsfeeder.store.models import (
    DailyArchive,
    ExposureCandidate,
    ExposureRecord,
    KeywordWeight,
    PreferenceSnapshot,
)
from newsfeeder.store.protocols import ArchiveStore, PreferenceStore


logger = structlog.get_logger()


class RecommendStore(PreferenceStore, ArchiveStore, Protocol):
    """Everything archive resolution reads and writes."""

    def get_exposures(self, exposure_ids: list[int]) -> list[ExposureRecord]:
        """Return exposure records by id, in the given order."""
        ...


@dataclass
class _KeyLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


def merge_keyword_weights(
    weights: Sequence[KeywordWeight], category_order: Sequence[int]
) -> dict[int, float]:
    """Union keyword weights across categories.

    When a keyword is weighted in several categories, the category that
    comes first in ``category_order`` wins.

    Args:
        weights: Weights of all selected categories.
        category_order: Selected categories in preference order.

    Returns:
        Signed weight per keyword id.
    """
    rank = {category_id: i for i, category_id in enumerate(category_order)}
    merged: dict[int, float] = {}
    for weight in sorted(weights, key=lambda w: rank.get(w.category_id, len(rank))):
        merged.setdefault(weight.keyword_id, weight.signed_weight)
    return merged


class ArchiveResolver:
    """Builds and caches each user's ranked content for a day.

    An archive is computed at most once per (user, date). A per-key lock
    serializes callers within this process and the store's uniqueness
    constraint settles races between processes: the loser adopts the
    stored archive.
    """

    def __init__(
        self,
        store: RecommendStore,
        scorer: RecommendScorer,
        today: Callable[[], date] = date.today,
        max_content_size: int = MAX_CONTENT_SIZE,
    ) -> None:
        """Initialize the resolver.

        Args:
            store: Preference, exposure and archive persistence.
            scorer: Candidate scorer.
            today: Provider of the current calendar day.
            max_content_size: Exposures kept per archive.
        """
        self._store = store
        self._scorer = scorer
        self._today = today
        self._max_content_size = max_content_size
        self._locks: dict[tuple[int, date], _KeyLock] = {}
        self._locks_guard = threading.Lock()
        self._log = logger.bind(component="recommend", subcomponent="archive_resolver")

    def get_today_archive(
        self, user_id: int, archive_date: date | None = None
    ) -> DailyArchive | None:
        """Look up a stored archive without computing one.

        Args:
            user_id: Archive owner.
            archive_date: Archive day (defaults to today).

        Returns:
            The stored archive, or None.
        """
        return self._store.find_archive_by_user_and_date(
            user_id, archive_date or self._today()
        )

    def resolve_today_archive(
        self, user_id: int, archive_date: date | None = None
    ) -> DailyArchive:
        """Return the user's archive for a day, computing it on first use.

        Args:
            user_id: Archive owner.
            archive_date: Archive day (defaults to today).

        Returns:
            The stored archive. Repeated calls return the same archive.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        day = archive_date or self._today()
        machine = ArchiveStateMachine(user_id, day)

        with self._lock_for(user_id, day):
            existing = self._store.find_archive_by_user_and_date(user_id, day)
            if existing is not None:
                machine.transition(ArchiveState.CACHED)
                self._log.debug("archive_cache_hit", user_id=user_id, archive_date=day.isoformat())
                return existing

            machine.transition(ArchiveState.COMPUTING)
            try:
                archive = self._compute_and_save(user_id, day)
            except DuplicateArchiveError:
                stored = self._store.find_archive_by_user_and_date(user_id, day)
                if stored is None:
                    machine.transition(ArchiveState.UNCOMPUTED)
                    raise
                self._log.info(
                    "archive_conflict_adopted",
                    user_id=user_id,
                    archive_date=day.isoformat(),
                )
                archive = stored
            except Exception:
                machine.transition(ArchiveState.UNCOMPUTED)
                raise

            machine.transition(ArchiveState.CACHED)
            return archive

    def refresh_today_archive(self, user_id: int, archive_date: date | None = None) -> bool:
        """Discard the user's archive for a day so the next resolve recomputes it.

        Content shown in the discarded archive becomes eligible again.
        Allowed once per user per day.

        Args:
            user_id: Archive owner.
            archive_date: Archive day (defaults to today).

        Returns:
            True if an archive was discarded, False if none existed.

        Raises:
            RefreshNotAvailableError: If the user already refreshed that day.
        """
        day = archive_date or self._today()

        with self._lock_for(user_id, day):
            if self._store.find_archive_by_user_and_date(user_id, day) is None:
                self._log.info("archive_refresh_noop", user_id=user_id, archive_date=day.isoformat())
                return False

            if self._store.has_refreshed(user_id, day):
                self._log.warning(
                    "archive_refresh_denied", user_id=user_id, archive_date=day.isoformat()
                )
                raise RefreshNotAvailableError(user_id, day)

            machine = ArchiveStateMachine(user_id, day, initial=ArchiveState.CACHED)
            self._store.delete_archive(user_id, day)
            machine.transition(ArchiveState.UNCOMPUTED)
            self._log.info("archive_refreshed", user_id=user_id, archive_date=day.isoformat())
            return True

    def resolve_category_preview(
        self, category_id: int, user_id: int | None = None
    ) -> list[ExposureRecord]:
        """Rank exposures for a single category without persisting anything.

        Args:
            category_id: Category to rank for.
            user_id: Exclude content already shown to this user, if given.

        Returns:
            Top exposures in descending score order.

        Raises:
            CategoryNotFoundError: If the category does not exist.
        """
        self._store.get_category(category_id)
        weights = merge_keyword_weights(
            self._store.get_keyword_weights([category_id]), [category_id]
        )
        candidates = self._store.find_unexposed_candidates(user_id, sorted(weights))
        ranked = self.rank_candidates(candidates, weights, self._today())
        return self._store.get_exposures([c.exposure_id for c in ranked])

    def rank_candidates(
        self,
        candidates: Sequence[ExposureCandidate],
        weights: dict[int, float],
        as_of: date,
    ) -> list[RankedCandidate]:
        """Score candidates and keep the best ones.

        Args:
            candidates: Eligible exposures with their keyword ids.
            weights: Signed weight per keyword id.
            as_of: Reference day for freshness.

        Returns:
            Up to ``max_content_size`` candidates with a positive score,
            highest first; ties go to the lower content id.
        """
        ranked: list[RankedCandidate] = []
        for candidate in candidates:
            keyword_weights = KeywordWeights.from_signed(
                weights[k] for k in sorted(candidate.keyword_ids) if k in weights
            )
            components = self._scorer.score_components(
                keyword_weights, candidate.published_date, as_of
            )
            if components.final_score > 0:
                ranked.append(
                    RankedCandidate(candidate.exposure_id, candidate.content_id, components)
                )

        ranked.sort(key=lambda c: (-c.score, c.content_id))
        return ranked[: self._max_content_size]

    def _compute_and_save(self, user_id: int, day: date) -> DailyArchive:
        user = self._store.get_user(user_id)
        category_ids = list(user.category_ids)
        if not category_ids:
            category_ids = [c.id for c in self._store.list_categories() if c.id is not None]
            self._log.info("user_without_categories", user_id=user_id, fallback=len(category_ids))

        weights = merge_keyword_weights(
            self._store.get_keyword_weights(category_ids), category_ids
        )
        keyword_ids = sorted(weights)
        candidates = self._store.find_unexposed_candidates(user_id, keyword_ids)
        ranked = self.rank_candidates(candidates, weights, day)

        if len(ranked) < self._max_content_size:
            self._log.warning(
                "archive_underfilled",
                user_id=user_id,
                candidates=len(candidates),
                selected=len(ranked),
            )

        archive = self._store.save_archive(
            DailyArchive(
                user_id=user_id,
                archive_date=day,
                snapshot=PreferenceSnapshot(
                    user_id=user_id,
                    category_ids=tuple(category_ids),
                    keyword_ids=tuple(keyword_ids),
                ),
                exposure_ids=tuple(c.exposure_id for c in ranked),
            )
        )
        self._log.info(
            "archive_created",
            user_id=user_id,
            archive_date=day.isoformat(),
            exposure_ids=list(archive.exposure_ids),
            scores=[round(c.score, 4) for c in ranked],
        )
        return archive

    @contextmanager
    def _lock_for(self, user_id: int, day: date) -> Iterator[None]:
        """Serialize callers for one (user, date); the entry is dropped when idle."""
        key = (user_id, day)
        with self._locks_guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _KeyLock()
            entry.users += 1

        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[key]
