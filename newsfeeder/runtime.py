"""Wiring of the processing and recommendation components."""

import zoneinfo
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime

from newsfeeder.llm.orchestrator import ModelOrchestrator
from newsfeeder.llm.protocols import AiBackend
from newsfeeder.llm.rate_limiter import RateLimiter
from newsfeeder.processing.batch import BatchProcessor
from newsfeeder.processing.pipeline import SingleContentPipeline
from newsfeeder.recommend.resolver import ArchiveResolver
from newsfeeder.recommend.scorer import RecommendScorer
from newsfeeder.settings import AppSettings
from newsfeeder.store.store import SqliteStore


def today_provider(timezone: str) -> Callable[[], date]:
    """Build a provider of the current calendar day in ``timezone``.

    Args:
        timezone: IANA timezone name.

    Returns:
        Zero-argument callable returning today's date.

    Raises:
        zoneinfo.ZoneInfoNotFoundError: If the timezone is unknown.
    """
    tz = zoneinfo.ZoneInfo(timezone)

    def _today() -> date:
        return datetime.now(tz).date()

    return _today


@dataclass(frozen=True)
class Runtime:
    """Components sharing one store and one day boundary.

    Attributes:
        store: Connected store.
        today: Provider of the current calendar day.
        rate_limiter: Shared admission control.
        resolver: Daily archive resolver.
        orchestrator: Model orchestrator, when an AI backend is configured.
        batch_processor: Batch processor, when an AI backend is configured.
    """

    store: SqliteStore
    today: Callable[[], date]
    rate_limiter: RateLimiter
    resolver: ArchiveResolver
    orchestrator: ModelOrchestrator | None = None
    batch_processor: BatchProcessor | None = None


def build_runtime(
    settings: AppSettings,
    store: SqliteStore,
    backend: AiBackend | None = None,
) -> Runtime:
    """Wire components from settings.

    Args:
        settings: Application settings.
        store: Connected store.
        backend: AI backend; processing components are skipped without one.

    Returns:
        Wired runtime.
    """
    today = today_provider(settings.timezone)
    rate_limiter = RateLimiter(store, today=today)
    resolver = ArchiveResolver(
        store,
        RecommendScorer(today=today, allow_future_bonus=settings.allow_future_bonus),
        today=today,
    )

    if backend is None:
        return Runtime(store=store, today=today, rate_limiter=rate_limiter, resolver=resolver)

    orchestrator = ModelOrchestrator(backend, rate_limiter)
    return Runtime(
        store=store,
        today=today,
        rate_limiter=rate_limiter,
        resolver=resolver,
        orchestrator=orchestrator,
        batch_processor=BatchProcessor(
            store, orchestrator, pipeline=SingleContentPipeline(store, orchestrator)
        ),
    )
