"""Fakes and builders shared by unit and integration tests."""

import json
import threading
from collections.abc import Iterable
from datetime import date
from pathlib import Path
from typing import Any

from newsfeeder.store.metrics import StoreMetrics
from newsfeeder.store.models import ContentItem, RateLimitCounter
from newsfeeder.store.store import SqliteStore
from tests.helpers.time import FIXED_TODAY


def analysis_payload(
    summary: str = "A short summary of the article.",
    headlines: Iterable[str] = ("Headline one", "Headline two"),
    matched: Iterable[str] = (),
    suggested: Iterable[str] = (),
    provocative: Iterable[str] = ("Hot",),
) -> dict[str, Any]:
    """Build one analysis object in wire format."""
    return {
        "summary": summary,
        "provocativeHeadlines": list(headlines),
        "matchedKeywords": list(matched),
        "suggestedKeywords": list(suggested),
        "provocativeKeywords": list(provocative),
    }


def analysis_json(**kwargs: Any) -> str:
    """Build a single-content analysis response body."""
    return json.dumps(analysis_payload(**kwargs))


def batch_json(entries: dict[int, dict[str, Any]]) -> str:
    """Build a batch analysis response body keyed by content id."""
    return json.dumps(
        {
            "results": [
                {"contentId": str(content_id), **payload}
                for content_id, payload in entries.items()
            ]
        }
    )


class ScriptedBackend:
    """AI backend returning queued answers per model.

    Each queued answer is a response string, None (no candidate text) or
    an exception instance to raise. Models without queued answers return
    None.
    """

    def __init__(self, script: dict[str, list[Any]] | None = None) -> None:
        self._script = {name: list(answers) for name, answers in (script or {}).items()}
        self.calls: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def queue(self, model_name: str, *answers: Any) -> None:
        with self._lock:
            self._script.setdefault(model_name, []).extend(answers)

    def generate(
        self,
        model_name: str,
        prompt: str,
        response_schema: dict[str, Any],
        max_output_tokens: int = 3000,
    ) -> str | None:
        with self._lock:
            self.calls.append((model_name, prompt))
            answers = self._script.get(model_name) or []
            answer = answers.pop(0) if answers else None
        if isinstance(answer, Exception):
            raise answer
        return answer


class InMemoryRateLimitStore:
    """Thread-safe in-memory daily counters."""

    def __init__(self) -> None:
        self._counters: dict[tuple[str, date], RateLimitCounter] = {}
        self._lock = threading.Lock()

    def find_or_create_rate_limit(
        self, model_name: str, limit_date: date, max_requests_per_day: int
    ) -> RateLimitCounter:
        with self._lock:
            key = (model_name, limit_date)
            if key not in self._counters:
                self._counters[key] = RateLimitCounter(
                    model_name=model_name,
                    limit_date=limit_date,
                    max_requests_per_day=max_requests_per_day,
                )
            return self._counters[key]

    def conditional_increment(self, counter: RateLimitCounter) -> bool:
        with self._lock:
            key = (counter.model_name, counter.limit_date)
            current = self._counters[key]
            if current.request_count >= current.max_requests_per_day:
                return False
            self._counters[key] = current.model_copy(
                update={"request_count": current.request_count + 1}
            )
            return True

    def list_rate_limits(self, limit_date: date) -> list[RateLimitCounter]:
        with self._lock:
            return [c for (_, d), c in sorted(self._counters.items()) if d == limit_date]


def open_store(db_path: Path) -> SqliteStore:
    """Create a connected store with fresh metrics."""
    StoreMetrics.reset()
    store = SqliteStore(db_path, run_id="test-run-001")
    store.connect()
    return store


def add_content(
    store: SqliteStore,
    title: str = "Weekly digest",
    body: str = "Body text",
    published_date: date = FIXED_TODAY,
    provider_priority: int = 100,
) -> ContentItem:
    """Insert a content item and return it with its id."""
    return store.save_content(
        ContentItem(
            title=title,
            body=body,
            published_date=published_date,
            provider_priority=provider_priority,
        )
    )
