"""Tests for the scheduled batch processor."""

import threading
from unittest.mock import MagicMock

import pytest

from newsfeeder.llm.errors import (
    AiProcessingError,
    LimitKind,
    LlmApiError,
    LlmProcessingError,
    RateLimitExceededError,
)
from newsfeeder.llm.models import (
    AnalysisResult,
    BatchAnalysisResult,
    CallOutcome,
    ModelAttempt,
)
from newsfeeder.llm.orchestrator import ModelOrchestrator
from newsfeeder.processing.batch import BatchProcessor
from newsfeeder.processing.constants import GENERIC_KEYWORD
from newsfeeder.processing.guard import PROCESS_GUARD, InProcessExecutionGuard
from newsfeeder.processing.models import ProcessingResult
from newsfeeder.processing.pipeline import SingleContentPipeline
from newsfeeder.store.models import ContentItem
from tests.helpers.time import FIXED_TODAY


def _content(content_id: int, length: int = 100) -> ContentItem:
    return ContentItem(
        id=content_id,
        title=f"Title {content_id}",
        body="x" * length,
        published_date=FIXED_TODAY,
    )


def _analysis(summary: str = "Summary") -> AnalysisResult:
    return AnalysisResult(
        summary=summary,
        headlines=("Headline",),
        matched_keywords=(),
        suggested_keywords=(),
        provocative_keywords=("Hot",),
        producing_model="lite",
    )


def _make_store(contents: list[ContentItem], remaining: int = 0) -> MagicMock:
    store = MagicMock()
    store.fetch_unprocessed.return_value = contents
    store.count_unprocessed.return_value = remaining
    store.list_keyword_names.return_value = ["AI"]
    store.find_summaries_by_content.return_value = []
    store.assign_keywords.return_value = []
    store.record_candidate_keywords.return_value = 0
    store.upsert_exposure.side_effect = lambda record: record
    return store


@pytest.fixture
def orchestrator() -> MagicMock:
    """Create a mock model orchestrator."""
    return MagicMock(spec=ModelOrchestrator)


class TestBatchProcessorSelection:
    """Tests for selection and validation before the AI call."""

    def test_nothing_to_process(self, orchestrator: MagicMock) -> None:
        """Should return zeros without calling the model."""
        store = _make_store([])
        processor = BatchProcessor(store, orchestrator)

        assert processor.process_unprocessed_batch() == ProcessingResult(0, 0, 0)
        orchestrator.analyze_batch.assert_not_called()

    def test_selects_batch_size_by_priority(self, orchestrator: MagicMock) -> None:
        """Should ask the store for one batch ordered by priority."""
        store = _make_store([])
        processor = BatchProcessor(store, orchestrator, batch_size=5)

        processor.process_unprocessed_batch()

        store.fetch_unprocessed.assert_called_once_with(5, order_by_priority=True)

    def test_all_items_too_long(self, orchestrator: MagicMock) -> None:
        """Should count every selected item as an error."""
        store = _make_store([_content(1, 11_000), _content(2, 12_000)], remaining=2)
        processor = BatchProcessor(store, orchestrator)

        result = processor.process_unprocessed_batch()

        assert result == ProcessingResult(0, 2, 2)
        orchestrator.analyze_batch.assert_not_called()

    def test_only_valid_items_are_sent(self, orchestrator: MagicMock) -> None:
        """Should drop oversized items before the combined call."""
        contents = [_content(1, 11_000), _content(2)]
        store = _make_store(contents, remaining=1)
        orchestrator.analyze_batch.return_value = BatchAnalysisResult(
            {"2": _analysis()}, "lite"
        )
        processor = BatchProcessor(store, orchestrator)

        result = processor.process_unprocessed_batch()

        sent = orchestrator.analyze_batch.call_args[0][0]
        assert [c.id for c in sent] == [2]
        assert result == ProcessingResult(1, 0, 1)


class TestBatchProcessorPersistence:
    """Tests for writing batch results."""

    def test_one_exposure_per_item(self, orchestrator: MagicMock) -> None:
        """Should write one exposure for every validated item."""
        contents = [_content(1), _content(2), _content(3)]
        store = _make_store(contents)
        orchestrator.analyze_batch.return_value = BatchAnalysisResult(
            {"1": _analysis("one"), "2": _analysis("two"), "3": _analysis("three")},
            "lite",
        )
        processor = BatchProcessor(store, orchestrator)

        result = processor.process_unprocessed_batch()

        assert result == ProcessingResult(3, 0, 0)
        written = [call[0][0] for call in store.upsert_exposure.call_args_list]
        assert [e.content_id for e in written] == [1, 2, 3]
        assert [e.summary_text for e in written] == ["one", "two", "three"]
        assert orchestrator.analyze_batch.call_count == 1

    def test_missing_entry_gets_fallback_exposure(self, orchestrator: MagicMock) -> None:
        """Should write the fallback exposure for items the model skipped."""
        contents = [_content(1), _content(2)]
        store = _make_store(contents)
        orchestrator.analyze_batch.return_value = BatchAnalysisResult(
            {"1": _analysis()}, "lite"
        )
        processor = BatchProcessor(store, orchestrator)

        result = processor.process_unprocessed_batch()

        assert result == ProcessingResult(2, 0, 0)
        fallback = store.upsert_exposure.call_args_list[1][0][0]
        assert fallback.content_id == 2
        assert fallback.provocative_keyword == GENERIC_KEYWORD
        assert fallback.headline == "Title 2"

    def test_write_failure_counts_as_error(self, orchestrator: MagicMock) -> None:
        """Should keep going when one item fails to persist."""
        contents = [_content(1), _content(2)]
        store = _make_store(contents, remaining=1)
        store.upsert_exposure.side_effect = [RuntimeError("disk full"), None]
        orchestrator.analyze_batch.return_value = BatchAnalysisResult(
            {"1": _analysis(), "2": _analysis()}, "lite"
        )
        processor = BatchProcessor(store, orchestrator)

        assert processor.process_unprocessed_batch() == ProcessingResult(1, 1, 1)


class TestBatchProcessorFailureHandling:
    """Tests for classification of combined-call failures."""

    def test_daily_limit_propagates_without_fallback(
        self, orchestrator: MagicMock
    ) -> None:
        """Should re-raise RPD denials and make no per-item calls."""
        store = _make_store([_content(1), _content(2)])
        orchestrator.analyze_batch.side_effect = RateLimitExceededError(
            LimitKind.RPD, "lite"
        )
        pipeline = MagicMock(spec=SingleContentPipeline)
        processor = BatchProcessor(store, orchestrator, pipeline=pipeline)

        with pytest.raises(RateLimitExceededError):
            processor.process_unprocessed_batch()

        pipeline.process.assert_not_called()
        orchestrator.analyze.assert_not_called()

    def test_format_failure_falls_back_per_item(self, orchestrator: MagicMock) -> None:
        """Should analyze items one by one after an unparseable batch answer."""
        contents = [_content(1), _content(2)]
        store = _make_store(contents)
        orchestrator.analyze_batch.side_effect = AiProcessingError(
            [
                ModelAttempt("lite", CallOutcome.PARSE_FAILED),
                ModelAttempt("flash", CallOutcome.NO_RESPONSE),
            ]
        )
        pipeline = MagicMock(spec=SingleContentPipeline)
        processor = BatchProcessor(store, orchestrator, pipeline=pipeline)

        result = processor.process_unprocessed_batch()

        assert result == ProcessingResult(2, 0, 0)
        assert [call[0][0].id for call in pipeline.process.call_args_list] == [1, 2]

    def test_processing_error_falls_back_per_item(self, orchestrator: MagicMock) -> None:
        """Should treat a parsing error like a format failure."""
        store = _make_store([_content(1)])
        orchestrator.analyze_batch.side_effect = LlmProcessingError("bad json")
        pipeline = MagicMock(spec=SingleContentPipeline)
        processor = BatchProcessor(store, orchestrator, pipeline=pipeline)

        assert processor.process_unprocessed_batch() == ProcessingResult(1, 0, 0)
        pipeline.process.assert_called_once()

    def test_backend_failures_do_not_fall_back(self, orchestrator: MagicMock) -> None:
        """Should count all items as errors when every model errored."""
        store = _make_store([_content(1), _content(2)], remaining=2)
        orchestrator.analyze_batch.side_effect = AiProcessingError(
            [
                ModelAttempt("lite", CallOutcome.BACKEND_ERROR),
                ModelAttempt("flash", CallOutcome.RPM_DENIED),
            ]
        )
        pipeline = MagicMock(spec=SingleContentPipeline)
        processor = BatchProcessor(store, orchestrator, pipeline=pipeline)

        assert processor.process_unprocessed_batch() == ProcessingResult(0, 2, 2)
        pipeline.process.assert_not_called()

    def test_unexpected_error_counts_all_items(self, orchestrator: MagicMock) -> None:
        """Should not fall back on errors it cannot classify."""
        store = _make_store([_content(1), _content(2)], remaining=2)
        orchestrator.analyze_batch.side_effect = RuntimeError("surprise")
        pipeline = MagicMock(spec=SingleContentPipeline)
        processor = BatchProcessor(store, orchestrator, pipeline=pipeline)

        assert processor.process_unprocessed_batch() == ProcessingResult(0, 2, 2)
        pipeline.process.assert_not_called()

    def test_fallback_item_failure_is_counted(self, orchestrator: MagicMock) -> None:
        """Should keep falling back after a single item fails."""
        store = _make_store([_content(1), _content(2)], remaining=1)
        orchestrator.analyze_batch.side_effect = LlmProcessingError("bad json")
        pipeline = MagicMock(spec=SingleContentPipeline)
        pipeline.process.side_effect = [LlmApiError("down"), MagicMock()]
        processor = BatchProcessor(store, orchestrator, pipeline=pipeline)

        assert processor.process_unprocessed_batch() == ProcessingResult(1, 1, 1)

    def test_daily_limit_during_fallback_propagates(self, orchestrator: MagicMock) -> None:
        """Should stop the fallback loop at a daily denial."""
        store = _make_store([_content(1), _content(2)])
        orchestrator.analyze_batch.side_effect = LlmProcessingError("bad json")
        pipeline = MagicMock(spec=SingleContentPipeline)
        pipeline.process.side_effect = RateLimitExceededError(LimitKind.RPD, "lite")
        processor = BatchProcessor(store, orchestrator, pipeline=pipeline)

        with pytest.raises(RateLimitExceededError):
            processor.process_unprocessed_batch()

        assert pipeline.process.call_count == 1


class TestBatchProcessorGuard:
    """Tests for single-flight execution."""

    def test_guard_released_after_error(self, orchestrator: MagicMock) -> None:
        """Should release the guard even when the run raises."""
        store = _make_store([_content(1)])
        orchestrator.analyze_batch.side_effect = RateLimitExceededError(
            LimitKind.RPD, "lite"
        )
        guard = InProcessExecutionGuard()
        processor = BatchProcessor(store, orchestrator, guard=guard)

        with pytest.raises(RateLimitExceededError):
            processor.process_unprocessed_batch()

        assert guard.is_held is False

    def test_busy_guard_skips_run(self, orchestrator: MagicMock) -> None:
        """Should return the backlog without selecting anything."""
        store = _make_store([_content(1)], remaining=4)
        guard = InProcessExecutionGuard()
        assert guard.try_acquire()
        processor = BatchProcessor(store, orchestrator, guard=guard)

        result = processor.process_unprocessed_batch()

        assert result == ProcessingResult(0, 0, 4)
        store.fetch_unprocessed.assert_not_called()

    def test_concurrent_run_is_skipped(self, orchestrator: MagicMock) -> None:
        """Should make no AI calls from a run started while another is active."""
        store = _make_store([_content(1)], remaining=1)
        entered = threading.Event()
        release = threading.Event()

        def slow_batch(
            contents: list[ContentItem], keywords: list[str]
        ) -> BatchAnalysisResult:
            entered.set()
            release.wait(timeout=5)
            return BatchAnalysisResult({"1": _analysis()}, "lite")

        orchestrator.analyze_batch.side_effect = slow_batch
        processor = BatchProcessor(store, orchestrator)
        results: list[ProcessingResult] = []
        first = threading.Thread(
            target=lambda: results.append(processor.process_unprocessed_batch())
        )
        first.start()
        assert entered.wait(timeout=5)

        second = processor.process_unprocessed_batch()
        release.set()
        first.join(timeout=5)

        assert second.processed_count == 0
        assert second.error_count == 0
        assert orchestrator.analyze_batch.call_count == 1
        assert results[0].processed_count == 1

    def test_separate_processors_share_process_guard(self, orchestrator: MagicMock) -> None:
        """Should let only one of two processor instances reach the AI call."""
        entered = threading.Event()
        release = threading.Event()

        def slow_batch(
            contents: list[ContentItem], keywords: list[str]
        ) -> BatchAnalysisResult:
            entered.set()
            release.wait(timeout=5)
            return BatchAnalysisResult({"1": _analysis()}, "lite")

        orchestrator.analyze_batch.side_effect = slow_batch
        first_processor = BatchProcessor(_make_store([_content(1)]), orchestrator)
        second_store = _make_store([_content(1)], remaining=1)
        second_processor = BatchProcessor(second_store, orchestrator)
        results: list[ProcessingResult] = []
        first = threading.Thread(
            target=lambda: results.append(first_processor.process_unprocessed_batch())
        )
        first.start()
        assert entered.wait(timeout=5)

        second = second_processor.process_unprocessed_batch()
        release.set()
        first.join(timeout=5)

        assert second == ProcessingResult(0, 0, 1)
        second_store.fetch_unprocessed.assert_not_called()
        assert orchestrator.analyze_batch.call_count == 1
        assert results == [ProcessingResult(1, 0, 0)]
        assert PROCESS_GUARD.is_held is False
