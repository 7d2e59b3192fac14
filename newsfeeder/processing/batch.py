"""Scheduled batch processing of unprocessed content."""

from collections.abc import Sequence

import structlog

from newsfeeder.llm.errors import (
    AiProcessingError,
    LlmProcessingError,
    RateLimitExceededError,
)
from newsfeeder.llm.models import BatchAnalysisResult
from newsfeeder.llm.orchestrator import ModelOrchestrator
from newsfeeder.processing.constants import BATCH_SIZE
from newsfeeder.processing.exposure import build_fallback_exposure
from newsfeeder.processing.guard import PROCESS_GUARD, ExecutionGuard
from newsfeeder.processing.models import ProcessingResult
from newsfeeder.processing.pipeline import ProcessingStore, SingleContentPipeline
from newsfeeder.processing.validation import validate_content_length
from newsfeeder.store.models import ContentItem


logger = structlog.get_logger()


class BatchProcessor:
    """Processes a small batch of unprocessed content per scheduler tick.

    Each run selects up to ``BATCH_SIZE`` items, drops the ones too large
    to send, analyzes the rest with one combined AI call and writes an
    exposure record per item. Only one run executes at a time per process.

    Only unusable answers (no response, unparseable JSON) fall back to
    per-item analysis; an exhaustion made of transport errors and RPM
    denials alone is treated as non-format and counts the batch as errors.
    """

    def __init__(
        self,
        store: ProcessingStore,
        orchestrator: ModelOrchestrator,
        pipeline: SingleContentPipeline | None = None,
        guard: ExecutionGuard | None = None,
        batch_size: int = BATCH_SIZE,
    ) -> None:
        """Initialize the processor.

        Args:
            store: Content, summary and exposure persistence.
            orchestrator: Model orchestrator for the combined call.
            pipeline: Per-item pipeline for persistence and fallback.
            guard: Single-flight guard. Defaults to ``PROCESS_GUARD``, shared
                by every processor in the process.
            batch_size: Items selected per run.
        """
        self._store = store
        self._orchestrator = orchestrator
        self._pipeline = pipeline or SingleContentPipeline(store, orchestrator)
        self._guard = guard if guard is not None else PROCESS_GUARD
        self._batch_size = batch_size
        self._log = logger.bind(component="processing", subcomponent="batch")

    def process_unprocessed_batch(self) -> ProcessingResult:
        """Run one batch.

        Returns:
            Counts of processed, failed and still unprocessed items.

        Raises:
            RateLimitExceededError: If a daily quota is exhausted. No
                fallback calls are made in that case.
        """
        if not self._guard.try_acquire():
            self._log.warning("batch_already_running")
            return ProcessingResult(0, 0, self._store.count_unprocessed())

        try:
            return self._run()
        finally:
            self._guard.release()
            self._log.debug("batch_guard_released")

    def _run(self) -> ProcessingResult:
        selected = self._store.fetch_unprocessed(self._batch_size, order_by_priority=True)
        if not selected:
            self._log.info("no_unprocessed_content")
            return ProcessingResult(0, 0, 0)

        validated = validate_content_length(selected)
        if not validated:
            self._log.warning("all_content_too_long", selected=len(selected))
            return ProcessingResult(0, len(selected), self._store.count_unprocessed())

        if len(validated) < len(selected):
            validated_ids = {c.id for c in validated}
            self._log.warning(
                "content_filtered_by_length",
                selected=len(selected),
                validated=len(validated),
                skipped_ids=[c.id for c in selected if c.id not in validated_ids],
            )

        self._log.info("batch_processing_started", items=len(validated))
        keywords = self._store.list_keyword_names()

        try:
            batch_result = self._orchestrator.analyze_batch(validated, keywords)
        except RateLimitExceededError as exc:
            self._log.error(
                "batch_halted_rate_limit", kind=exc.kind.value, model=exc.model_name
            )
            raise
        except AiProcessingError as exc:
            if exc.has_format_failure:
                self._log.warning("batch_analysis_failed_fallback", error=str(exc))
                return self._fallback_to_single(validated)
            self._log.error("batch_analysis_failed_no_fallback", error=str(exc))
            return ProcessingResult(0, len(validated), self._store.count_unprocessed())
        except LlmProcessingError as exc:
            self._log.warning("batch_analysis_failed_fallback", error=str(exc))
            return self._fallback_to_single(validated)
        except Exception as exc:
            self._log.error(
                "batch_analysis_unexpected_error",
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            return ProcessingResult(0, len(validated), self._store.count_unprocessed())

        return self._persist_batch(validated, batch_result)

    def _persist_batch(
        self, contents: Sequence[ContentItem], batch_result: BatchAnalysisResult
    ) -> ProcessingResult:
        processed = 0
        errors = 0

        for content in contents:
            try:
                entry = batch_result.for_content(content.id)
                if entry is None:
                    self._log.warning("batch_entry_missing", content_id=content.id)
                    self._store.upsert_exposure(build_fallback_exposure(content))
                else:
                    self._pipeline.persist(content, entry)
                processed += 1
            except Exception as exc:
                errors += 1
                self._log.error(
                    "exposure_creation_failed",
                    content_id=content.id,
                    error=str(exc),
                    exc_info=True,
                )

        result = ProcessingResult(processed, errors, self._store.count_unprocessed())
        self._log.info(
            "batch_processing_complete",
            model=batch_result.producing_model,
            api_calls=1,
            processed=result.processed_count,
            errors=result.error_count,
            remaining=result.remaining_count,
        )
        return result

    def _fallback_to_single(self, contents: Sequence[ContentItem]) -> ProcessingResult:
        self._log.info("fallback_started", items=len(contents))
        processed = 0
        errors = 0

        for content in contents:
            try:
                self._pipeline.process(content)
                processed += 1
            except RateLimitExceededError:
                self._log.error("fallback_halted_rate_limit", content_id=content.id)
                raise
            except Exception as exc:
                errors += 1
                self._log.error(
                    "fallback_item_failed",
                    content_id=content.id,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )

        result = ProcessingResult(processed, errors, self._store.count_unprocessed())
        self._log.info(
            "fallback_complete",
            processed=result.processed_count,
            errors=result.error_count,
            remaining=result.remaining_count,
        )
        return result
