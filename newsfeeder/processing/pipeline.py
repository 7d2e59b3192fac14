"""Per-item analysis pipeline and result persistence."""

from typing import Protocol

import structlog

from newsfeeder.llm.models import AnalysisResult
from newsfeeder.llm.orchestrator import ModelOrchestrator
from newsfeeder.processing.constants import MAX_ITEM_CHARS
from newsfeeder.processing.errors import ContentValidationError
from newsfeeder.processing.exposure import (
    build_exposure_from_analysis,
    build_fallback_exposure,
)
from newsfeeder.store.models import ContentItem, ExposureRecord, Summary
from newsfeeder.store.protocols import ContentStore, ExposureStore, SummaryStore


logger = structlog.get_logger()


class ProcessingStore(ContentStore, SummaryStore, ExposureStore, Protocol):
    """Everything batch processing reads and writes."""


class SingleContentPipeline:
    """Analyzes one content item and persists what the model returned.

    Also used by the batch processor to persist entries of a combined
    analysis, so both paths write summaries, keywords and exposures the
    same way.
    """

    def __init__(
        self,
        store: ProcessingStore,
        orchestrator: ModelOrchestrator,
        max_item_chars: int = MAX_ITEM_CHARS,
    ) -> None:
        """Initialize the pipeline.

        Args:
            store: Content, summary and exposure persistence.
            orchestrator: Model orchestrator for the analysis call.
            max_item_chars: Longest body accepted for analysis.
        """
        self._store = store
        self._orchestrator = orchestrator
        self._max_item_chars = max_item_chars
        self._log = logger.bind(component="processing", subcomponent="pipeline")

    def process(self, content: ContentItem) -> ExposureRecord:
        """Analyze one content item with its own AI call and persist the result.

        Args:
            content: Persisted content item.

        Returns:
            The stored exposure record.

        Raises:
            ContentValidationError: If the body is too long.
            RateLimitExceededError: If a daily quota is exhausted.
            AiProcessingError: If every model failed.
        """
        if content.length_chars > self._max_item_chars:
            raise ContentValidationError(
                content.id, content.length_chars, self._max_item_chars
            )

        keywords = self._store.list_keyword_names()
        result = self._orchestrator.analyze(content, keywords)
        return self.persist(content, result)

    def persist(self, content: ContentItem, result: AnalysisResult) -> ExposureRecord:
        """Store a summary, keyword tags and an exposure for one analysis.

        A summary is only written when the model produced one and the
        content has none yet. An empty summary yields the deterministic
        fallback exposure.

        Args:
            content: Persisted content item.
            result: Analysis of that item.

        Returns:
            The stored exposure record.
        """
        content_id = content.id
        if content_id is None:
            msg = "Content must be persisted before its analysis"
            raise ValueError(msg)

        if result.summary and not self._store.find_summaries_by_content(content_id):
            self._store.save_summary(
                Summary(
                    content_id=content_id,
                    title=result.headlines[0] if result.headlines else content.title,
                    summarized_content=result.summary,
                    model=result.producing_model,
                )
            )

        matched = self._store.assign_keywords(content_id, list(result.matched_keywords))
        candidates = self._store.record_candidate_keywords(list(result.suggested_keywords))

        if result.summary:
            exposure = build_exposure_from_analysis(content, result, matched)
        else:
            self._log.warning("empty_summary_fallback", content_id=content_id)
            exposure = build_fallback_exposure(content)

        stored = self._store.upsert_exposure(exposure)
        self._log.info(
            "content_processed",
            content_id=content_id,
            model=result.producing_model,
            matched_keywords=len(matched),
            candidate_keywords=candidates,
        )
        return stored
