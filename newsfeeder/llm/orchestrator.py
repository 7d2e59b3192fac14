"""Model fallback orchestration for content analysis."""

from collections.abc import Callable, Iterable, Sequence
from typing import Any, TypeVar

import structlog
from pydantic import ValidationError

from newsfeeder.llm.errors import (
    AiProcessingError,
    LimitKind,
    LlmApiError,
    LlmProcessingError,
    RateLimitExceededError,
)
from newsfeeder.llm.json_utils import try_parse_json_object
from newsfeeder.llm.models import (
    MODEL_CATALOG,
    AnalysisResult,
    BatchAnalysisResult,
    BatchContentAnalysisPayload,
    CallOutcome,
    ContentAnalysisPayload,
    ModelAttempt,
    ModelDescriptor,
)
from newsfeeder.llm.prompts import (
    BATCH_CONTENT_ANALYSIS_SCHEMA,
    BATCH_MAX_OUTPUT_TOKENS,
    CONTENT_ANALYSIS_SCHEMA,
    SINGLE_MAX_OUTPUT_TOKENS,
    build_batch_prompt,
    build_content_prompt,
)
from newsfeeder.llm.protocols import AiBackend
from newsfeeder.llm.rate_limiter import RateLimiter
from newsfeeder.store.models import ContentItem


logger = structlog.get_logger()

T = TypeVar("T")


def parse_analysis(raw_response: str, model_name: str) -> AnalysisResult:
    """Parse a single-content analysis response.

    Args:
        raw_response: Raw model output.
        model_name: Model that produced the output.

    Returns:
        Validated analysis result.

    Raises:
        LlmProcessingError: If no JSON object is found or it fails validation.
    """
    data = try_parse_json_object(raw_response)
    if data is None:
        msg = f"No JSON object in response: {raw_response[:200]}"
        raise LlmProcessingError(msg)

    try:
        payload = ContentAnalysisPayload.model_validate(data)
    except ValidationError as exc:
        msg = f"Response does not match analysis schema: {exc.error_count()} errors"
        raise LlmProcessingError(msg) from exc

    return AnalysisResult.from_payload(payload, model_name)


def parse_batch_analysis(raw_response: str, model_name: str) -> BatchAnalysisResult:
    """Parse a batch analysis response keyed by content id.

    Args:
        raw_response: Raw model output.
        model_name: Model that produced the output.

    Returns:
        Validated batch result. Duplicate ids keep the first entry.

    Raises:
        LlmProcessingError: If no JSON object is found or it fails validation.
    """
    data = try_parse_json_object(raw_response)
    if data is None:
        msg = f"No JSON object in batch response: {raw_response[:200]}"
        raise LlmProcessingError(msg)

    try:
        payload = BatchContentAnalysisPayload.model_validate(data)
    except ValidationError as exc:
        msg = f"Response does not match batch schema: {exc.error_count()} errors"
        raise LlmProcessingError(msg) from exc

    results: dict[str, AnalysisResult] = {}
    for entry in payload.results:
        key = entry.content_id.strip()
        if key not in results:
            results[key] = AnalysisResult.from_payload(entry, model_name)

    return BatchAnalysisResult(results=results, producing_model=model_name)


class ModelOrchestrator:
    """Walks the model catalog until one model returns a usable analysis.

    Per-minute denials and per-model failures move on to the next model.
    A per-day denial stops immediately so no further quota is spent.
    """

    def __init__(
        self,
        backend: AiBackend,
        rate_limiter: RateLimiter,
        models: Iterable[ModelDescriptor] = MODEL_CATALOG,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            backend: Backend that performs the model calls.
            rate_limiter: Admission control per model.
            models: Models to try, in order.
        """
        self._backend = backend
        self._rate_limiter = rate_limiter
        self._models = tuple(models)
        self._log = logger.bind(component="llm", subcomponent="orchestrator")

    def analyze(
        self, content: ContentItem, input_keywords: Sequence[str]
    ) -> AnalysisResult:
        """Analyze a single content item.

        Args:
            content: Content to analyze.
            input_keywords: Reserved keywords the model may match.

        Returns:
            The first successfully parsed analysis.

        Raises:
            RateLimitExceededError: If a model's daily quota is exhausted.
            AiProcessingError: If every model failed.
        """
        return self._run(
            prompt=build_content_prompt(content, input_keywords),
            schema=CONTENT_ANALYSIS_SCHEMA,
            max_output_tokens=SINGLE_MAX_OUTPUT_TOKENS,
            parse=parse_analysis,
            content_ids=[content.id],
        )

    def analyze_batch(
        self, contents: Sequence[ContentItem], input_keywords: Sequence[str]
    ) -> BatchAnalysisResult:
        """Analyze several content items with a single model call.

        Args:
            contents: Content items to analyze, all persisted.
            input_keywords: Reserved keywords the model may match.

        Returns:
            Parsed results keyed by content id. Items the model skipped
            are simply absent.

        Raises:
            RateLimitExceededError: If a model's daily quota is exhausted.
            AiProcessingError: If every model failed.
        """
        if not contents:
            return BatchAnalysisResult()

        return self._run(
            prompt=build_batch_prompt(contents, input_keywords),
            schema=BATCH_CONTENT_ANALYSIS_SCHEMA,
            max_output_tokens=BATCH_MAX_OUTPUT_TOKENS,
            parse=parse_batch_analysis,
            content_ids=[c.id for c in contents],
        )

    def _run(
        self,
        prompt: str,
        schema: dict[str, Any],
        max_output_tokens: int,
        parse: Callable[[str, str], T],
        content_ids: list[int | None],
    ) -> T:
        """Try each model in order until ``parse`` accepts a response."""
        attempts: list[ModelAttempt] = []

        for model in self._models:
            log = self._log.bind(model=model.name, content_ids=content_ids)

            admission = self._rate_limiter.admit(model)
            if not admission.allowed:
                if admission.kind is LimitKind.RPD:
                    log.warning("daily_quota_exhausted")
                    raise RateLimitExceededError(LimitKind.RPD, model.name)
                log.info("model_skipped_rpm")
                attempts.append(ModelAttempt(model.name, CallOutcome.RPM_DENIED))
                continue

            try:
                raw_response = self._backend.generate(
                    model.name, prompt, schema, max_output_tokens
                )
            except LlmApiError as exc:
                log.warning("model_backend_error", error=str(exc), status=exc.status_code)
                attempts.append(
                    ModelAttempt(model.name, CallOutcome.BACKEND_ERROR, str(exc))
                )
                continue

            if raw_response is None:
                log.warning("model_no_response")
                attempts.append(ModelAttempt(model.name, CallOutcome.NO_RESPONSE))
                continue

            try:
                result = parse(raw_response, model.name)
            except LlmProcessingError as exc:
                log.warning("model_parse_failed", error=str(exc))
                attempts.append(
                    ModelAttempt(model.name, CallOutcome.PARSE_FAILED, str(exc))
                )
                continue

            log.info("model_analysis_succeeded", attempts_before=len(attempts))
            return result

        self._log.error(
            "all_models_failed",
            content_ids=content_ids,
            outcomes={a.model_name: a.outcome.value for a in attempts},
        )
        raise AiProcessingError(attempts)
