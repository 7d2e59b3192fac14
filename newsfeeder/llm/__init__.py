"""Gemini-backed content analysis with per-model quota control."""

from newsfeeder.llm.errors import (
    AiProcessingError,
    LimitKind,
    LlmApiError,
    LlmProcessingError,
    RateLimitExceededError,
)
from newsfeeder.llm.models import (
    MODEL_CATALOG,
    AnalysisResult,
    BatchAnalysisResult,
    CallOutcome,
    ModelAttempt,
    ModelDescriptor,
)
from newsfeeder.llm.orchestrator import ModelOrchestrator
from newsfeeder.llm.protocols import AiBackend
from newsfeeder.llm.rate_limiter import AdmitResult, RateLimiter, TokenBucketRateLimiter


__all__ = [
    "MODEL_CATALOG",
    "AdmitResult",
    "AiBackend",
    "AiProcessingError",
    "AnalysisResult",
    "BatchAnalysisResult",
    "CallOutcome",
    "LimitKind",
    "LlmApiError",
    "LlmProcessingError",
    "ModelAttempt",
    "ModelDescriptor",
    "ModelOrchestrator",
    "RateLimitExceededError",
    "RateLimiter",
    "TokenBucketRateLimiter",
]
