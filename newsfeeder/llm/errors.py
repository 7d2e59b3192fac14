"""Domain-specific error types for the LLM module."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Sequence

    from newsfeeder.llm.models import ModelAttempt


class LimitKind(str, Enum):
    """Which quota refused a request."""

    RPM = "RPM"
    RPD = "RPD"


class LlmApiError(Exception):
    """Gemini API call failure.

    Attributes:
        status_code: HTTP status code from the API response.
    """

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code


class LlmProcessingError(Exception):
    """Response parsing or processing failure."""


class RateLimitExceededError(Exception):
    """A model's per-minute or per-day quota refused the request.

    Attributes:
        kind: Which limit refused the request.
        model_name: The model whose quota was exhausted.
    """

    def __init__(self, kind: LimitKind, model_name: str) -> None:
        super().__init__(f"{kind.value} limit exceeded for model {model_name}")
        self.kind = kind
        self.model_name = model_name


class AiProcessingError(Exception):
    """Every model in the catalog failed to produce a usable result.

    Attributes:
        attempts: Outcome of each model tried, in catalog order.
    """

    def __init__(self, attempts: Sequence[ModelAttempt]) -> None:
        summary = ", ".join(f"{a.model_name}={a.outcome.value}" for a in attempts)
        super().__init__(f"All models failed to process content ({summary})")
        self.attempts = tuple(attempts)

    @property
    def has_format_failure(self) -> bool:
        """Whether any model answered with an empty or unparseable response."""
        return any(a.outcome.is_format_failure for a in self.attempts)
