"""Protocol interface for LLM backends."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class AiBackend(Protocol):
    """Protocol for structured-output content generation backends.

    The orchestrator chooses the model per call, so implementations take
    the model name as an argument instead of binding one at construction.
    """

    def generate(
        self,
        model_name: str,
        prompt: str,
        response_schema: dict[str, Any],
        max_output_tokens: int = 3000,
    ) -> str | None:
        """Generate JSON text constrained by a response schema.

        Args:
            model_name: Gemini model identifier.
            prompt: User prompt text.
            response_schema: OpenAPI-style schema the output must follow.
            max_output_tokens: Upper bound on generated tokens.

        Returns:
            Generated text, or None when the model produced no candidate
            text (for example when it hit the token limit).

        Raises:
            LlmApiError: If the API call fails.
        """
        ...
