"""Gemini API backend using API key authentication."""

import random
import time
from collections.abc import Callable
from http import HTTPStatus
from typing import Any

import httpx
import structlog

from newsfeeder.llm.errors import LlmApiError


logger = structlog.get_logger()

_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

_RETRY_BASE_DELAY = 2.0
_RETRYABLE_STATUS_CODES = {HTTPStatus.TOO_MANY_REQUESTS, HTTPStatus.SERVICE_UNAVAILABLE}

_TEMPERATURE = 0.4
_TOP_P = 0.8
_TOP_K = 40


class GeminiBackend:
    """Structured-output backend for the ``generativelanguage`` endpoint.

    Sends an ``x-goog-api-key`` header and asks for
    ``application/json`` output constrained by a response schema. Quota
    accounting happens upstream in the rate limiter; this client only
    retries transient 429/503 answers a bounded number of times.
    """

    def __init__(
        self,
        api_key: str,
        timeout: float = 60.0,
        max_retries: int = 2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the backend.

        Args:
            api_key: Gemini API key.
            timeout: Per-request timeout in seconds.
            max_retries: Retries on 429/503 before giving up.
            sleep: Sleep function, injectable for tests.
        """
        self._api_key = api_key
        self._timeout = timeout
        self._max_retries = max_retries
        self._sleep = sleep
        self._log = logger.bind(component="llm", subcomponent="gemini_backend")

    def generate(
        self,
        model_name: str,
        prompt: str,
        response_schema: dict[str, Any],
        max_output_tokens: int = 3000,
    ) -> str | None:
        """Send a generate content request to the Gemini API.

        Retries with exponential backoff on 429/503 responses.

        Args:
            model_name: Gemini model identifier.
            prompt: User prompt text.
            response_schema: Schema the JSON output must follow.
            max_output_tokens: Upper bound on generated tokens.

        Returns:
            Generated text, or None if the response carried no text.

        Raises:
            LlmApiError: If the API call fails after all retries.
        """
        url = f"{_BASE_URL}/{model_name}:generateContent"

        request_body: dict[str, object] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": _TEMPERATURE,
                "topP": _TOP_P,
                "topK": _TOP_K,
                "candidateCount": 1,
                "maxOutputTokens": max_output_tokens,
                "responseMimeType": "application/json",
                "responseSchema": response_schema,
            },
        }

        last_exc: LlmApiError | None = None

        for attempt in range(self._max_retries + 1):
            try:
                response = httpx.post(
                    url,
                    headers={
                        "x-goog-api-key": self._api_key,
                        "Content-Type": "application/json",
                    },
                    json=request_body,
                    timeout=self._timeout,
                )
            except httpx.HTTPError as exc:
                msg = f"Gemini API request failed: {exc}"
                raise LlmApiError(msg) from exc

            if response.status_code == HTTPStatus.OK:
                break

            if (
                response.status_code in _RETRYABLE_STATUS_CODES
                and attempt < self._max_retries
            ):
                delay = _RETRY_BASE_DELAY * (2**attempt) + random.uniform(0, 1)  # noqa: S311
                self._log.warning(
                    "gemini_retryable_error",
                    model=model_name,
                    status=response.status_code,
                    attempt=attempt + 1,
                    retry_delay=round(delay, 1),
                )
                self._sleep(delay)
                last_exc = LlmApiError(
                    f"Gemini API returned {response.status_code}",
                    status_code=response.status_code,
                )
                continue

            msg = f"Gemini API returned {response.status_code}"
            raise LlmApiError(msg, status_code=response.status_code)
        else:
            raise last_exc or LlmApiError("All retries exhausted")

        return self._extract_text(response.json(), model_name)

    def _extract_text(self, data: dict[str, Any], model_name: str) -> str | None:
        """Pull the first candidate's text out of a response body."""
        candidates = data.get("candidates") or []
        if not candidates:
            self._log.warning("gemini_no_candidates", model=model_name)
            return None

        first = candidates[0]
        parts = (first.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)
        if not text:
            self._log.warning(
                "gemini_empty_text",
                model=model_name,
                finish_reason=first.get("finishReason"),
            )
            return None

        return text
