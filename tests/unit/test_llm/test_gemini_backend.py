"""Unit tests for the Gemini API backend."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from newsfeeder.llm.errors import LlmApiError
from newsfeeder.llm.gemini_client import GeminiBackend
from newsfeeder.llm.prompts import CONTENT_ANALYSIS_SCHEMA


def _make_backend(
    api_key: str = "test-api-key",  # noqa: S107
    max_retries: int = 2,
) -> tuple[GeminiBackend, list[float]]:
    """Create a test backend that records sleeps instead of waiting."""
    sleeps: list[float] = []
    backend = GeminiBackend(api_key=api_key, max_retries=max_retries, sleep=sleeps.append)
    return backend, sleeps


def _response(status_code: int = 200, text: str | None = "ok") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    if text is None:
        response.json.return_value = {"candidates": []}
    else:
        response.json.return_value = {
            "candidates": [{"content": {"parts": [{"text": text}]}}]
        }
    return response


class TestGeminiBackendGenerate:
    """Tests for GeminiBackend.generate."""

    @patch("newsfeeder.llm.gemini_client.httpx.post")
    def test_success_returns_text(self, mock_post: MagicMock) -> None:
        """Should return text from model response."""
        mock_post.return_value = _response(text='{"summary": "x"}')
        backend, _ = _make_backend()

        result = backend.generate("gemini-2.5-flash", "Analyze", CONTENT_ANALYSIS_SCHEMA)

        assert result == '{"summary": "x"}'

    @patch("newsfeeder.llm.gemini_client.httpx.post")
    def test_sends_api_key_header(self, mock_post: MagicMock) -> None:
        """Should send x-goog-api-key header."""
        mock_post.return_value = _response()
        backend, _ = _make_backend(api_key="my-key-123")  # noqa: S106

        backend.generate("gemini-2.5-flash", "Test", CONTENT_ANALYSIS_SCHEMA)

        headers = mock_post.call_args[1]["headers"]
        assert headers["x-goog-api-key"] == "my-key-123"

    @patch("newsfeeder.llm.gemini_client.httpx.post")
    def test_uses_model_endpoint(self, mock_post: MagicMock) -> None:
        """Should call the generateContent endpoint of the given model."""
        mock_post.return_value = _response()
        backend, _ = _make_backend()

        backend.generate("gemini-2.5-flash-lite", "Test", CONTENT_ANALYSIS_SCHEMA)

        url = mock_post.call_args[0][0]
        assert "generativelanguage.googleapis.com" in url
        assert url.endswith("gemini-2.5-flash-lite:generateContent")

    @patch("newsfeeder.llm.gemini_client.httpx.post")
    def test_generation_config(self, mock_post: MagicMock) -> None:
        """Should request schema-constrained JSON with fixed sampling."""
        mock_post.return_value = _response()
        backend, _ = _make_backend()

        backend.generate(
            "gemini-2.5-flash", "Test", CONTENT_ANALYSIS_SCHEMA, max_output_tokens=8000
        )

        config = mock_post.call_args[1]["json"]["generationConfig"]
        assert config["temperature"] == 0.4
        assert config["topP"] == 0.8
        assert config["topK"] == 40
        assert config["candidateCount"] == 1
        assert config["maxOutputTokens"] == 8000
        assert config["responseMimeType"] == "application/json"
        assert config["responseSchema"] == CONTENT_ANALYSIS_SCHEMA

    @patch("newsfeeder.llm.gemini_client.httpx.post")
    def test_no_candidates_returns_none(self, mock_post: MagicMock) -> None:
        """Should return None when the response has no candidates."""
        mock_post.return_value = _response(text=None)
        backend, _ = _make_backend()

        assert backend.generate("gemini-2.5-flash", "Test", {}) is None

    @patch("newsfeeder.llm.gemini_client.httpx.post")
    def test_empty_text_returns_none(self, mock_post: MagicMock) -> None:
        """Should return None when the candidate has no text."""
        mock_post.return_value = _response(text="")
        backend, _ = _make_backend()

        assert backend.generate("gemini-2.5-flash", "Test", {}) is None

    @patch("newsfeeder.llm.gemini_client.httpx.post")
    def test_retries_on_429(self, mock_post: MagicMock) -> None:
        """Should retry with backoff on 429 and return the later success."""
        mock_post.side_effect = [_response(status_code=429), _response(text="after")]
        backend, sleeps = _make_backend()

        result = backend.generate("gemini-2.5-flash", "Test", {})

        assert result == "after"
        assert mock_post.call_count == 2
        assert len(sleeps) == 1
        assert 2.0 <= sleeps[0] <= 3.0

    @patch("newsfeeder.llm.gemini_client.httpx.post")
    def test_gives_up_after_max_retries(self, mock_post: MagicMock) -> None:
        """Should raise once retries on 503 are exhausted."""
        mock_post.return_value = _response(status_code=503)
        backend, sleeps = _make_backend(max_retries=2)

        with pytest.raises(LlmApiError) as exc_info:
            backend.generate("gemini-2.5-flash", "Test", {})

        assert exc_info.value.status_code == 503
        assert mock_post.call_count == 3
        assert len(sleeps) == 2

    @patch("newsfeeder.llm.gemini_client.httpx.post")
    def test_non_retryable_status_raises(self, mock_post: MagicMock) -> None:
        """Should raise immediately on other error statuses."""
        mock_post.return_value = _response(status_code=400)
        backend, sleeps = _make_backend()

        with pytest.raises(LlmApiError) as exc_info:
            backend.generate("gemini-2.5-flash", "Test", {})

        assert exc_info.value.status_code == 400
        assert mock_post.call_count == 1
        assert sleeps == []

    @patch("newsfeeder.llm.gemini_client.httpx.post")
    def test_transport_error_is_wrapped(self, mock_post: MagicMock) -> None:
        """Should convert httpx errors into LlmApiError."""
        mock_post.side_effect = httpx.ConnectError("refused")
        backend, _ = _make_backend()

        with pytest.raises(LlmApiError, match="request failed"):
            backend.generate("gemini-2.5-flash", "Test", {})
