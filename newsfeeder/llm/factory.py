"""Factory for creating the AI backend from settings."""

import structlog

from newsfeeder.llm.errors import LlmApiError
from newsfeeder.llm.protocols import AiBackend
from newsfeeder.settings import AppSettings


logger = structlog.get_logger()


def create_ai_backend(settings: AppSettings) -> AiBackend:
    """Create the AI backend using configured credentials.

    Args:
        settings: Application settings.

    Returns:
        An AiBackend implementation ready for use.

    Raises:
        LlmApiError: If no API key is configured.
    """
    log = logger.bind(component="llm", subcomponent="factory")

    if not settings.gemini_api_key:
        msg = "No Gemini credentials configured (need GEMINI_API_KEY)"
        raise LlmApiError(msg)

    from newsfeeder.llm.gemini_client import GeminiBackend

    log.info(
        "ai_backend_created",
        auth_method="api_key",
        timeout=settings.request_timeout,
        max_retries=settings.max_retries,
    )
    return GeminiBackend(
        api_key=settings.gemini_api_key,
        timeout=settings.request_timeout,
        max_retries=settings.max_retries,
    )
