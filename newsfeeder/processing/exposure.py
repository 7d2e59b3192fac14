"""Exposure record construction from AI output or content alone."""

from collections.abc import Sequence

from newsfeeder.llm.models import AnalysisResult
from newsfeeder.processing.constants import (
    ELLIPSIS,
    FALLBACK_SUMMARY_CHARS,
    GENERIC_KEYWORD,
    NO_KEYWORDS,
)
from newsfeeder.store.models import ContentItem, ExposureRecord


def truncate_summary(body: str, limit: int = FALLBACK_SUMMARY_CHARS) -> str:
    """Cut a body to ``limit`` characters, marking the cut with an ellipsis.

    Args:
        body: Full content body.
        limit: Characters to keep.

    Returns:
        The body itself if short enough, otherwise its prefix plus "...".
    """
    if len(body) <= limit:
        return body
    return body[:limit] + ELLIPSIS


def build_fallback_exposure(content: ContentItem) -> ExposureRecord:
    """Build the deterministic exposure used when no AI summary exists.

    Args:
        content: Persisted content item.

    Returns:
        Exposure with the generic keyword, the original title and the
        start of the body.
    """
    return ExposureRecord(
        content_id=_require_id(content),
        provocative_keyword=GENERIC_KEYWORD,
        headline=content.title,
        summary_text=truncate_summary(content.body),
    )


def build_exposure_from_analysis(
    content: ContentItem,
    result: AnalysisResult,
    matched_keywords: Sequence[str] = (),
) -> ExposureRecord:
    """Build an exposure from a structured analysis.

    The headline is the model's top headline, falling back to the title.
    The keyword is the model's top provocative keyword, then the first
    matched reserved keyword, then a fixed placeholder.

    Args:
        content: Persisted content item.
        result: Analysis with a non-empty summary.
        matched_keywords: Reserved keywords assigned to the content.

    Returns:
        Exposure ready to upsert.
    """
    if result.provocative_keywords:
        keyword = result.provocative_keywords[0]
    elif matched_keywords:
        keyword = matched_keywords[0]
    else:
        keyword = NO_KEYWORDS

    return ExposureRecord(
        content_id=_require_id(content),
        provocative_keyword=keyword,
        headline=result.headlines[0] if result.headlines else content.title,
        summary_text=result.summary,
    )


def _require_id(content: ContentItem) -> int:
    if content.id is None:
        msg = "Content must be persisted before building an exposure"
        raise ValueError(msg)
    return content.id
