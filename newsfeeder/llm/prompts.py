"""Prompt templates and response schemas for content analysis."""

from collections.abc import Sequence
from typing import Any

from newsfeeder.store.models import ContentItem


SINGLE_MAX_OUTPUT_TOKENS = 3000
BATCH_MAX_OUTPUT_TOKENS = 8000

_STRING_ARRAY: dict[str, Any] = {"type": "ARRAY", "items": {"type": "STRING"}}

_ANALYSIS_PROPERTIES: dict[str, Any] = {
    "summary": {
        "type": "STRING",
        "description": "Summary of the main points of the content",
    },
    "provocativeHeadlines": {
        **_STRING_ARRAY,
        "description": "Attention-grabbing headlines that make readers want to click",
    },
    "matchedKeywords": {
        **_STRING_ARRAY,
        "description": "Requested keywords that match the content",
    },
    "suggestedKeywords": {
        **_STRING_ARRAY,
        "description": "New keywords suggested from the content",
    },
    "provocativeKeywords": {
        **_STRING_ARRAY,
        "description": "Catchy keywords that draw attention",
    },
}

_ANALYSIS_REQUIRED = [
    "summary",
    "provocativeHeadlines",
    "matchedKeywords",
    "suggestedKeywords",
    "provocativeKeywords",
]

CONTENT_ANALYSIS_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": _ANALYSIS_PROPERTIES,
    "required": _ANALYSIS_REQUIRED,
}

BATCH_CONTENT_ANALYSIS_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "results": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "contentId": {
                        "type": "STRING",
                        "description": "Id of the analyzed content",
                    },
                    **_ANALYSIS_PROPERTIES,
                },
                "required": ["contentId", *_ANALYSIS_REQUIRED],
            },
        },
    },
    "required": ["results"],
}

_RULES = """Rules:
- Return pure JSON only (no markdown)
- Translate content written in other languages into Korean

Summary and headlines:
- summary: summarize the main points in 5-6 concise sentences
- provocativeHeadlines: up to 5 attention-grabbing headlines, most provocative first
- Each headline is a complete, natural sentence of roughly 15-25 characters
- Prefer technical keywords a software engineer would care about

Keyword extraction:
- matchedKeywords: only requested keywords that appear in the content (max 5)
- suggestedKeywords: new keywords based on the content (max 5)
- provocativeKeywords: catchy clickbait keywords (max 3)
- Keep keywords short and essential"""


def build_content_prompt(content: ContentItem, input_keywords: Sequence[str]) -> str:
    """Build the analysis prompt for a single content item.

    Args:
        content: Content to analyze.
        input_keywords: Reserved keywords the model may match.

    Returns:
        Formatted prompt string.
    """
    return f"""Analyze the following content and return its summary, headlines and keywords as JSON.

Content: {content.body}
Requested keywords: {", ".join(input_keywords)}

{_RULES}

Format: {{"summary":"...","provocativeHeadlines":["..."],"matchedKeywords":["..."],"suggestedKeywords":["..."],"provocativeKeywords":["..."]}}"""


def build_batch_prompt(
    contents: Sequence[ContentItem], input_keywords: Sequence[str]
) -> str:
    """Build the analysis prompt for several content items at once.

    Each item is labeled with its id so the response can be mapped back.

    Args:
        contents: Content items to analyze, all with ids.
        input_keywords: Reserved keywords the model may match.

    Returns:
        Formatted prompt string.
    """
    contents_section = "\n\n".join(
        f"[Content ID: {content.id}]\n{content.body}" for content in contents
    )

    return f"""Analyze each of the following {len(contents)} contents and return their summaries, headlines and keywords as JSON.
Each content is identified by a unique ID which must be included in the response.

Requested keywords: {", ".join(input_keywords)}

Contents:
{contents_section}

{_RULES}
- Analyze each content independently
- Always include contentId in each result

Format: {{"results":[{{"contentId":"ID1","summary":"...","provocativeHeadlines":["..."],"matchedKeywords":["..."],"suggestedKeywords":["..."],"provocativeKeywords":["..."]}}]}}"""
