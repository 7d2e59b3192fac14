"""Content size validation before AI analysis."""

from collections.abc import Sequence

from newsfeeder.processing.constants import MAX_BATCH_CHARS, MAX_ITEM_CHARS
from newsfeeder.store.models import ContentItem


def validate_content_length(
    contents: Sequence[ContentItem],
    max_item_chars: int = MAX_ITEM_CHARS,
    max_batch_chars: int = MAX_BATCH_CHARS,
) -> list[ContentItem]:
    """Select the items that fit into one analysis request.

    Items longer than ``max_item_chars`` are dropped. The remaining items
    are accumulated in order; the first one that would push the running
    total above ``max_batch_chars`` ends the selection, so later items are
    excluded even if they are small.

    Args:
        contents: Candidate items in selection order.
        max_item_chars: Longest accepted body.
        max_batch_chars: Largest accepted running total.

    Returns:
        Accepted items in their original order.
    """
    accepted: list[ContentItem] = []
    total = 0

    for content in contents:
        length = content.length_chars
        if length > max_item_chars:
            continue
        if total + length > max_batch_chars:
            break
        accepted.append(content)
        total += length

    return accepted
