"""Batch AI processing of unprocessed content into exposure records."""

from newsfeeder.processing.batch import BatchProcessor
from newsfeeder.processing.constants import (
    BATCH_SIZE,
    GENERIC_KEYWORD,
    MAX_BATCH_CHARS,
    MAX_ITEM_CHARS,
)
from newsfeeder.processing.errors import ContentValidationError
from newsfeeder.processing.guard import (
    PROCESS_GUARD,
    ExecutionGuard,
    InProcessExecutionGuard,
)
from newsfeeder.processing.models import ProcessingResult
from newsfeeder.processing.pipeline import ProcessingStore, SingleContentPipeline
from newsfeeder.processing.validation import validate_content_length


__all__ = [
    "BATCH_SIZE",
    "GENERIC_KEYWORD",
    "MAX_BATCH_CHARS",
    "MAX_ITEM_CHARS",
    "PROCESS_GUARD",
    "BatchProcessor",
    "ContentValidationError",
    "ExecutionGuard",
    "InProcessExecutionGuard",
    "ProcessingResult",
    "ProcessingStore",
    "SingleContentPipeline",
    "validate_content_length",
]
