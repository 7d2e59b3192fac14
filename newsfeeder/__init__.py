"""AI summarization batch processing and daily recommendation core."""

__version__ = "0.1.0"
