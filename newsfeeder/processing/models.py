"""Result models for batch AI processing."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ProcessingResult:
    """Outcome of one batch processing run.

    Attributes:
        processed_count: Items that received an exposure record.
        error_count: Items that failed or were skipped.
        remaining_count: Unprocessed items left after the run.
    """

    processed_count: int
    error_count: int
    remaining_count: int

    def to_dict(self) -> dict[str, int]:
        """Convert to a plain dictionary for CLI output."""
        return {
            "processed_count": self.processed_count,
            "error_count": self.error_count,
            "remaining_count": self.remaining_count,
        }
