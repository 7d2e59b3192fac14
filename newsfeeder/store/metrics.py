"""Metrics collection for the state store."""

import threading
from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class StoreMetrics:
    """Metrics for state store operations.

    Attributes:
        db_tx_duration_ms: Cumulative transaction duration in milliseconds.
        db_tx_count: Number of committed transactions.
        rate_limit_increments_total: Successful daily counter increments.
        rate_limit_rejections_total: Conditional increments refused at the cap.
        exposures_upserted_total: Exposure records created or replaced.
        archives_created_total: Daily archives persisted.
        archive_conflicts_total: Archive inserts that lost a uniqueness race.
    """

    db_tx_duration_ms: float = 0.0
    db_tx_count: int = 0
    rate_limit_increments_total: int = 0
    rate_limit_rejections_total: int = 0
    exposures_upserted_total: int = 0
    archives_created_total: int = 0
    archive_conflicts_total: int = 0

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    _instance: ClassVar["StoreMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "StoreMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_tx_duration(self, duration_ms: float) -> None:
        """Record transaction duration.

        Args:
            duration_ms: Duration in milliseconds.
        """
        with self._lock:
            self.db_tx_duration_ms += duration_ms
            self.db_tx_count += 1

    def record_rate_limit_increment(self, admitted: bool) -> None:
        """Record the outcome of a conditional daily increment.

        Args:
            admitted: Whether the counter was incremented.
        """
        with self._lock:
            if admitted:
                self.rate_limit_increments_total += 1
            else:
                self.rate_limit_rejections_total += 1

    def record_exposure_upsert(self) -> None:
        """Record an exposure record write."""
        with self._lock:
            self.exposures_upserted_total += 1

    def record_archive_created(self) -> None:
        """Record a persisted daily archive."""
        with self._lock:
            self.archives_created_total += 1

    def record_archive_conflict(self) -> None:
        """Record an archive insert rejected by the uniqueness constraint."""
        with self._lock:
            self.archive_conflicts_total += 1

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "db_tx_duration_ms": self.db_tx_duration_ms,
            "db_tx_count": self.db_tx_count,
            "rate_limit_increments_total": self.rate_limit_increments_total,
            "rate_limit_rejections_total": self.rate_limit_rejections_total,
            "exposures_upserted_total": self.exposures_upserted_total,
            "archives_created_total": self.archives_created_total,
            "archive_conflicts_total": self.archive_conflicts_total,
        }


@dataclass
class TransactionContext:
    """Context for a single transaction with timing.

    Attributes:
        tx_id: Unique transaction identifier.
        start_time_ns: Start time in nanoseconds.
        operation: The operation being performed.
    """

    tx_id: str
    start_time_ns: int
    operation: str
    affected_rows: int = field(default=0)

    def add_affected_rows(self, rows: int) -> None:
        """Add to the affected row count.

        Args:
            rows: Number of rows affected.
        """
        self.affected_rows += rows
