"""Single-flight guards for batch processing runs."""

import threading
from typing import Protocol


class ExecutionGuard(Protocol):
    """Allows at most one batch run at a time."""

    def try_acquire(self) -> bool:
        """Claim the guard without blocking.

        Returns:
            True if the caller may run, False if a run is in progress.
        """
        ...

    def release(self) -> None:
        """Release a guard claimed by ``try_acquire``."""
        ...


class InProcessExecutionGuard:
    """Guard shared by every thread of a single process.

    Deployments running several instances need a guard backed by shared
    storage instead.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        """Claim the guard without blocking."""
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        """Release the guard."""
        self._lock.release()

    @property
    def is_held(self) -> bool:
        """Whether a run is currently in progress."""
        return self._lock.locked()


# Default guard for every BatchProcessor in this process
PROCESS_GUARD = InProcessExecutionGuard()
