"""Daily archive lifecycle state machine."""

from datetime import date
from enum import Enum, auto
from typing import ClassVar

import structlog


logger = structlog.get_logger()


class ArchiveState(Enum):
    """Lifecycle of one (user, date) archive.

    State transitions:
        UNCOMPUTED -> COMPUTING: No stored archive, ranking starts
        UNCOMPUTED -> CACHED: A stored archive was found
        COMPUTING -> CACHED: Archive persisted (or a concurrent one adopted)
        COMPUTING -> UNCOMPUTED: Ranking or persistence failed
        CACHED -> UNCOMPUTED: Archive deleted by a refresh
    """

    UNCOMPUTED = auto()
    COMPUTING = auto()
    CACHED = auto()


class ArchiveStateError(Exception):
    """Raised when an invalid archive state transition is attempted."""

    def __init__(self, from_state: ArchiveState, to_state: ArchiveState) -> None:
        """Initialize the error.

        Args:
            from_state: The current state.
            to_state: The attempted target state.
        """
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid archive state transition: {from_state.name} -> {to_state.name}"
        )


class ArchiveStateMachine:
    """Tracks one archive resolution and rejects illegal transitions."""

    VALID_TRANSITIONS: ClassVar[dict[ArchiveState, set[ArchiveState]]] = {
        ArchiveState.UNCOMPUTED: {ArchiveState.COMPUTING, ArchiveState.CACHED},
        ArchiveState.COMPUTING: {ArchiveState.CACHED, ArchiveState.UNCOMPUTED},
        ArchiveState.CACHED: {ArchiveState.UNCOMPUTED},
    }

    def __init__(
        self,
        user_id: int,
        archive_date: date,
        initial: ArchiveState = ArchiveState.UNCOMPUTED,
    ) -> None:
        """Initialize the state machine.

        Args:
            user_id: Archive owner, for logging.
            archive_date: Archive day, for logging.
            initial: Starting state.
        """
        self._state = initial
        self._log = logger.bind(
            component="recommend",
            subcomponent="archive_state",
            user_id=user_id,
            archive_date=archive_date.isoformat(),
        )

    @property
    def state(self) -> ArchiveState:
        """Get the current state."""
        return self._state

    def can_transition(self, to_state: ArchiveState) -> bool:
        """Check if a transition to the given state is valid."""
        return to_state in self.VALID_TRANSITIONS.get(self._state, set())

    def transition(self, to_state: ArchiveState) -> None:
        """Transition to a new state.

        Args:
            to_state: The target state.

        Raises:
            ArchiveStateError: If the transition is invalid.
        """
        if not self.can_transition(to_state):
            self._log.error(
                "invariant_violation",
                error_type="illegal_state_transition",
                from_state=self._state.name,
                to_state=to_state.name,
            )
            raise ArchiveStateError(self._state, to_state)

        old_state = self._state
        self._state = to_state
        self._log.debug(
            "archive_state_transition",
            from_state=old_state.name,
            to_state=to_state.name,
        )

    def is_cached(self) -> bool:
        """Check if the archive is stored."""
        return self._state == ArchiveState.CACHED
