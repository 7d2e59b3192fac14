"""Tests for the daily archive state machine."""

import pytest

from newsfeeder.recommend.state_machine import (
    ArchiveState,
    ArchiveStateError,
    ArchiveStateMachine,
)
from tests.helpers.time import FIXED_TODAY


class TestArchiveStateMachine:
    """Tests for ArchiveStateMachine."""

    def test_starts_uncomputed(self) -> None:
        machine = ArchiveStateMachine(1, FIXED_TODAY)

        assert machine.state == ArchiveState.UNCOMPUTED
        assert not machine.is_cached()

    def test_compute_path(self) -> None:
        machine = ArchiveStateMachine(1, FIXED_TODAY)

        machine.transition(ArchiveState.COMPUTING)
        machine.transition(ArchiveState.CACHED)

        assert machine.is_cached()

    def test_cache_hit_path(self) -> None:
        machine = ArchiveStateMachine(1, FIXED_TODAY)

        machine.transition(ArchiveState.CACHED)

        assert machine.is_cached()

    def test_failed_computation_returns_to_uncomputed(self) -> None:
        machine = ArchiveStateMachine(1, FIXED_TODAY)
        machine.transition(ArchiveState.COMPUTING)

        machine.transition(ArchiveState.UNCOMPUTED)

        assert machine.state == ArchiveState.UNCOMPUTED

    def test_refresh_from_cached(self) -> None:
        machine = ArchiveStateMachine(1, FIXED_TODAY, initial=ArchiveState.CACHED)

        machine.transition(ArchiveState.UNCOMPUTED)

        assert machine.state == ArchiveState.UNCOMPUTED

    @pytest.mark.parametrize(
        ("initial", "target"),
        [
            (ArchiveState.CACHED, ArchiveState.COMPUTING),
            (ArchiveState.CACHED, ArchiveState.CACHED),
            (ArchiveState.UNCOMPUTED, ArchiveState.UNCOMPUTED),
            (ArchiveState.COMPUTING, ArchiveState.COMPUTING),
        ],
    )
    def test_invalid_transitions_raise(
        self, initial: ArchiveState, target: ArchiveState
    ) -> None:
        machine = ArchiveStateMachine(1, FIXED_TODAY, initial=initial)

        assert not machine.can_transition(target)
        with pytest.raises(ArchiveStateError):
            machine.transition(target)
        assert machine.state == initial
