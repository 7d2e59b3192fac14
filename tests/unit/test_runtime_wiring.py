"""Tests for runtime wiring and logging setup."""

import io
import json
import zoneinfo
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from newsfeeder.observability.logging import (
    bind_run_context,
    clear_run_context,
    configure_logging,
)
from newsfeeder.runtime import build_runtime, today_provider
from newsfeeder.settings import AppSettings
from newsfeeder.store.store import SqliteStore
from tests.helpers.fakes import ScriptedBackend, open_store


@pytest.fixture
def store(tmp_path: Path) -> Iterator[SqliteStore]:
    """Create a connected store in a temporary directory."""
    store = open_store(tmp_path / "runtime.sqlite")
    yield store
    store.close()


def _settings() -> AppSettings:
    return AppSettings(_env_file=None, NEWSFEEDER_TIMEZONE="UTC")  # type: ignore[call-arg]


class TestBuildRuntime:
    """Tests for build_runtime."""

    def test_without_backend_skips_processing(self, store: SqliteStore) -> None:
        runtime = build_runtime(_settings(), store)

        assert runtime.orchestrator is None
        assert runtime.batch_processor is None
        assert runtime.resolver is not None

    def test_with_backend_wires_processing(self, store: SqliteStore) -> None:
        runtime = build_runtime(_settings(), store, ScriptedBackend())

        assert runtime.orchestrator is not None
        assert runtime.batch_processor is not None

    def test_unknown_timezone_raises(self) -> None:
        with pytest.raises(zoneinfo.ZoneInfoNotFoundError):
            today_provider("Nowhere/Atlantis")


class TestConfigureLogging:
    """Tests for structured logging setup."""

    def test_json_output_includes_run_context(self) -> None:
        output = io.StringIO()
        configure_logging(output=output, json_format=True)
        bind_run_context("run-123")
        try:
            structlog.get_logger().bind(component="test").info("event_logged", value=1)
        finally:
            clear_run_context()
            structlog.reset_defaults()

        record = json.loads(output.getvalue().strip().splitlines()[-1])
        assert record["event"] == "event_logged"
        assert record["run_id"] == "run-123"
        assert record["component"] == "test"
