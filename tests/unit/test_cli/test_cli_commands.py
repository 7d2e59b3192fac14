"""Tests for the newsfeeder CLI."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from newsfeeder.cli.main import cli
from tests.helpers.fakes import ScriptedBackend, analysis_payload, batch_json


CATALOG = """
categories:
  - name: Tech
    keywords:
      AI: 3.0
users:
  - name: alice
    categories: [Tech]
contents:
  - title: GPU prices
    body: GPU prices fell sharply this week.
    published_date: 2025-07-01
  - title: Chip news
    body: A new accelerator shipped.
    published_date: 2025-07-01
"""


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host configuration out of CLI runs."""
    monkeypatch.setenv("NEWSFEEDER_TIMEZONE", "UTC")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)


@pytest.fixture
def runner() -> CliRunner:
    """Create a click test runner."""
    return CliRunner()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Path of a fresh database."""
    return tmp_path / "cli.sqlite"


@pytest.fixture
def seeded_db(runner: CliRunner, db_path: Path, tmp_path: Path) -> Path:
    """Database seeded from the test catalog."""
    catalog = tmp_path / "catalog.yaml"
    catalog.write_text(CATALOG, encoding="utf-8")
    result = runner.invoke(cli, ["--db", str(db_path), "seed", "--catalog", str(catalog)])
    assert result.exit_code == 0, result.output
    return db_path


class TestSeedCommand:
    """Tests for the seed command."""

    def test_reports_counts(self, runner: CliRunner, db_path: Path, tmp_path: Path) -> None:
        catalog = tmp_path / "catalog.yaml"
        catalog.write_text(CATALOG, encoding="utf-8")

        result = runner.invoke(
            cli, ["--db", str(db_path), "seed", "--catalog", str(catalog)]
        )

        assert result.exit_code == 0
        assert "contents: 2" in result.stdout
        assert "users: 1" in result.stdout

    def test_invalid_catalog_exits_with_error(
        self, runner: CliRunner, db_path: Path, tmp_path: Path
    ) -> None:
        catalog = tmp_path / "bad.yaml"
        catalog.write_text("users:\n  - name: bob\n    categories: [Nope]\n", encoding="utf-8")

        result = runner.invoke(
            cli, ["--db", str(db_path), "seed", "--catalog", str(catalog)]
        )

        assert result.exit_code == 1


class TestDbStatsCommand:
    """Tests for the db-stats command."""

    def test_json_output(self, runner: CliRunner, seeded_db: Path) -> None:
        result = runner.invoke(cli, ["--db", str(seeded_db), "db-stats", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["schema_version"] == 2
        assert data["tables"]["contents"] == 2
        assert "db_tx_count" in data["metrics"]


class TestProcessBatchCommand:
    """Tests for the process-batch command."""

    def test_missing_api_key_exits_with_error(
        self, runner: CliRunner, seeded_db: Path
    ) -> None:
        result = runner.invoke(cli, ["--db", str(seeded_db), "process-batch"])

        assert result.exit_code == 1

    def test_processes_seeded_content(self, runner: CliRunner, seeded_db: Path) -> None:
        backend = ScriptedBackend(
            {
                "gemini-2.5-flash-lite": [
                    batch_json(
                        {
                            1: analysis_payload(matched=["AI"]),
                            2: analysis_payload(matched=["AI"]),
                        }
                    )
                ]
            }
        )

        with patch("newsfeeder.cli.main.create_ai_backend", return_value=backend):
            result = runner.invoke(cli, ["--db", str(seeded_db), "process-batch"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {
            "processed_count": 2,
            "error_count": 0,
            "remaining_count": 0,
        }


class TestArchiveCommands:
    """Tests for archive commands."""

    def test_resolve_archive_prints_json(self, runner: CliRunner, seeded_db: Path) -> None:
        result = runner.invoke(
            cli,
            ["--db", str(seeded_db), "resolve-archive", "--user-id", "1", "--date", "2025-07-01"],
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["user_id"] == 1
        assert data["archive_date"] == "2025-07-01"
        assert data["exposures"] == []

    def test_resolve_archive_unknown_user(self, runner: CliRunner, seeded_db: Path) -> None:
        result = runner.invoke(
            cli, ["--db", str(seeded_db), "resolve-archive", "--user-id", "99"]
        )

        assert result.exit_code == 1

    def test_refresh_without_archive(self, runner: CliRunner, seeded_db: Path) -> None:
        result = runner.invoke(
            cli, ["--db", str(seeded_db), "refresh-archive", "--user-id", "1"]
        )

        assert result.exit_code == 0
        assert "No archive to refresh." in result.stdout

    def test_second_refresh_exits_with_error(
        self, runner: CliRunner, seeded_db: Path
    ) -> None:
        base = ["--db", str(seeded_db)]
        day = ["--user-id", "1", "--date", "2025-07-01"]
        runner.invoke(cli, [*base, "resolve-archive", *day])
        first = runner.invoke(cli, [*base, "refresh-archive", *day])
        runner.invoke(cli, [*base, "resolve-archive", *day])
        second = runner.invoke(cli, [*base, "refresh-archive", *day])

        assert "Archive refreshed." in first.stdout
        assert second.exit_code == 1


class TestKeywordCommands:
    """Tests for keyword and quota commands."""

    def test_rate_limit_usage_lists_models(
        self, runner: CliRunner, seeded_db: Path
    ) -> None:
        result = runner.invoke(cli, ["--db", str(seeded_db), "rate-limit-usage"])

        assert result.exit_code == 0
        assert "gemini-2.5-flash-lite: 0/20" in result.stdout
        assert "gemini-2.5-flash: 0/20" in result.stdout

    def test_promote_unknown_candidate(self, runner: CliRunner, seeded_db: Path) -> None:
        result = runner.invoke(
            cli, ["--db", str(seeded_db), "promote-keyword", "--candidate-id", "5"]
        )

        assert result.exit_code == 1
