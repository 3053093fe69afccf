"""Tests for settings and storage target configuration."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from tabload.core.config import Settings, load_storage_targets


class TestSettings:
    def test_environment_overrides(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("TABLOAD_WORKER_COUNT", "2")
        monkeypatch.setenv("TABLOAD_CONFIG_PATH", str(tmp_path))
        monkeypatch.setenv("TABLOAD_CSV_DELIMITER", ";")

        settings = Settings()

        assert settings.worker_count == 2
        assert settings.csv_delimiter == ";"
        assert settings.storage_targets_path == tmp_path / "storage_targets.yaml"

    def test_worker_count_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(worker_count=0)

    def test_delimiter_is_single_character(self):
        with pytest.raises(ValidationError):
            Settings(csv_delimiter=";;")


class TestLoadStorageTargets:
    def test_missing_file(self, tmp_path: Path):
        assert load_storage_targets(tmp_path / "absent.yaml") == []

    def test_relative_paths_resolve_against_file(self, tmp_path: Path):
        config = tmp_path / "config" / "targets.yaml"
        config.parent.mkdir()
        config.write_text(
            "targets:\n"
            "  - id: primary\n"
            "    path: ../storage/primary.duckdb\n"
            "  - id: archive\n"
            f"    path: {tmp_path / 'archive.duckdb'}\n"
        )

        targets = load_storage_targets(config)

        assert [t["id"] for t in targets] == ["primary", "archive"]
        assert Path(targets[0]["path"]) == config.parent / ".." / "storage" / "primary.duckdb"
        assert targets[1]["path"] == str(tmp_path / "archive.duckdb")

    def test_incomplete_entries_are_skipped(self, tmp_path: Path):
        config = tmp_path / "targets.yaml"
        config.write_text("targets:\n  - id: 7\n    path: seven.duckdb\n  - id: nopath\n")

        targets = load_storage_targets(config)

        assert len(targets) == 1
        assert targets[0]["id"] == "7"

    def test_empty_file(self, tmp_path: Path):
        config = tmp_path / "targets.yaml"
        config.write_text("")

        assert load_storage_targets(config) == []
