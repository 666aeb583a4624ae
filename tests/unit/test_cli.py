"""Tests for the calltree CLI."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from calltree import cli
from calltree.profiler.storage import FileReportStorage


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    calls: list[tuple[str, str]] = []
    monkeypatch.setattr(cli, "setup_logging", lambda level, fmt: calls.append((level, fmt)))
    return calls


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestList:
    def test_empty_directory(self, runner, tmp_path: Path):
        result = runner.invoke(cli.main, ["list", "--dir", str(tmp_path / "none")])
        assert result.exit_code == 0
        assert "No profiles" in result.output

    def test_lists_saved_profiles(self, runner, tmp_path: Path):
        storage = FileReportStorage(tmp_path)
        key = storage.save("<node/>")

        result = runner.invoke(cli.main, ["list", "--dir", str(tmp_path)])

        assert result.exit_code == 0
        assert result.output.strip().splitlines() == [key]

    def test_logging_configured_from_settings(self, runner, tmp_path: Path, no_logging_setup):
        config = tmp_path / "calltree.toml"
        config.write_text('[observability]\nlog_level = "debug"\nlog_format = "console"\n')

        runner.invoke(cli.main, ["list", "--config", str(config), "--dir", str(tmp_path)])

        assert no_logging_setup == [("DEBUG", "console")]

    def test_directory_from_config(self, runner, tmp_path: Path):
        directory = tmp_path / "from-config"
        key = FileReportStorage(directory).save("x")
        config = tmp_path / "calltree.toml"
        config.write_text(f'[storage]\ndirectory = "{directory.as_posix()}"\n')

        result = runner.invoke(cli.main, ["list", "--config", str(config)])

        assert result.exit_code == 0
        assert key in result.output

    def test_invalid_config_fails(self, runner, tmp_path: Path):
        config = tmp_path / "calltree.toml"
        config.write_text('[observability]\nlog_level = "loud"\n')

        result = runner.invoke(cli.main, ["list", "--config", str(config)])

        assert result.exit_code == 1
        assert "unknown log level" in result.output


class TestShow:
    def test_prints_report(self, runner, tmp_path: Path):
        key = FileReportStorage(tmp_path).save('<node time="1.00ms" name="root"/>')

        result = runner.invoke(cli.main, ["show", key, "--dir", str(tmp_path)])

        assert result.exit_code == 0
        assert 'name="root"' in result.output

    def test_unknown_key(self, runner, tmp_path: Path):
        result = runner.invoke(cli.main, ["show", "profile-0.xml", "--dir", str(tmp_path)])

        assert result.exit_code == 1
        assert "no report stored" in result.output
