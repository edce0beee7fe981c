"""Tests for the safeops command-line entry point."""

import os
from unittest.mock import patch

import pytest

from safeops import __version__
from safeops.cli.main import main

URL = "https://downloads.example.com/kb/knowledge.zip"


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("safeops.cli.main._setup_logging"), patch("safeops.cli.main.shutdown_async_logging"):
        yield


@pytest.fixture
def config_arg(tmp_path):
    return ["--config", str(tmp_path / "config.ini")]


class TestCliBasics:
    def test_version(self, capsys):
        assert main(["--version"]) == 0
        assert __version__ in capsys.readouterr().out

    def test_missing_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage: safeops" in capsys.readouterr().out


class TestWriteCommand:
    def test_write_copies_source_atomically(self, tmp_path, config_arg):
        source = tmp_path / "source.md"
        source.write_bytes(b"new content \x00\xff")
        target = tmp_path / "out" / "target.md"

        assert main(config_arg + ["write", str(target), str(source)]) == 0

        assert target.read_bytes() == b"new content \x00\xff"

    def test_write_dry_run(self, tmp_path, config_arg):
        source = tmp_path / "source.md"
        source.write_text("content", encoding="utf-8")
        target = tmp_path / "target.md"

        assert main(config_arg + ["write", str(target), str(source), "--dry-run"]) == 0

        assert not target.exists()

    def test_write_with_backup_commits(self, workdir, config_arg):
        (workdir / "AGENTS.md").write_text("old", encoding="utf-8")
        (workdir / "source.md").write_text("new", encoding="utf-8")

        assert main(config_arg + ["write", "AGENTS.md", "source.md", "--backup"]) == 0

        assert (workdir / "AGENTS.md").read_text(encoding="utf-8") == "new"
        assert os.listdir(workdir / ".safeops" / "backups") == []

    def test_missing_source_reports_error(self, tmp_path, config_arg, capsys):
        code = main(config_arg + ["write", str(tmp_path / "t.md"), str(tmp_path / "missing.md")])

        assert code == 1
        assert "Error:" in capsys.readouterr().err


class TestDownloadCommand:
    def test_download(self, tmp_path, http, config_arg, capsys):
        http.serve_file(URL, b"knowledge base archive")
        dest = tmp_path / "knowledge.zip"

        with patch("safeops.cli.main.HttpClient", return_value=http):
            code = main(config_arg + ["download", URL, str(dest), "--label", "Fetching KB"])

        assert code == 0
        assert dest.read_bytes() == b"knowledge base archive"
        assert "Download complete" in capsys.readouterr().out

    def test_download_not_found(self, tmp_path, http, config_arg, capsys):
        with patch("safeops.cli.main.HttpClient", return_value=http):
            code = main(config_arg + ["download", URL, str(tmp_path / "knowledge.zip")])

        assert code == 1
        assert "Resource not found (404)" in capsys.readouterr().err


class TestClearBackupsCommand:
    def test_clear_backups(self, workdir, config_arg):
        session_root = workdir / ".safeops" / "backups" / "root-20240101-000000"
        (session_root / "docs").mkdir(parents=True)
        (session_root / "docs" / "a.md").write_text("a", encoding="utf-8")

        assert main(config_arg + ["clear-backups", "root-20240101-000000"]) == 0

        assert not session_root.exists()


class TestConfigErrors:
    def test_unparseable_config_value_does_not_abort(self, tmp_path, config_arg):
        (tmp_path / "config.ini").write_text("[Download]\ntimeout = abc\n", encoding="utf-8")
        source = tmp_path / "source.md"
        source.write_text("content", encoding="utf-8")

        assert main(config_arg + ["write", str(tmp_path / "target.md"), str(source)]) == 0
