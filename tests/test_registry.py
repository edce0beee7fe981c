"""Tests for registry path classification."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from safeops.model.registry import DirectoryRegistry, FileRegistry, classify_registry_path, looks_like_file


class TestLooksLikeFile:
    @pytest.mark.parametrize("path", ["test.md", "docs/AGENTS.md", "README.MD", "config.v2.json", "a/b/c.txt"])
    def test_names_with_extension_are_files(self, path):
        assert looks_like_file(path)

    @pytest.mark.parametrize("path", [".github", ".pair", "knowledge", "docs/.hidden", "src/"])
    def test_dot_directories_and_bare_names_are_inconclusive(self, path):
        assert not looks_like_file(path)


class TestClassifyRegistryPath:
    def test_extension_decides_without_touching_fs(self):
        """A file-like name never probes the filesystem."""
        fs = AsyncMock()

        result = asyncio.run(classify_registry_path(fs, "docs/AGENTS.md"))

        assert result == FileRegistry("docs/AGENTS.md")
        assert fs.method_calls == []

    def test_existing_directory_is_directory(self, tmp_path, fs):
        (tmp_path / ".github").mkdir()
        path = str(tmp_path / ".github")

        result = asyncio.run(classify_registry_path(fs, path))

        assert result == DirectoryRegistry(path)

    def test_existing_extensionless_file_is_file(self, tmp_path, fs):
        (tmp_path / "Makefile").write_text("all:", encoding="utf-8")
        path = str(tmp_path / "Makefile")

        assert asyncio.run(classify_registry_path(fs, path)) == FileRegistry(path)

    def test_missing_path_defaults_to_file(self, tmp_path, fs):
        """A not-yet-created path is treated as a file."""
        path = str(tmp_path / "knowledge")

        assert asyncio.run(classify_registry_path(fs, path)) == FileRegistry(path)

    def test_probe_error_defaults_to_file(self):
        """Any error while probing falls back to file instead of failing."""
        fs = AsyncMock()
        fs.exists.side_effect = PermissionError("denied")

        assert asyncio.run(classify_registry_path(fs, ".github")) == FileRegistry(".github")

    def test_folder_probe_error_defaults_to_file(self):
        fs = AsyncMock()
        fs.exists.return_value = True
        fs.is_folder.side_effect = RuntimeError("unexpected")

        assert asyncio.run(classify_registry_path(fs, ".pair")) == FileRegistry(".pair")
