import os
import sys

import pytest

# Ensure src directory is importable
PROJECT_ROOT = os.path.dirname(os.path.dirname(__file__))
SRC_DIR = os.path.join(PROJECT_ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

# Add tests directory to path for test utilities
TESTS_DIR = os.path.join(PROJECT_ROOT, "tests")
if TESTS_DIR not in sys.path:
    sys.path.append(TESTS_DIR)

from safeops.services.file_system_service import LocalFileSystemService  # noqa: E402
from test_utils.fs_stub import FailingFileSystemService  # noqa: E402
from test_utils.http_stub import FakeHttpClient  # noqa: E402
from test_utils.writer_stub import ListWriter  # noqa: E402


@pytest.fixture
def fs():
    return LocalFileSystemService()


@pytest.fixture
def failing_fs():
    return FailingFileSystemService()


@pytest.fixture
def http():
    return FakeHttpClient()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run the test with tmp_path as the working directory (backup roots are relative)."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def progress_writer():
    return ListWriter()
