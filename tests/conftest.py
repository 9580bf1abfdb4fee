"""Shared fixtures and test utilities for pytest."""

import tempfile
from pathlib import Path
from typing import Generator
from unittest.mock import Mock

import pytest

from config import Config


CONFIG_ENV_VARS = [
    'PAPERLESS_URL', 'PAPERLESS_TOKEN', 'SITE_NAME', 'WATCH_FOLDER',
    'ARCHIVE_FOLDER', 'FAILED_FOLDER', 'LOG_FILE', 'LOG_LEVEL',
    'FILE_EXTENSIONS', 'TIMESTAMP_FORMAT', 'UPLOAD_TIMEOUT', 'API_TEST_TIMEOUT',
    'UPLOAD_RETRY_ATTEMPTS', 'UPLOAD_RETRY_DELAY', 'POLL_INTERVAL', 'LOCK_GRACE_DELAY',
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep settings from the developer's shell or .env out of the tests."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def watch_dir(tmp_path) -> Path:
    """Watch folder inside pytest's tmp_path."""
    folder = tmp_path / "inbox"
    folder.mkdir()
    return folder


@pytest.fixture
def mock_config(monkeypatch, tmp_path, watch_dir):
    """Create a config object from a test environment."""
    monkeypatch.setenv('PAPERLESS_URL', 'http://test.paperless.local:8000')
    monkeypatch.setenv('PAPERLESS_TOKEN', 'test_token_12345')
    monkeypatch.setenv('WATCH_FOLDER', str(watch_dir))
    monkeypatch.setenv('ARCHIVE_FOLDER', str(tmp_path / "archive"))
    monkeypatch.setenv('FAILED_FOLDER', str(tmp_path / "failed"))
    monkeypatch.setenv('LOG_FILE', str(tmp_path / "app.log"))
    monkeypatch.setenv('LOG_LEVEL', 'DEBUG')

    config_instance = Config()
    config_instance.ensure_directories()
    return config_instance


@pytest.fixture
def sample_pdf_file(watch_dir: Path) -> Path:
    """Create a sample PDF file in the watch folder."""
    test_file = watch_dir / "scan1.pdf"
    test_file.write_bytes(b"%PDF-1.4\nfake pdf content")
    return test_file


def make_response(status_code=200, json_data=None, text=None):
    """Build a fake requests.Response."""
    response = Mock()
    response.status_code = status_code
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    response.text = text if text is not None else str(json_data)
    return response


@pytest.fixture
def mock_requests(monkeypatch):
    """Mock requests module for testing API calls."""
    mock_response = make_response(200, {"id": 42})

    mock_post = Mock(return_value=mock_response)
    mock_get = Mock(return_value=mock_response)

    monkeypatch.setattr('requests.post', mock_post)
    monkeypatch.setattr('requests.get', mock_get)

    return {
        'post': mock_post,
        'get': mock_get,
        'response': mock_response
    }


@pytest.fixture
def response_factory():
    """Factory for fake responses with a given status and JSON body."""
    return make_response
