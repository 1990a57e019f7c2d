"""Shared pytest fixtures for gdocs-markdown-mcp tests."""

import tempfile
from unittest.mock import MagicMock

import pytest

import core.config


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def mock_docs_service():
    """Create a mock Google Docs service with an empty document."""
    service = MagicMock()
    service.documents.return_value.get.return_value.execute.return_value = {
        "documentId": "doc123",
        "title": "Test Doc",
        "body": {
            "content": [
                {"endIndex": 1, "sectionBreak": {}},
                {
                    "startIndex": 1,
                    "endIndex": 2,
                    "paragraph": {"elements": [{"startIndex": 1, "endIndex": 2, "textRun": {"content": "\n"}}]},
                },
            ]
        },
    }
    service.documents.return_value.batchUpdate.return_value.execute.return_value = {"replies": []}
    return service


@pytest.fixture
def mock_drive_service():
    """Create a mock Google Drive service that hands out sequential file IDs."""
    service = MagicMock()
    counter = {"n": 0}

    def _create(**kwargs):
        counter["n"] += 1
        request = MagicMock()
        request.execute.return_value = {"id": f"tmpfile{counter['n']}"}
        return request

    service.files.return_value.create.side_effect = _create
    service.files.return_value.delete.return_value.execute.return_value = None
    service.permissions.return_value.create.return_value.execute.return_value = {"id": "perm1"}
    return service


@pytest.fixture
def sample_credentials():
    """Create sample OAuth credentials for testing."""
    return {
        "token": "test_access_token",
        "refresh_token": "test_refresh_token",
        "token_uri": "https://oauth2.googleapis.com/token",
        "client_id": "test_client_id",
        "client_secret": "test_client_secret",
        "scopes": ["https://www.googleapis.com/auth/documents"],
    }


@pytest.fixture
def env_override(monkeypatch):
    """Helper to override environment variables."""

    def _override(**kwargs):
        for key, value in kwargs.items():
            if value is None:
                monkeypatch.delenv(key, raising=False)
            else:
                monkeypatch.setenv(key, value)

    return _override


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    """Drop the cached configuration so env changes never leak between tests."""
    monkeypatch.setattr(core.config, "_config", None)
    yield
