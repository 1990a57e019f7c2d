"""Tests for scope resolution and service injection."""

from unittest.mock import MagicMock, patch

import pytest

from auth.scopes import (
    DOCS_READONLY_SCOPE,
    DOCS_WRITE_SCOPE,
    DRIVE_FILE_SCOPE,
    DRIVE_SCOPE,
    missing_scopes,
    resolve_scopes,
)
from auth.service_decorator import get_google_service, require_google_service, require_multiple_services
from core.errors import AuthenticationError


class TestResolveScopes:
    def test_short_names_expand(self):
        assert resolve_scopes("docs_write") == [DOCS_WRITE_SCOPE]
        assert resolve_scopes(["docs_read", "drive_file"]) == [DOCS_READONLY_SCOPE, DRIVE_FILE_SCOPE]

    def test_full_urls_pass_through(self):
        assert resolve_scopes([DRIVE_SCOPE]) == [DRIVE_SCOPE]


class TestMissingScopes:
    def test_exact_grant(self):
        assert missing_scopes([DOCS_WRITE_SCOPE], [DOCS_WRITE_SCOPE]) == []

    def test_broader_scope_implies_narrower(self):
        assert missing_scopes([DOCS_READONLY_SCOPE], [DOCS_WRITE_SCOPE]) == []
        assert missing_scopes([DRIVE_FILE_SCOPE], [DRIVE_SCOPE]) == []

    def test_narrower_scope_does_not_imply_broader(self):
        assert missing_scopes([DOCS_WRITE_SCOPE], [DOCS_READONLY_SCOPE]) == [DOCS_WRITE_SCOPE]


class TestGetGoogleService:
    def _store(self, scopes):
        store = MagicMock()
        store.load_valid_credentials.return_value = MagicMock(scopes=scopes)
        return store

    def test_builds_service(self):
        with (
            patch("auth.service_decorator.get_credential_store", return_value=self._store([DOCS_WRITE_SCOPE])),
            patch("auth.service_decorator.build") as mock_build,
        ):
            service = get_google_service("docs", "docs_read")

        assert service is mock_build.return_value
        args, kwargs = mock_build.call_args
        assert args[:2] == ("docs", "v1")
        assert kwargs["cache_discovery"] is False

    def test_missing_scope_raises(self):
        with patch("auth.service_decorator.get_credential_store", return_value=self._store([DOCS_READONLY_SCOPE])):
            with pytest.raises(AuthenticationError, match="missing required scopes"):
                get_google_service("docs", "docs_write")

    def test_unknown_service_type(self):
        with pytest.raises(ValueError):
            get_google_service("sheets", "docs_read")


class TestServiceDecorators:
    @pytest.mark.asyncio
    async def test_require_google_service_injects_and_hides_param(self):
        import inspect

        @require_google_service("docs", "docs_read")
        async def tool(service, document_id: str):
            return service, document_id

        assert list(inspect.signature(tool).parameters) == ["document_id"]

        fake = MagicMock()
        with patch("auth.service_decorator.get_google_service", return_value=fake):
            service, document_id = await tool(document_id="doc123")
        assert service is fake
        assert document_id == "doc123"

    @pytest.mark.asyncio
    async def test_require_multiple_services(self):
        import inspect

        @require_multiple_services(
            [
                {"service_type": "docs", "scopes": "docs_write", "param_name": "docs_service"},
                {"service_type": "drive", "scopes": "drive_file", "param_name": "drive_service"},
            ]
        )
        async def tool(docs_service, drive_service, title: str):
            return docs_service, drive_service, title

        assert list(inspect.signature(tool).parameters) == ["title"]

        with patch("auth.service_decorator.get_google_service", side_effect=lambda t, s: f"{t}-service"):
            result = await tool(title="T")
        assert result == ("docs-service", "drive-service", "T")

    @pytest.mark.asyncio
    async def test_service_is_built_off_the_event_loop(self):
        import threading

        @require_google_service("docs", "docs_read")
        async def tool(service):
            return service

        def _build(service_type, scopes):
            return threading.current_thread()

        with patch("auth.service_decorator.get_google_service", side_effect=_build):
            build_thread = await tool()
        assert build_thread is not threading.current_thread()
