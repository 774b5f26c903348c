"""
Unit tests for the CherryPicker API facade.
"""

import logging
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from conftest import FakeBackend, local_files
from cherrypick.infrastructure.error_handler import ParseError
from cherrypick.interfaces.api import CherryPicker
from cherrypick.models import (
    Credentials, EntryKind, FetchConfig, FetchStatus, FetchStrategy
)
from cherrypick.services import GitCloneService, GitHubAPIService


@pytest.fixture
def picker(docs_tree):
    return CherryPicker(backend=FakeBackend(docs_tree))


class TestInitialization:

    def test_defaults(self, picker):
        assert picker.verbose is False
        assert picker.config.max_concurrent_downloads == 50
        assert picker.orchestrator.max_concurrent_downloads == 50

    def test_concurrency_comes_from_config(self, docs_tree):
        picker = CherryPicker(
            config=FetchConfig(max_concurrent_downloads=3),
            backend=FakeBackend(docs_tree)
        )
        assert picker.orchestrator.max_concurrent_downloads == 3

    def test_api_backend_is_the_default(self):
        picker = CherryPicker(credentials=Credentials("me", "secret"))

        assert isinstance(picker.backend, GitHubAPIService)
        assert picker.backend.credentials == Credentials("me", "secret")

    def test_clone_backend_selected_by_strategy(self):
        picker = CherryPicker(config=FetchConfig(strategy=FetchStrategy.GIT_CLONE))

        assert isinstance(picker.backend, GitCloneService)


class TestVerboseLogging:

    @patch('cherrypick.interfaces.api.logger')
    def test_logger_level_verbose_true(self, mock_logger, docs_tree):
        CherryPicker(backend=FakeBackend(docs_tree), verbose=True)
        mock_logger.setLevel.assert_called_with(logging.DEBUG)

    @patch('cherrypick.interfaces.api.logger')
    def test_logger_level_verbose_false(self, mock_logger, docs_tree):
        CherryPicker(backend=FakeBackend(docs_tree), verbose=False)
        mock_logger.setLevel.assert_called_with(logging.INFO)

    @patch('cherrypick.interfaces.api.logger')
    def test_set_verbose_toggles_level(self, mock_logger, picker):
        picker.set_verbose(True)
        assert picker.verbose is True
        mock_logger.setLevel.assert_called_with(logging.DEBUG)

        picker.set_verbose(False)
        assert picker.verbose is False
        mock_logger.setLevel.assert_called_with(logging.INFO)


class TestRequests:

    def test_build_request_uses_configured_destination(self, docs_tree):
        picker = CherryPicker(
            config=FetchConfig(download_dir=Path("somewhere"), default_branch="dev"),
            backend=FakeBackend(docs_tree)
        )

        request = picker.build_request("https://github.com/octo/repo/docs")

        assert request.local_root == Path("somewhere")
        assert request.reference == "dev"

    def test_build_request_explicit_destination(self, picker, tmp_path):
        request = picker.build_request("https://github.com/octo/repo", tmp_path)
        assert request.local_root == tmp_path

    def test_build_request_malformed(self, picker):
        with pytest.raises(ParseError):
            picker.build_request("https://example.com/octo/repo")


class TestFetching:

    @pytest.mark.asyncio
    async def test_fetch_url_directory(self, picker, tmp_path):
        result = await picker.fetch_url("https://github.com/octo/repo/tree/main/docs", tmp_path)

        assert result.status == FetchStatus.COMPLETED
        assert sorted(local_files(tmp_path)) == ["a.md", "b.md", "sub/c.md"]

    @pytest.mark.asyncio
    async def test_fetch_url_blob(self, picker, tmp_path):
        result = await picker.fetch_url("https://github.com/octo/repo/blob/main/README.md", tmp_path)

        assert result.status == FetchStatus.COMPLETED
        assert result.request.kind is EntryKind.FILE
        assert local_files(tmp_path) == {"README.md": b"readme"}

    @pytest.mark.asyncio
    async def test_fetch_directory_and_file(self, picker, tmp_path):
        directory = await picker.fetch_directory("octo", "repo", "docs/sub", tmp_path / "d")
        single = await picker.fetch_file("octo", "repo", "docs/a.md", tmp_path / "f")

        assert directory.is_successful and single.is_successful
        assert local_files(tmp_path) == {"d/c.md": b"# C", "f/a.md": b"# A"}

    @pytest.mark.asyncio
    async def test_fetch_urls_parses_everything_first(self, docs_tree, tmp_path):
        backend = FakeBackend(docs_tree)
        picker = CherryPicker(backend=backend)

        with pytest.raises(ParseError):
            await picker.fetch_urls(
                ["https://github.com/octo/repo/tree/main/docs", "not a url/"],
                tmp_path
            )

        assert backend.list_calls == []

    @pytest.mark.asyncio
    async def test_fetch_urls_returns_one_result_per_url(self, picker, tmp_path):
        results = await picker.fetch_urls(
            [
                "https://github.com/octo/repo/tree/main/docs/sub",
                "https://github.com/octo/repo/tree/main/missing",
            ],
            tmp_path,
            parallel=True
        )

        assert [r.status for r in results] == [FetchStatus.COMPLETED, FetchStatus.FAILED]

    @pytest.mark.asyncio
    async def test_statistics_after_fetch(self, picker, tmp_path):
        assert picker.get_statistics() is None

        await picker.fetch_url("https://github.com/octo/repo/tree/main/docs", tmp_path)

        stats = picker.get_statistics()
        assert stats.downloaded_files == 3
        assert stats.failed_files == 0


class TestControl:

    def test_cancel_current_fetch_delegates(self, picker):
        picker.orchestrator = Mock()
        picker.orchestrator.cancel.return_value = []

        assert picker.cancel_current_fetch() == []
        picker.orchestrator.cancel.assert_called_once()

    @pytest.mark.asyncio
    async def test_context_manager_closes_backend(self, docs_tree):
        backend = FakeBackend(docs_tree)

        async with CherryPicker(backend=backend):
            pass

        assert backend.closed
