"""Unit tests for DownloadStore."""

from datetime import UTC, datetime

import pytest

from harvest.records import FetchResponse
from harvest.records.core import ParserSettings
from harvest.records.io import DownloadStore


def settings(tmp_path, **overrides) -> ParserSettings:
    return ParserSettings(download_directory=tmp_path, **overrides)


class TestDownloadStore:
    """Test file naming and persistence."""

    def test_requires_directory(self):
        with pytest.raises(ValueError):
            DownloadStore(ParserSettings())

    def test_page_and_follower_names(self, tmp_path):
        store = DownloadStore(settings(tmp_path))
        assert store.file_name("https://example.com/a", page=3) == "file_3.html"
        assert store.file_name("https://example.com/a", page=3, parent="file_3", follower=2) == "file_3/file_2.html"

    def test_custom_patterns(self, tmp_path):
        store = DownloadStore(
            settings(
                tmp_path,
                file_name_pattern="{batch}/{date, %Y}/page_{page, 3}",
                default_file_extension=".json",
                batch_id="run1",
                parse_date=datetime(2024, 5, 1, tzinfo=UTC),
            )
        )
        assert store.file_name("https://example.com/a", page=7) == "run1/2024/page_007.json"

    @pytest.mark.asyncio
    async def test_save(self, tmp_path):
        store = DownloadStore(settings(tmp_path))
        response = FetchResponse(url="https://example.com/a", content=b"<html/>")
        name = await store.save(response, page=1)
        assert name == "file_1"
        assert (tmp_path / "file_1.html").read_bytes() == b"<html/>"

        child = FetchResponse(url="https://example.com/b", content=b"<p/>")
        assert await store.save(child, page=1, parent=name, follower=1) == "file_1/file_1"
        assert (tmp_path / "file_1" / "file_1.html").read_bytes() == b"<p/>"

    @pytest.mark.asyncio
    async def test_existing_files_can_be_kept(self, tmp_path):
        store = DownloadStore(settings(tmp_path, download_overwriting_enabled=False))
        (tmp_path / "file_1.html").write_bytes(b"old")
        await store.save(FetchResponse(url="https://example.com/a", content=b"new"), page=1)
        assert (tmp_path / "file_1.html").read_bytes() == b"old"

    def test_url_pattern_stays_inside_directory(self, tmp_path):
        store = DownloadStore(settings(tmp_path, file_name_pattern="{url}"))
        name = store.file_name("https://x.example.com/a/%2e%2e/%2e%2e/%2e%2e/escaped", page=1)
        assert name == "a/escaped.html"
        assert (tmp_path / name).resolve().is_relative_to(tmp_path.resolve())
