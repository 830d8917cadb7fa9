"""Unit tests for ParserSettings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from harvest.records.core import DEFAULT_DOWNLOAD_THREADS, DEFAULT_REMOTE_INTERVAL, Nesting, ParserSettings


class TestParserSettings:
    """Test ParserSettings defaults and validation."""

    def test_defaults(self):
        settings = ParserSettings()
        assert settings.download_threads == DEFAULT_DOWNLOAD_THREADS == 4
        assert settings.remote_interval == DEFAULT_REMOTE_INTERVAL == 0.015
        assert settings.nesting is Nesting.LINK
        assert settings.ignore_following_errors is True
        assert settings.keep_unmatched_rows is True
        assert settings.file_name_pattern == "file_{page}"
        assert settings.follower_file_name_pattern == "{parent}/file_{follower}"
        assert settings.downloads_enabled is False

    @pytest.mark.parametrize("threads", [0, 17])
    def test_download_threads_bounds(self, threads):
        """Download threads must stay within 1-16."""
        with pytest.raises(ValidationError):
            ParserSettings(download_threads=threads)

    def test_negative_interval_rejected(self):
        with pytest.raises(ValidationError):
            ParserSettings(remote_interval=-1)

    def test_frozen(self):
        """Settings are immutable; variants are derived with model_copy."""
        settings = ParserSettings()
        with pytest.raises(ValidationError):
            settings.download_threads = 8
        variant = settings.model_copy(update={"download_threads": 8})
        assert variant.download_threads == 8
        assert settings.download_threads == 4

    def test_extension_without_dot(self):
        assert ParserSettings(default_file_extension=".htm").default_file_extension == "htm"

    def test_downloads_enabled(self, tmp_path: Path):
        assert ParserSettings(download_directory=tmp_path).downloads_enabled is True

    def test_nesting_from_string(self):
        assert ParserSettings(nesting="join").nesting is Nesting.JOIN
