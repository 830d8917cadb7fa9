"""Unit tests for file-name patterns."""

from datetime import UTC, datetime

import pytest

from harvest.records.core import ConfigurationError
from harvest.records.utils import FileNamePattern, with_extension

URL = "https://example.com/Property/307634/Springfield?x=1"


class TestFileNamePattern:
    """Test placeholder parsing and rendering."""

    def test_parameters(self):
        pattern = FileNamePattern("{date, %Y}/{url, last}_{page, 3}")
        assert pattern.parameters == {"date", "url", "page"}
        assert pattern.option("page") == "3"
        assert pattern.contains("url")
        assert not pattern.contains("batch")

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("file_{page}", "file_7"),
            ("file_{page, 4}", "file_0007"),
            ("{url}", "Property/307634/Springfield"),
            ("{url, 1}", "307634"),
            ("{url, last}", "Springfield"),
            ("{url, flat}", "Property_307634_Springfield"),
            ("{url, 9}", ""),
        ],
    )
    def test_render_page_and_url(self, text, expected):
        """Page numbers are padded and URL paths split into sections."""
        assert FileNamePattern(text).render(page=7, url=URL) == expected

    def test_render_date(self):
        date = datetime(2024, 1, 1, tzinfo=UTC)
        assert FileNamePattern("{date}").render(date=date) == "1704067200000"
        assert FileNamePattern("{date, %Y-%m-%d}").render(date=date) == "2024-01-01"

    def test_parent_batch_and_follower(self):
        pattern = FileNamePattern("{parent}/{batch}_{follower}")
        assert pattern.render(parent="p/file_1", batch="b1", follower=2) == "p/file_1/b1_2"

    def test_missing_values_render_empty(self):
        assert FileNamePattern("file_{batch}_{page}").render(page=1) == "file__1"

    def test_custom_parameter(self):
        """Custom parameters are preset with set() and sanitized."""
        pattern = FileNamePattern("{site}_{page}")
        pattern.set("site", "a/b:c")
        assert pattern.get("site") == "a/b:c"
        assert pattern.render(page=2) == "a_b_c_2"
        pattern.clear_values()
        assert pattern.render(page=2) == "_2"

    def test_set_unknown_parameter(self):
        with pytest.raises(ConfigurationError):
            FileNamePattern("file_{page}").set("site", "x")

    def test_blank_pattern(self):
        with pytest.raises(ConfigurationError):
            FileNamePattern("  ")

    def test_url_sections_stay_relative(self):
        """Dot sections are dropped so paths cannot climb out of the target."""
        url = "https://x.example.com/a/%2e%2e/./../%2E%2E/escaped"
        assert FileNamePattern("{url}").render(url=url) == "a/escaped"
        assert FileNamePattern("{url, flat}").render(url=url) == "a_escaped"
        assert FileNamePattern("{url}").render(url="https://x.example.com/..") == "x.example.com"

    def test_invalid_options(self):
        with pytest.raises(ConfigurationError):
            FileNamePattern("{page, x}").render(page=1)
        with pytest.raises(ConfigurationError):
            FileNamePattern("{url, middle}").render(url=URL)


def test_with_extension():
    assert with_extension("dir/file_1", "html") == "dir/file_1.html"
    assert with_extension("dir/file_1", ".json") == "dir/file_1.json"
    assert with_extension("file.txt", "html") == "file.txt"
    assert with_extension("file", None) == "file"
