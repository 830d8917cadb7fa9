"""Unit tests for core enums."""

import pytest

from harvest.records.core import Nesting, PaginationStatus


class TestNesting:
    """Test Nesting predicates."""

    @pytest.mark.parametrize(
        "nesting,joins,links,replaces",
        [
            (Nesting.JOIN, True, False, False),
            (Nesting.REPLACE_JOIN, True, False, True),
            (Nesting.LINK, False, True, False),
            (Nesting.REPLACE_LINK, False, True, True),
        ],
    )
    def test_predicates(self, nesting, joins, links, replaces):
        """Each policy either joins or links, and may replace the link field."""
        assert nesting.joins is joins
        assert nesting.links is links
        assert nesting.replaces is replaces

    def test_from_value(self):
        """Policies are built from their string value."""
        assert Nesting("replace_join") is Nesting.REPLACE_JOIN
        assert Nesting.LINK == "link"

    def test_invalid_value(self):
        with pytest.raises(ValueError):
            Nesting("merge")


def test_pagination_status_values():
    """Test pagination states are readable strings."""
    assert [s.value for s in PaginationStatus] == ["init", "has_next", "fetching", "stopped"]
