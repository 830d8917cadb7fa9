"""Unit tests for the case-insensitive result store."""

import pytest

from harvest.records.core import EntityNotFoundError, JoinConfigurationError
from harvest.records.models import Result, Results


def make(name, headers, rows):
    return Result(name, headers, rows)


@pytest.fixture
def results() -> Results:
    store = Results()
    store.put("Station", make("Station", ["id", "name"], [["1", "Shell"], ["2", "BP"], ["3", "Esso"]]))
    store.put("Fuel", make("Fuel", ["id", "type", "price"], [["1", "diesel", "1.9"], ["1", "e10", "1.8"], ["2", "lpg", "0.9"]]))
    return store


class TestNormalization:
    """Test normalized name lookups."""

    @pytest.mark.parametrize("name", ["Station", "station", "  STATION  ", "sTaTiOn"])
    def test_lookup_variants(self, results, name):
        assert results[name] is results.get("station")
        assert name in results

    @pytest.mark.parametrize("name", ["Station", "  MiXeD Name ", "a"])
    def test_normalize_is_idempotent(self, name):
        once = Results.normalize(name)
        assert Results.normalize(once) == once

    def test_last_write_wins_and_keeps_position(self, results):
        """Replacing an entry keeps its position and reports the latest spelling."""
        replacement = make("STATION", ["id"], [["9"]])
        previous = results.put("STATION", replacement)
        assert previous is not None and len(previous) == 3
        assert list(results) == ["STATION", "Fuel"]
        assert results["station"] is replacement
        assert len(results) == 2

    def test_non_string_membership(self, results):
        assert 1 not in results


class TestErrors:
    """Test unknown entity errors."""

    def test_empty_results(self):
        with pytest.raises(EntityNotFoundError) as e:
            Results().get("x")
        assert str(e.value) == "Empty results. Entity 'x' not found."

    def test_lists_available_entities(self, results):
        with pytest.raises(EntityNotFoundError) as e:
            results["price"]
        assert str(e.value) == "Entity name 'price' not found in results. Available entities: ['Station', 'Fuel']"
        assert e.value.available == ["Station", "Fuel"]

    def test_remove_and_clear(self, results):
        assert results.remove(" fuel ") is not None
        assert results.remove("fuel") is None
        assert list(results.keys()) == ["Station"]
        results.clear()
        assert len(results) == 0


class TestJoinAndLink:
    """Test cross-entity operations through the store."""

    def test_join_on_common_fields(self, results):
        joined = results.join("station", "FUEL")
        assert joined.entity_name == "Station"
        assert joined.headers == ("id", "name", "type", "price")
        assert joined.rows == [
            ("1", "Shell", "diesel", "1.9"),
            ("1", "Shell", "e10", "1.8"),
            ("2", "BP", "lpg", "0.9"),
            ("3", "Esso", None, None),
        ]

    def test_join_drops_unmatched(self, results):
        joined = results.join("station", "fuel", keep_unmatched=False)
        assert [row[0] for row in joined.rows] == ["1", "1", "2"]

    def test_join_unknown_entity(self, results):
        with pytest.raises(EntityNotFoundError):
            results.join("station", "price")

    def test_join_without_common_fields(self, results):
        results.put("Other", make("Other", ["code"], [["x"]]))
        with pytest.raises(JoinConfigurationError):
            results.join("station", "other")

    def test_link_attaches_matching_rows(self, results):
        results.link("Station", "Fuel")
        station = results["station"]
        assert len(station) == 3
        first = station.linked_entity_data(0)["fuel"]
        assert first.rows == [("1", "diesel", "1.9"), ("1", "e10", "1.8")]
        assert len(station.linked_entity_data(1)["Fuel"]) == 1
        assert len(station.linked_entity_data(2)) == 0

    def test_merge_accumulates_pages(self, results):
        page = Results()
        page.put("station", make("station", ["id", "name"], [["4", "Total"]]))
        page.put("Price", make("Price", ["amount"], [["1"]]))
        results.merge(page)
        assert len(results["station"]) == 4
        assert list(results) == ["Station", "Fuel", "Price"]
