"""Unit tests for entity definitions and compiled plans."""

import pytest

from harvest.records.core import ConfigurationError, EntityNotFoundError, Nesting, ParserSettings
from harvest.records.graph import EntityGraph, LinkFollower


@pytest.fixture
def graph() -> EntityGraph:
    graph = EntityGraph()
    station = graph.configure_entity("Station")
    station.add_field("name", "css:.name").add_field("fuel", "css:a.fuel").add_field("city")
    return graph


def authorize(link):
    link.set_header("Authorization", "Bearer token")


class TestEntityGraph:
    """Test entity registration and lookup."""

    def test_configure_entity_is_case_insensitive(self, graph):
        """Configuring an existing name returns the same entity."""
        assert graph.configure_entity("  STATION ") is graph.get_entity("station")
        assert graph.entity_names == ["Station"]
        assert "sTaTiOn" in graph
        assert len(graph) == 1

    def test_get_unknown_entity(self, graph):
        with pytest.raises(EntityNotFoundError, match="Available entities"):
            graph.get_entity("fuel")

    def test_blank_name_rejected(self, graph):
        with pytest.raises(ConfigurationError):
            graph.configure_entity("  ")

    def test_remove_entity_drops_followers(self, graph):
        """Removing an entity removes the followers declared beneath it."""
        graph.get_entity("station").follow("fuel").add_field("type")
        removed = graph.remove_entity("STATION")
        assert removed is not None
        assert graph.entity_names == []
        assert graph.compile(ParserSettings()) == ()

    def test_iteration_keeps_declaration_order(self, graph):
        graph.configure_entity("Zeta").add_field("z")
        graph.configure_entity("Alpha").add_field("a")
        assert [e.name for e in graph] == ["Station", "Zeta", "Alpha"]


class TestEntity:
    """Test field and follower declarations."""

    def test_fields_keep_order_and_matchers(self, graph):
        station = graph.get_entity("station")
        assert station.field_names == ("name", "fuel", "city")
        assert station.matchers == ("css:.name", "css:a.fuel", None)
        assert station.field_index("CITY") == 2

    def test_redeclaring_field_keeps_position(self, graph):
        station = graph.get_entity("station")
        station.add_field("NAME", "xpath://h1")
        assert station.field_names == ("name", "fuel", "city")
        assert station.matchers[0] == "xpath://h1"

    def test_remove_field_drops_its_follower(self, graph):
        station = graph.get_entity("station")
        station.follow("fuel")
        station.remove_field("fuel")
        assert station.field_names == ("name", "city")
        assert station.followers == ()

    def test_remove_follower_keeps_field(self, graph):
        station = graph.get_entity("station")
        follower = station.follow("fuel")
        assert station.remove_follower("FUEL") is follower
        assert station.remove_follower("fuel") is None
        assert station.field_names == ("name", "fuel", "city")
        (plan,) = graph.compile(ParserSettings())
        assert plan.followers == ()

    def test_remove_unknown_field(self, graph):
        with pytest.raises(ConfigurationError):
            graph.get_entity("station").remove_field("price")

    def test_follow_returns_existing_follower(self, graph):
        station = graph.get_entity("station")
        follower = station.follow("fuel", "Fuel")
        assert isinstance(follower, LinkFollower)
        assert station.follow("FUEL") is follower
        assert follower.owner is station
        assert follower.name == "Fuel"

    def test_follower_default_name(self, graph):
        assert graph.get_entity("station").follow("fuel").name == "Station.fuel"

    def test_max_links_must_not_be_negative(self, graph):
        follower = graph.get_entity("station").follow("fuel")
        with pytest.raises(ConfigurationError):
            follower.max_links = -1

    def test_overrides_only_report_explicit_values(self, graph):
        station = graph.get_entity("station")
        assert station.overrides() == {}
        station.empty_value = None
        station.nesting = "join"
        assert station.overrides() == {"empty_value": None, "nesting": Nesting.JOIN}


class TestCompile:
    """Test compilation of definitions into plans."""

    def test_plan_headers_and_matchers(self, graph):
        (plan,) = graph.compile(ParserSettings())
        assert plan.name == "Station"
        assert plan.headers == ("name", "fuel", "city")
        assert plan.matcher("fuel") == "css:a.fuel"
        assert plan.depth == 0

    def test_options_come_from_settings_by_default(self, graph):
        (plan,) = graph.compile(ParserSettings(nesting=Nesting.JOIN, empty_value="-"))
        assert plan.options.nesting is Nesting.JOIN
        assert plan.options.empty_value == "-"
        assert plan.options.ignore_following_errors is True

    def test_override_chain(self, graph):
        """Local values win over enclosing followers, then the owner, then settings."""
        station = graph.get_entity("station")
        station.nesting = Nesting.REPLACE_JOIN
        station.empty_value = "n/a"
        fuel = station.follow("fuel").add_field("type").add_field("prices")
        fuel.ignore_following_errors = False
        price = fuel.follow("prices")
        price.add_field("amount")
        price.nesting = Nesting.LINK
        extra = fuel.add_entity("Brand")
        extra.add_field("brand")

        (plan,) = graph.compile(ParserSettings(nesting=Nesting.JOIN))
        (fuel_plan,) = plan.followers
        (price_plan,) = fuel_plan.plan.followers

        assert fuel_plan.options.nesting is Nesting.REPLACE_JOIN
        assert fuel_plan.options.empty_value == "n/a"
        assert fuel_plan.options.ignore_following_errors is False
        assert price_plan.options.nesting is Nesting.LINK
        assert price_plan.options.ignore_following_errors is False
        assert price_plan.options.empty_value == "n/a"
        (brand_plan,) = fuel_plan.entities
        assert brand_plan.options.ignore_following_errors is False
        assert brand_plan.depth == 1
        assert price_plan.plan.depth == 2

    def test_plans_are_frozen_snapshots(self, graph):
        """Edits after compilation do not affect existing plans."""
        (plan,) = graph.compile(ParserSettings())
        graph.get_entity("station").add_field("zip")
        assert plan.headers == ("name", "fuel", "city")

    def test_follow_undeclared_field(self, graph):
        graph.get_entity("station").follow("website")
        with pytest.raises(ConfigurationError, match="website"):
            graph.compile(ParserSettings())

    def test_entity_without_fields(self, graph):
        graph.configure_entity("Empty")
        with pytest.raises(ConfigurationError, match="no fields"):
            graph.compile(ParserSettings())

    def test_follower_plan_details(self, graph):
        follower = graph.get_entity("station").follow("Fuel")
        follower.add_field("type")
        follower.base_url = "https://fuel.example.com/"
        follower.max_links = 3
        follower.assigning("lang", "en").assigning("station", lambda record: record["name"])
        follower.next_link_handler = authorize

        (plan,) = graph.compile(ParserSettings())
        (fuel,) = plan.followers
        assert fuel.link_field == "fuel"
        assert fuel.link_index == 1
        assert fuel.base_url == "https://fuel.example.com/"
        assert fuel.max_links == 3
        assert fuel.next_link_handler is authorize
        assert [p.name for p in fuel.extracted] == ["Station.Fuel"]

        class FakeRecord(dict):
            pass

        assert fuel.request_parameters(FakeRecord(name="Shell")) == {"lang": "en", "station": "Shell"}
