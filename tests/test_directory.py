"""Tests for gympulse/directory.py"""

from gympulse.directory import DEFAULT_REGION, LocationDirectory


class TestBuiltinDirectory:
    def setup_method(self):
        self.directory = LocationDirectory.builtin()

    def test_size(self):
        assert len(self.directory) == 14

    def test_cities_sorted(self):
        assert self.directory.list_cities_for_region("Quebec") == [
            "Gatineau", "Laval", "Montreal", "Quebec City", "Sherbrooke",
        ]

    def test_unknown_region_falls_back(self):
        assert DEFAULT_REGION == "Quebec"
        assert self.directory.list_cities_for_region("Atlantis") == \
            self.directory.list_cities_for_region("Quebec")

    def test_locations_by_city(self):
        laval = self.directory.list_locations_for_region_and_city("Quebec", "Laval")
        assert {loc.id for loc in laval} == {"laval-goodlife-1", "laval-anytime-1"}

    def test_locations_without_city(self):
        assert len(self.directory.list_locations_for_region_and_city("Quebec")) == 14

    def test_get_location_by_id(self):
        location = self.directory.get_location_by_id("mtl-anytime-1")
        assert location.name == "Anytime Fitness Downtown"
        assert location.capacity == 100
        assert self.directory.get_location_by_id("nope") is None

    def test_search_is_case_insensitive(self):
        results = self.directory.search("ANYTIME")
        assert len(results) == 5
        assert all(loc.brand == "Anytime Fitness" for loc in results)

    def test_search_by_city(self):
        assert {loc.city for loc in self.directory.search("sherbrooke")} == {"Sherbrooke"}

    def test_brands(self):
        assert "YMCA" in self.directory.brands()
        assert self.directory.brands() == sorted(self.directory.brands())


class TestCustomDirectory:
    def test_loaded_locations(self, directory):
        assert len(directory) == 3
        assert [loc.id for loc in directory.all()] == ["gym-a", "gym-b", "gym-c"]
