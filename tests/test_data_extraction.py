"""Tests for gympulse/data_extraction.py and gympulse/database.py"""

from unittest.mock import MagicMock

import pandas as pd
import pytest

from gympulse.config import Config
from gympulse.data_extraction import (
    check_ins_from_dataframe,
    extract_all_data,
    locations_from_dataframe,
    validate_columns,
)
from gympulse.database import check_in_to_record, insert_check_ins

from conftest import NOW, make_check_in

GYM_ROWS = [
    {"id": "g1", "name": "Alpha Downtown", "brand": "Anytime Fitness", "city": "Montreal",
     "province": "Quebec", "latitude": 45.5, "longitude": -73.5, "capacity": 80},
    {"id": "g2", "name": "Bravo", "brand": "YMCA", "city": "Laval",
     "province": "Quebec", "latitude": 45.56, "longitude": -73.74, "capacity": None},
]

CHECK_IN_ROWS = [
    {"gym_id": "g1", "user_id": "u2", "timestamp": "2024-03-13T12:00:00+00:00", "distance_meters": 40},
    {"gym_id": "g2", "user_id": "u1", "timestamp": "2024-03-13T11:30:00.000Z", "distance_meters": None},
]


def fake_client(tables):
    """Supabase client double returning fixed rows per table."""
    client = MagicMock()

    def table(name):
        query = MagicMock()
        response = MagicMock()
        response.data = tables.get(name, [])
        query.select.return_value = query
        query.gte.return_value = query
        query.order.return_value = query
        query.insert.return_value = query
        query.execute.return_value = response
        return query

    client.table.side_effect = table
    return client


class TestValidateColumns:
    def test_missing_columns_raise(self):
        df = pd.DataFrame([{"id": "g1", "name": "x"}])
        with pytest.raises(ValueError, match="gyms is missing required columns"):
            validate_columns(df, "gyms")

    def test_empty_result_passes(self):
        validate_columns(pd.DataFrame([]), "check_ins")


class TestLocationsFromDataFrame:
    def test_converts_rows(self):
        locations = locations_from_dataframe(pd.DataFrame(GYM_ROWS))
        assert [loc.id for loc in locations] == ["g1", "g2"]
        assert locations[0].capacity == 80
        assert locations[0].coordinates.lat == 45.5
        assert locations[1].capacity == Config.DEFAULT_CAPACITY

    def test_empty(self):
        assert locations_from_dataframe(pd.DataFrame([])) == []


class TestCheckInsFromDataFrame:
    def test_converts_and_sorts_oldest_first(self):
        check_ins = check_ins_from_dataframe(pd.DataFrame(CHECK_IN_ROWS))
        assert [c.location_id for c in check_ins] == ["g2", "g1"]
        assert check_ins[1].timestamp == NOW
        assert check_ins[1].distance_meters == 40
        assert check_ins[0].timestamp == NOW - 30 * 60 * 1000
        assert check_ins[0].distance_meters is None

    def test_without_distance_column(self):
        rows = [{"gym_id": "g1", "user_id": "u1", "timestamp": "2024-03-13T12:00:00Z"}]
        check_ins = check_ins_from_dataframe(pd.DataFrame(rows))
        assert check_ins[0].distance_meters is None


class TestExtractAllData:
    def test_builds_directory_and_check_ins(self):
        client = fake_client({"gyms": GYM_ROWS, "check_ins": CHECK_IN_ROWS})
        data = extract_all_data(client)
        assert data["directory"].get_location_by_id("g1").name == "Alpha Downtown"
        assert len(data["check_ins"]) == 2


class TestDatabase:
    def test_check_in_record(self):
        record = check_in_to_record(make_check_in("g1", 0, user_id="u9", distance=12))
        assert record == {
            "gym_id": "g1",
            "user_id": "u9",
            "timestamp": "2024-03-13T12:00:00+00:00",
            "distance_meters": 12,
            "source": "user",
        }

    def test_insert_check_ins(self):
        client = fake_client({})
        insert_check_ins(client, [make_check_in("g1", 0)])
        client.table.assert_called_once_with("check_ins")

    def test_insert_nothing(self):
        client = fake_client({})
        insert_check_ins(client, [])
        client.table.assert_not_called()
