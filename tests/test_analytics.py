"""Tests for gympulse/analytics.py"""

import json

import pytest

from gympulse.analytics import analyze_community, analyze_personal, export_partnership_data, write_export_json
from gympulse.models import PeakHour

from conftest import DAY, NOW, make_check_in


@pytest.fixture
def personal_history():
    return [
        make_check_in("gym-a", 10, distance=50),            # Wed 11:50
        make_check_in("gym-b", 2 * 24 * 60, distance=150),  # Mon 12:00
        make_check_in("gym-a", 8 * 24 * 60),                # Tue last week 12:00
        make_check_in("gym-b", 3 * 60),                     # Wed 09:00
    ]


class TestAnalyzePersonal:
    def test_empty_history(self, directory):
        snapshot = analyze_personal([], directory.get_location_by_id, now=NOW, tz_name="UTC")
        assert snapshot.total_check_ins == 0
        assert snapshot.unique_locations == 0
        assert snapshot.most_visited is None
        assert snapshot.recent_check_ins == []
        assert snapshot.hourly_distribution == [0] * 24
        assert snapshot.weekly_distribution == [0] * 7
        assert snapshot.average_distance == 0
        assert snapshot.this_week_check_ins == 0

    def test_counts(self, directory, personal_history):
        snapshot = analyze_personal(personal_history, directory.get_location_by_id, now=NOW, tz_name="UTC")
        assert snapshot.total_check_ins == 4
        assert snapshot.unique_locations == 2
        assert snapshot.this_week_check_ins == 3
        assert snapshot.average_distance == 100

    def test_distributions(self, directory, personal_history):
        snapshot = analyze_personal(personal_history, directory.get_location_by_id, now=NOW, tz_name="UTC")
        assert snapshot.hourly_distribution[11] == 1
        assert snapshot.hourly_distribution[12] == 2
        assert snapshot.hourly_distribution[9] == 1
        assert sum(snapshot.hourly_distribution) == 4
        # Sunday=0
        assert snapshot.weekly_distribution == [0, 1, 1, 2, 0, 0, 0]

    def test_local_timezone_shifts_buckets(self, directory):
        # 12:00 UTC is 08:00 in Toronto during daylight time
        snapshot = analyze_personal([make_check_in("gym-a", 0)], directory.get_location_by_id,
                                    now=NOW, tz_name="America/Toronto")
        assert snapshot.hourly_distribution[8] == 1

    def test_most_visited_tie_goes_to_first_seen(self, directory, personal_history):
        snapshot = analyze_personal(personal_history, directory.get_location_by_id, now=NOW, tz_name="UTC")
        location, count = snapshot.most_visited
        assert location.id == "gym-a"
        assert count == 2

        reordered = [personal_history[1]] + [personal_history[0]] + personal_history[2:]
        snapshot = analyze_personal(reordered, directory.get_location_by_id, now=NOW, tz_name="UTC")
        assert snapshot.most_visited[0].id == "gym-b"

    def test_most_visited_clear_winner(self, directory):
        history = [make_check_in("gym-a", 100), make_check_in("gym-b", 200), make_check_in("gym-b", 300)]
        snapshot = analyze_personal(history, directory.get_location_by_id, now=NOW, tz_name="UTC")
        assert snapshot.most_visited[0].id == "gym-b"
        assert snapshot.most_visited[1] == 2

    def test_recent_check_ins_newest_first(self, directory, personal_history):
        snapshot = analyze_personal(personal_history, directory.get_location_by_id, now=NOW, tz_name="UTC")
        timestamps = [e.check_in.timestamp for e in snapshot.recent_check_ins]
        assert timestamps == sorted(timestamps, reverse=True)
        first = snapshot.recent_check_ins[0]
        assert first.location.name == "Alpha Gym"
        assert first.date.hour == 11 and first.date.minute == 50

    def test_recent_check_ins_limited_to_ten(self, directory):
        history = [make_check_in("gym-a", 70 * i) for i in range(15)]
        snapshot = analyze_personal(history, directory.get_location_by_id, now=NOW, tz_name="UTC")
        assert len(snapshot.recent_check_ins) == 10

    def test_unresolved_location_kept_with_none(self, directory):
        snapshot = analyze_personal([make_check_in("gym-zzz", 5)], directory.get_location_by_id,
                                    now=NOW, tz_name="UTC")
        assert snapshot.most_visited == (None, 1)
        assert snapshot.recent_check_ins[0].location is None


@pytest.fixture
def community_history():
    return [
        make_check_in("gym-a", 5, user_id="u1"),
        make_check_in("gym-a", 5, user_id="u2"),
        make_check_in("gym-a", 5, user_id="u3"),
        make_check_in("gym-a", 120, user_id="u1"),
        make_check_in("gym-b", 1, user_id="u4"),
        *[make_check_in("gym-b", 20 * 60, user_id=f"u{i}") for i in range(5, 10)],
        make_check_in("gym-zzz", 2, user_id="u10"),
        make_check_in("gym-c", 25 * 60, user_id="u11"),  # outside 24h
    ]


class TestAnalyzeCommunity:
    def test_empty(self, directory):
        snapshot = analyze_community([], directory.get_location_by_id, now=NOW, tz_name="UTC")
        assert snapshot.total_community_check_ins == 0
        assert snapshot.gyms_with_activity == []
        assert snapshot.most_popular_gym is None
        assert snapshot.top_gyms == []
        assert snapshot.peak_hours == []

    def test_totals_use_24_hour_window(self, directory, community_history):
        snapshot = analyze_community(community_history, directory.get_location_by_id, now=NOW, tz_name="UTC")
        assert snapshot.total_community_check_ins == 11

    def test_per_location_breakdown(self, directory, community_history):
        snapshot = analyze_community(community_history, directory.get_location_by_id, now=NOW, tz_name="UTC")
        by_id = {g.location.id: g for g in snapshot.gyms_with_activity}
        assert set(by_id) == {"gym-a", "gym-b"}

        assert by_id["gym-a"].last_24_hours_check_ins == 4
        assert by_id["gym-a"].recent_check_ins == 3
        assert by_id["gym-a"].estimated_occupancy == 20

        assert by_id["gym-b"].last_24_hours_check_ins == 6
        assert by_id["gym-b"].recent_check_ins == 1
        assert by_id["gym-b"].estimated_occupancy == 3

    def test_most_popular_and_leaderboard(self, directory, community_history):
        snapshot = analyze_community(community_history, directory.get_location_by_id, now=NOW, tz_name="UTC")
        assert snapshot.most_popular_gym.location.id == "gym-a"
        assert [g.location.id for g in snapshot.top_gyms] == ["gym-b", "gym-a"]

    def test_recent_activity_skips_unresolved(self, directory, community_history):
        snapshot = analyze_community(community_history, directory.get_location_by_id, now=NOW, tz_name="UTC")
        activity = snapshot.recent_community_activity
        assert activity[0].check_in.location_id == "gym-b"
        assert all(e.location is not None for e in activity)
        assert len(activity) == 10

    def test_peak_hours(self, directory):
        history = (
            [make_check_in("gym-a", 18 * 60 - i) for i in range(10)]   # yesterday 18:00-18:09
            + [make_check_in("gym-b", 5 * 60 - i) for i in range(3)]   # today 07:00-07:02
            + [make_check_in("gym-a", 30)]                              # today 11:30
        )
        snapshot = analyze_community(history, directory.get_location_by_id, now=NOW, tz_name="UTC")
        assert snapshot.peak_hours[0] == PeakHour(hour=18, count=10)
        assert snapshot.peak_hours[1] == PeakHour(hour=7, count=3)
        assert snapshot.peak_hours[2] == PeakHour(hour=11, count=1)

    def test_top_gyms_limited_to_five(self):
        from gympulse.directory import LocationDirectory
        from conftest import make_location

        directory = LocationDirectory([make_location(f"g{i}") for i in range(7)])
        history = [make_check_in(f"g{i}", 60) for i in range(7) for _ in range(i + 1)]
        snapshot = analyze_community(history, directory.get_location_by_id, now=NOW, tz_name="UTC")
        assert [g.location.id for g in snapshot.top_gyms] == ["g6", "g5", "g4", "g3", "g2"]


class TestExportPartnershipData:
    def test_summary_and_insights(self, directory, community_history):
        in_window = [c for c in community_history if NOW - c.timestamp <= DAY]
        community = analyze_community(in_window, directory.get_location_by_id, now=NOW, tz_name="UTC")
        document = export_partnership_data(community, in_window, directory.get_location_by_id, now=NOW)

        assert document["summary"]["totalActiveUsers"] == 10
        assert document["summary"]["totalCheckIns"] == 11
        assert document["summary"]["gymsWithActivity"] == 2

        by_id = {i["gymId"]: i for i in document["insights"]}
        assert set(by_id) == {"gym-a", "gym-b"}
        assert by_id["gym-a"]["metrics"] == {"totalCheckIns": 4, "uniqueUsers": 3, "estimatedOccupancy": 20}
        assert by_id["gym-b"]["metrics"] == {"totalCheckIns": 6, "uniqueUsers": 6, "estimatedOccupancy": 3}
        assert document["insights"][0]["gymId"] == "gym-b"

    def test_no_user_identifiers_or_timestamps(self, directory, community_history):
        community = analyze_community(community_history, directory.get_location_by_id, now=NOW, tz_name="UTC")
        document = export_partnership_data(community, community_history, directory.get_location_by_id, now=NOW)
        text = json.dumps(document)
        assert "userId" not in text
        assert "u1" not in text
        assert str(NOW - 5 * 60 * 1000) not in text

    def test_writes_json(self, directory, community_history, tmp_path):
        community = analyze_community(community_history, directory.get_location_by_id, now=NOW, tz_name="UTC")
        document = export_partnership_data(community, community_history, directory.get_location_by_id, now=NOW)
        out = tmp_path / "export.json"
        write_export_json(document, str(out))
        assert json.loads(out.read_text()) == document

    def test_empty(self, directory):
        community = analyze_community([], directory.get_location_by_id, now=NOW)
        document = export_partnership_data(community, [], directory.get_location_by_id, now=NOW)
        assert document["summary"]["totalActiveUsers"] == 0
        assert document["summary"]["totalCheckIns"] == 0
        assert document["insights"] == []
