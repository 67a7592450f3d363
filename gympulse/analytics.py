"""
Personal and community analytics over the check-in collection.

Also reshapes community analytics into the anonymized partnership export.
"""

import json
import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

import pandas as pd

from gympulse.aggregation import estimate_occupancy_percentage, location_capacity, round_half_up
from gympulse.config import Config
from gympulse.feature_engineering import (
    DAY_MS,
    MINUTE_MS,
    add_temporal_features,
    checkins_to_dataframe,
    count_by,
    filter_window,
    local_datetime,
    now_ms,
)
from gympulse.models import (
    CheckIn,
    CommunitySnapshot,
    EnrichedCheckIn,
    GymActivity,
    Location,
    PeakHour,
    PersonalSnapshot,
)
from gympulse.occupancy import iso_timestamp

logger = logging.getLogger(__name__)

LocationLookup = Callable[[str], Optional[Location]]


def _enrich(check_in: CheckIn, lookup: LocationLookup, tz_name: str) -> EnrichedCheckIn:
    return EnrichedCheckIn(
        check_in=check_in,
        location=lookup(check_in.location_id),
        date=local_datetime(check_in.timestamp, tz_name),
    )


def _most_recent(check_ins: Iterable[CheckIn]) -> List[CheckIn]:
    return sorted(check_ins, key=lambda c: c.timestamp, reverse=True)


def analyze_personal(
    check_ins: Iterable[CheckIn],
    lookup: LocationLookup,
    now: Optional[int] = None,
    tz_name: str = Config.TIMEZONE,
) -> PersonalSnapshot:
    """
    Summarize one user's check-in history.

    Ties for the most visited location go to the location seen first in
    collection order.

    Args:
        check_ins: The user's check-ins
        lookup: Location lookup by id
        now: Reference time in epoch ms (defaults to wall clock)
        tz_name: Timezone for hour/day bucketing

    Returns:
        PersonalSnapshot (all-zero for an empty history)
    """
    if now is None:
        now = now_ms()

    check_ins = list(check_ins)
    if not check_ins:
        logger.info("No personal check-ins to analyze")
        return PersonalSnapshot(
            total_check_ins=0,
            unique_locations=0,
            most_visited=None,
            recent_check_ins=[],
            hourly_distribution=[0] * 24,
            weekly_distribution=[0] * 7,
            average_distance=0,
            this_week_check_ins=0,
        )

    df = add_temporal_features(checkins_to_dataframe(check_ins), tz_name)

    # sort=False keeps first-seen order so idxmax breaks ties by first appearance
    visits = df.groupby("location_id", sort=False).size()
    top_id = visits.idxmax()
    most_visited = (lookup(top_id), int(visits[top_id]))

    recent = [_enrich(c, lookup, tz_name) for c in _most_recent(check_ins)[:Config.RECENT_PERSONAL_LIMIT]]

    distances = df["distance_meters"].dropna()
    average_distance = round_half_up(float(distances.mean())) if len(distances) else 0

    this_week = len(filter_window(df, now, Config.WEEK_DAYS * DAY_MS))

    snapshot = PersonalSnapshot(
        total_check_ins=len(df),
        unique_locations=int(df["location_id"].nunique()),
        most_visited=most_visited,
        recent_check_ins=recent,
        hourly_distribution=count_by(df["hour"], 24),
        weekly_distribution=count_by(df["day_of_week"], 7),
        average_distance=average_distance,
        this_week_check_ins=this_week,
    )

    logger.info(
        f"Personal analytics: {snapshot.total_check_ins} check-ins at "
        f"{snapshot.unique_locations} gyms, {snapshot.this_week_check_ins} this week"
    )
    return snapshot


def _peak_hours(hours: pd.Series) -> List[PeakHour]:
    counts = hours.value_counts()
    ranked = sorted(
        ((int(hour), int(count)) for hour, count in counts.items() if count > 0),
        key=lambda item: (-item[1], item[0]),
    )
    return [PeakHour(hour=hour, count=count) for hour, count in ranked[:Config.PEAK_HOURS_LIMIT]]


def analyze_community(
    check_ins: Iterable[CheckIn],
    lookup: LocationLookup,
    now: Optional[int] = None,
    tz_name: str = Config.TIMEZONE,
) -> CommunitySnapshot:
    """
    Summarize check-ins from all users over the last 24 hours.

    Per location it reports the 24-hour count, the 15-minute count and the
    occupancy implied by the 15-minute count. Unresolved locations are
    dropped from every per-location view.

    Args:
        check_ins: Check-ins from all users
        lookup: Location lookup by id
        now: Reference time in epoch ms (defaults to wall clock)
        tz_name: Timezone for peak-hour bucketing

    Returns:
        CommunitySnapshot
    """
    if now is None:
        now = now_ms()

    check_ins = list(check_ins)
    window_ms = Config.COMMUNITY_WINDOW_HOURS * 60 * MINUTE_MS
    in_window = [c for c in check_ins if now - c.timestamp <= window_ms]

    if not in_window:
        logger.info("No community check-ins in the last 24 hours")
        return CommunitySnapshot(
            total_community_check_ins=0,
            gyms_with_activity=[],
            most_popular_gym=None,
            top_gyms=[],
            recent_community_activity=[],
            peak_hours=[],
        )

    day = add_temporal_features(checkins_to_dataframe(in_window), tz_name)
    last_24h = day.groupby("location_id", sort=False).size()
    recent = filter_window(day, now, Config.RECENT_WINDOW_MINUTES * MINUTE_MS).groupby("location_id").size()

    gyms_with_activity = []
    for location_id, count in last_24h.items():
        location = lookup(location_id)
        if location is None:
            logger.debug(f"Dropping unresolved location {location_id} from community view")
            continue
        recent_count = int(recent.get(location_id, 0))
        gyms_with_activity.append(
            GymActivity(
                location=location,
                last_24_hours_check_ins=int(count),
                recent_check_ins=recent_count,
                estimated_occupancy=estimate_occupancy_percentage(recent_count, location_capacity(location)),
            )
        )

    most_popular = max(gyms_with_activity, key=lambda g: g.recent_check_ins) if gyms_with_activity else None
    top_gyms = sorted(gyms_with_activity, key=lambda g: g.last_24_hours_check_ins, reverse=True)[:Config.TOP_GYMS_LIMIT]

    activity = []
    for check_in in _most_recent(in_window):
        enriched = _enrich(check_in, lookup, tz_name)
        if enriched.location is None:
            continue
        activity.append(enriched)
        if len(activity) == Config.RECENT_COMMUNITY_LIMIT:
            break

    snapshot = CommunitySnapshot(
        total_community_check_ins=len(day),
        gyms_with_activity=gyms_with_activity,
        most_popular_gym=most_popular,
        top_gyms=top_gyms,
        recent_community_activity=activity,
        peak_hours=_peak_hours(day["hour"]),
    )

    logger.info(
        f"Community analytics: {snapshot.total_community_check_ins} check-ins across "
        f"{len(gyms_with_activity)} active gyms"
    )
    return snapshot


def export_partnership_data(
    community: CommunitySnapshot,
    check_ins: Iterable[CheckIn],
    lookup: LocationLookup,
    now: Optional[int] = None,
) -> Dict:
    """
    Build the anonymized per-location export document.

    Only aggregate counts are included: no user ids, no timestamps.

    Args:
        community: Community snapshot computed from the same check-ins
        check_ins: Check-ins from all users
        lookup: Location lookup by id
        now: Reference time in epoch ms (defaults to wall clock)

    Returns:
        JSON-serializable dict with summary and insights
    """
    if now is None:
        now = now_ms()

    df = checkins_to_dataframe(check_ins)
    activity = {entry.location.id: entry for entry in community.gyms_with_activity}

    totals = df.groupby("location_id", sort=False).size()
    unique_users = df.groupby("location_id", sort=False)["user_id"].nunique()

    insights = []
    for location_id, total in totals.items():
        location = lookup(location_id)
        if location is None:
            continue
        entry = activity.get(location_id)
        estimated = entry.estimated_occupancy if entry is not None else estimate_occupancy_percentage(
            0, location_capacity(location)
        )
        insights.append({
            "gymId": location.id,
            "gymName": location.name,
            "brand": location.brand,
            "city": location.city,
            "province": location.province,
            "metrics": {
                "totalCheckIns": int(total),
                "uniqueUsers": int(unique_users[location_id]),
                "estimatedOccupancy": int(estimated),
            },
        })

    insights.sort(key=lambda item: item["metrics"]["totalCheckIns"], reverse=True)

    document = {
        "generatedAt": iso_timestamp(now),
        "summary": {
            "totalActiveUsers": int(df["user_id"].nunique()),
            "totalCheckIns": int(len(df)),
            "gymsWithActivity": len(community.gyms_with_activity),
            "peakHours": [{"hour": p.hour, "count": p.count} for p in community.peak_hours],
        },
        "insights": insights,
    }

    logger.info(
        f"Partnership export: {document['summary']['totalActiveUsers']} users, "
        f"{len(insights)} gyms"
    )
    return document


def write_export_json(document: Dict, out_path: str) -> None:
    """Write an export document to disk as JSON."""
    p = Path(out_path)
    with p.open("w", encoding="utf-8") as f:
        json.dump(document, f, indent=2)
    logger.info(f"Wrote partnership export to {p}")
