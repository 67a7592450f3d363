"""
Aggregation of raw check-ins to a per-location occupancy signal.

Backs out estimated true attendance from app check-ins using the assumed
adoption rate.
"""

import logging
import math
from typing import Iterable, Optional

from gympulse.config import Config
from gympulse.feature_engineering import MINUTE_MS, now_ms
from gympulse.models import CheckIn, CheckInAggregate, Location

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def round_half_up_tenths(value: float) -> float:
    """Round to one decimal with halves going up (0.25 -> 0.3)."""
    return math.floor(value * 10 + 0.5) / 10


def location_capacity(location: Optional[Location]) -> int:
    """Capacity of a location, falling back to the default."""
    if location is None or not location.capacity:
        return Config.DEFAULT_CAPACITY
    return location.capacity


def estimate_actual_count(check_in_count: int) -> int:
    """Estimated attendees given the number of app check-ins."""
    return round_half_up(check_in_count / Config.CHECK_IN_ADOPTION_RATE)


def estimate_occupancy_percentage(check_in_count: int, capacity: int) -> int:
    """
    Occupancy percentage implied by a recent check-in count.

    Formula: min(100, round(round(count / adoption_rate) / capacity * 100))

    Args:
        check_in_count: Check-ins in the recent window
        capacity: Location capacity

    Returns:
        Percentage capped at 100
    """
    if capacity <= 0:
        capacity = Config.DEFAULT_CAPACITY
    actual = estimate_actual_count(check_in_count)
    return min(100, round_half_up(actual / capacity * 100))


def recent_check_ins_for(
    location_id: str,
    check_ins: Iterable[CheckIn],
    now: int,
    window_minutes: int = Config.RECENT_WINDOW_MINUTES,
) -> list:
    """Check-ins for one location within the last `window_minutes`."""
    window_ms = window_minutes * MINUTE_MS
    return [
        c for c in check_ins
        if c.location_id == location_id and now - c.timestamp <= window_ms
    ]


def aggregate_check_ins(
    location_id: str,
    check_ins: Iterable[CheckIn],
    location: Optional[Location] = None,
    now: Optional[int] = None,
) -> CheckInAggregate:
    """
    Aggregate the recent check-ins of one location into an occupancy estimate.

    Only check-ins from the last 15 minutes count. Assumes 30% of attendees
    check in through the app.

    Args:
        location_id: Location to aggregate
        check_ins: All held check-ins
        location: Resolved location (for capacity), if known
        now: Reference time in epoch ms (defaults to wall clock)

    Returns:
        CheckInAggregate with has_real_data False when nothing recent exists
    """
    if now is None:
        now = now_ms()

    recent = recent_check_ins_for(location_id, check_ins, now)
    count = len(recent)

    if count == 0:
        logger.debug(f"No recent check-ins for {location_id}")
        return CheckInAggregate(has_real_data=False, check_in_count=0)

    capacity = location_capacity(location)
    actual = estimate_actual_count(count)
    adjusted = min(100, round_half_up(actual / capacity * 100))

    logger.info(
        f"Aggregated {count} recent check-ins for {location_id}: "
        f"~{actual} attendees, {adjusted}% of capacity {capacity}"
    )

    return CheckInAggregate(
        has_real_data=True,
        check_in_count=count,
        adjusted_percentage=adjusted,
        estimated_actual_count=actual,
    )
