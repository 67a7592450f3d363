"""
Live occupancy readings.

Synthesizes a baseline reading, blends it with the check-in signal and
applies location heuristics matched on brand and display name.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional, Union

from gympulse.aggregation import aggregate_check_ins, location_capacity, round_half_up
from gympulse.config import Config
from gympulse.feature_engineering import MINUTE_MS, now_ms
from gympulse.models import CheckIn, LiveOccupancyReading, Location, OccupancyBaseline
from gympulse.signals import SignalSource

logger = logging.getLogger(__name__)

LEVEL_LOW = "Low"
LEVEL_MODERATE = "Moderate"
LEVEL_HIGH = "High"

UNKNOWN_GYM_NAME = "Unknown Gym"


def derive_level(percentage: float) -> str:
    """
    Map an occupancy percentage to a level.

    - Low: percentage < 35
    - Moderate: 35 <= percentage < 75
    - High: percentage >= 75
    """
    if percentage < Config.LEVEL_MODERATE_THRESHOLD:
        return LEVEL_LOW
    if percentage < Config.LEVEL_HIGH_THRESHOLD:
        return LEVEL_MODERATE
    return LEVEL_HIGH


def confidence_label(confidence: float) -> str:
    if confidence >= Config.CONFIDENCE_HIGH_THRESHOLD:
        return "High confidence"
    if confidence >= Config.CONFIDENCE_MEDIUM_THRESHOLD:
        return "Medium confidence"
    return "Low confidence"


def _to_epoch_ms(value: Union[str, datetime, int, float]) -> int:
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def is_stale(
    last_updated_at: Union[str, datetime, int, float],
    threshold_minutes: float = Config.STALE_AFTER_MINUTES,
    now: Optional[int] = None,
) -> bool:
    """
    Check whether a reading is older than the staleness threshold.

    Args:
        last_updated_at: ISO-8601 string, datetime or epoch ms
        threshold_minutes: Age in minutes after which data is stale
        now: Reference time in epoch ms (defaults to wall clock)

    Returns:
        True iff now - last_updated_at > threshold
    """
    if now is None:
        now = now_ms()
    return now - _to_epoch_ms(last_updated_at) > threshold_minutes * MINUTE_MS


def iso_timestamp(epoch_ms: int) -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    dt = datetime.fromtimestamp(epoch_ms / 1000.0, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def synthesize_occupancy(signal: SignalSource, now: Optional[int] = None) -> OccupancyBaseline:
    """
    Produce a synthetic baseline reading standing in for a sensor feed.

    Args:
        signal: Source of the random draws
        now: Reference time in epoch ms (defaults to wall clock)

    Returns:
        OccupancyBaseline with percentage in [0, 100) and confidence in [55, 95)
    """
    if now is None:
        now = now_ms()

    percentage = signal.integer(0, 100)
    estimated_headcount = round_half_up(percentage / 100 * Config.SYNTHETIC_PEAK_CAPACITY)
    confidence = min(100, max(0, signal.integer(Config.SYNTHETIC_CONFIDENCE_MIN, Config.SYNTHETIC_CONFIDENCE_MAX)))

    return OccupancyBaseline(
        percentage=percentage,
        estimated_headcount=estimated_headcount,
        level=derive_level(percentage),
        confidence=confidence,
        last_updated_at=iso_timestamp(now),
    )


def location_bump(location: Optional[Location]) -> int:
    """
    Total percentage bump for a location from the brand/name heuristics.

    Matching rules:
    - brand contains "Anytime" -> +5
    - name contains "Downtown" -> +10

    Args:
        location: Resolved location (None when the lookup failed)

    Returns:
        Sum of matching bumps, 0 for unknown locations
    """
    if location is None:
        return 0

    bump = 0
    for field_name, pattern, amount in Config.LOCATION_BUMPS:
        value = str(getattr(location, field_name, "") or "")
        if pattern in value:
            logger.debug(f"Matched {location.id} {field_name} '{value}' to '{pattern}': +{amount}")
            bump += amount
    return bump


def blend_occupancy(
    location_id: str,
    check_ins: Iterable[CheckIn],
    location: Optional[Location],
    signal: SignalSource,
    now: Optional[int] = None,
) -> LiveOccupancyReading:
    """
    Build the live reading for one location.

    Steps:
    1. Synthetic baseline
    2. If recent check-ins exist, blend 40% check-in signal with 60% baseline
       and raise confidence by 15
    3. Location heuristics, capped at 100
    4. Level derived from the final percentage

    An unresolved location gets a placeholder name and no heuristics.

    Args:
        location_id: Location being displayed
        check_ins: All held check-ins
        location: Resolved location, or None when the lookup failed
        signal: Source of synthetic draws
        now: Reference time in epoch ms (defaults to wall clock)

    Returns:
        LiveOccupancyReading
    """
    if now is None:
        now = now_ms()

    baseline = synthesize_occupancy(signal, now)
    aggregate = aggregate_check_ins(location_id, check_ins, location, now)
    capacity = location_capacity(location)

    percentage = baseline.percentage
    confidence = baseline.confidence

    if aggregate.has_real_data:
        percentage = round_half_up(
            Config.BLEND_REAL_WEIGHT * aggregate.adjusted_percentage
            + Config.BLEND_SYNTHETIC_WEIGHT * baseline.percentage
        )
        confidence = min(100, confidence + Config.REAL_DATA_CONFIDENCE_BOOST)

    if location is None:
        logger.warning(f"Location {location_id} not found, showing placeholder reading")
    else:
        percentage = min(100, percentage + location_bump(location))

    reading = LiveOccupancyReading(
        percentage=percentage,
        level=derive_level(percentage),
        estimated_headcount=baseline.estimated_headcount,
        confidence=confidence,
        check_in_count=aggregate.check_in_count,
        estimated_actual_count=aggregate.estimated_actual_count,
        capacity=capacity,
        last_updated_at=baseline.last_updated_at,
        gym_name=location.name if location is not None else UNKNOWN_GYM_NAME,
        gym_id=location_id,
    )

    logger.info(
        f"Live reading for {location_id}: {reading.percentage}% ({reading.level}), "
        f"confidence {reading.confidence}, check-ins {reading.check_in_count}"
    )
    return reading
