"""
Time features for check-in collections.

Converts check-in records to DataFrames and adds local hour-of-day and
day-of-week columns used by the analytics engines.
"""

import logging
import time
from datetime import datetime
from typing import Iterable
from zoneinfo import ZoneInfo

import pandas as pd

from gympulse.models import CheckIn

logger = logging.getLogger(__name__)

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

CHECK_IN_COLUMNS = ["location_id", "user_id", "timestamp", "distance_meters"]


def now_ms() -> int:
    """Current wall-clock time as Unix epoch milliseconds."""
    return int(time.time() * 1000)


def local_datetime(epoch_ms: int, tz_name: str) -> datetime:
    """Convert epoch milliseconds to a timezone-aware datetime."""
    return datetime.fromtimestamp(epoch_ms / 1000.0, tz=ZoneInfo(tz_name))


def checkins_to_dataframe(check_ins: Iterable[CheckIn]) -> pd.DataFrame:
    """
    Build a DataFrame with one row per check-in, in collection order.

    Args:
        check_ins: Check-in records

    Returns:
        DataFrame with columns location_id, user_id, timestamp, distance_meters
    """
    rows = [
        {
            "location_id": c.location_id,
            "user_id": c.user_id,
            "timestamp": c.timestamp,
            "distance_meters": c.distance_meters,
        }
        for c in check_ins
    ]
    df = pd.DataFrame(rows, columns=CHECK_IN_COLUMNS)
    df["timestamp"] = df["timestamp"].astype("int64")
    # None becomes NaN so missing distances drop out of means
    df["distance_meters"] = pd.to_numeric(df["distance_meters"], errors="coerce")
    return df


def add_temporal_features(df: pd.DataFrame, tz_name: str) -> pd.DataFrame:
    """
    Add temporal features: hour (0-23) and day_of_week (0=Sunday).

    Args:
        df: DataFrame with an epoch-millisecond timestamp column
        tz_name: IANA timezone used for local bucketing

    Returns:
        DataFrame with added temporal features
    """
    df = df.copy()

    if "timestamp" not in df.columns:
        raise ValueError("DataFrame must have timestamp column")

    local = pd.to_datetime(df["timestamp"], unit="ms", utc=True).dt.tz_convert(tz_name)
    df["hour"] = local.dt.hour.astype("int64")
    # pandas counts Monday=0; shift so Sunday=0
    df["day_of_week"] = ((local.dt.dayofweek + 1) % 7).astype("int64")

    logger.debug(f"Added temporal features for {len(df)} check-ins ({tz_name})")
    return df


def filter_window(df: pd.DataFrame, now: int, window_ms: int) -> pd.DataFrame:
    """Keep rows whose timestamp is at most `window_ms` before `now`."""
    return df[(now - df["timestamp"]) <= window_ms]


def count_by(series: pd.Series, size: int) -> list:
    """Zero-filled counts for integer buckets 0..size-1."""
    counts = series.value_counts()
    return [int(counts.get(bucket, 0)) for bucket in range(size)]
