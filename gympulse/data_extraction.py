"""
Data extraction from Supabase tables.

Pulls gyms and check-ins with column validation and converts rows to records.
"""

import logging
from typing import List

import pandas as pd
from supabase import Client

from gympulse.config import Config
from gympulse.database import get_supabase_client, query_recent_check_ins, query_table_to_dataframe
from gympulse.directory import LocationDirectory
from gympulse.models import CheckIn, Coordinates, Location

logger = logging.getLogger(__name__)


# Required columns for each table
REQUIRED_COLUMNS = {
    "gyms": ["id", "name", "brand", "city", "province", "latitude", "longitude"],
    "check_ins": ["gym_id", "user_id", "timestamp"],
}


def validate_columns(df: pd.DataFrame, table_name: str) -> None:
    """
    Validate that DataFrame contains all required columns.

    Args:
        df: DataFrame to validate
        table_name: Name of the table (for error messages)

    Raises:
        ValueError: If required columns are missing
    """
    if table_name not in REQUIRED_COLUMNS:
        logger.warning(f"No required columns defined for {table_name}, skipping validation")
        return

    # An empty result carries no columns at all
    if df.empty and len(df.columns) == 0:
        logger.info(f"Table {table_name} returned no rows")
        return

    required = REQUIRED_COLUMNS[table_name]
    missing = [col for col in required if col not in df.columns]

    if missing:
        raise ValueError(
            f"Table {table_name} is missing required columns: {', '.join(missing)}. "
            f"Found columns: {', '.join(df.columns)}"
        )

    logger.info(f"Table {table_name} validation passed ({len(df)} rows)")


def locations_from_dataframe(df: pd.DataFrame) -> List[Location]:
    """
    Convert gyms rows to Location records.

    Missing or non-positive capacities fall back to the default capacity.
    """
    validate_columns(df, "gyms")
    if df.empty:
        return []

    locations = []
    for row in df.to_dict("records"):
        capacity = row.get("capacity")
        if capacity is None or pd.isna(capacity) or capacity <= 0:
            capacity = Config.DEFAULT_CAPACITY
        locations.append(
            Location(
                id=str(row["id"]),
                name=str(row["name"]),
                brand=str(row["brand"]),
                city=str(row["city"]),
                province=str(row["province"]),
                coordinates=Coordinates(lat=float(row["latitude"]), lng=float(row["longitude"])),
                capacity=int(capacity),
                address=str(row.get("address") or ""),
            )
        )
    return locations


def check_ins_from_dataframe(df: pd.DataFrame) -> List[CheckIn]:
    """
    Convert check_ins rows to CheckIn records, oldest first.

    Timestamps are parsed as ISO-8601 and converted to epoch milliseconds.
    """
    validate_columns(df, "check_ins")
    if df.empty:
        return []

    df = df.copy()
    # Fractional second precision varies between rows
    timestamps = pd.to_datetime(df["timestamp"], utc=True, format="ISO8601")
    df["timestamp_ms"] = (timestamps - pd.Timestamp("1970-01-01", tz="UTC")) // pd.Timedelta(milliseconds=1)
    df = df.sort_values("timestamp_ms", kind="stable")

    if "distance_meters" not in df.columns:
        df["distance_meters"] = None

    check_ins = []
    for row in df.to_dict("records"):
        distance = row.get("distance_meters")
        check_ins.append(
            CheckIn(
                location_id=str(row["gym_id"]),
                user_id=str(row["user_id"]),
                timestamp=int(row["timestamp_ms"]),
                distance_meters=None if distance is None or pd.isna(distance) else int(distance),
            )
        )
    return check_ins


def extract_directory(client: Client) -> LocationDirectory:
    """
    Build the location directory from the gyms table.

    Args:
        client: Supabase client

    Returns:
        LocationDirectory
    """
    logger.info("Extracting gyms")
    df = query_table_to_dataframe(client, "gyms")
    return LocationDirectory(locations_from_dataframe(df))


def extract_check_ins(client: Client) -> List[CheckIn]:
    """
    Extract community check-ins from the retention window.

    Args:
        client: Supabase client

    Returns:
        Check-ins oldest first
    """
    logger.info("Extracting recent check-ins")
    df = query_recent_check_ins(client, hours_back=Config.RETENTION_HOURS)
    return check_ins_from_dataframe(df)


def extract_all_data(client: Client = None) -> dict:
    """
    Extract all hosted data.

    Args:
        client: Optional Supabase client (creates new one if not provided)

    Returns:
        Dictionary containing:
        - directory: LocationDirectory from gyms
        - check_ins: List of CheckIn from check_ins
    """
    if client is None:
        client = get_supabase_client()

    data = {
        "directory": extract_directory(client),
        "check_ins": extract_check_ins(client),
    }

    logger.info("All data extraction completed successfully")
    return data
