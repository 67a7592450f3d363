"""
Database operations for Supabase.

Handles client initialization, table reads and check-in inserts.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pandas as pd
from supabase import create_client, Client

from gympulse.config import Config
from gympulse.models import CheckIn

logger = logging.getLogger(__name__)


def get_supabase_client() -> Client:
    """
    Initialize and return a Supabase client.

    Returns:
        Client: Initialized Supabase client

    Raises:
        ValueError: If configuration is invalid
    """
    Config.validate()

    client = create_client(Config.SUPABASE_URL, Config.SUPABASE_ANON_KEY)
    logger.info("Supabase client initialized successfully")
    return client


def query_table_to_dataframe(client: Client, table_name: str, columns: str = "*") -> pd.DataFrame:
    """
    Query a Supabase table and return as pandas DataFrame.

    Args:
        client: Supabase client
        table_name: Name of the table to query
        columns: Column names to select (default: "*" for all)

    Returns:
        DataFrame containing table data
    """
    try:
        response = client.table(table_name).select(columns).execute()
        df = pd.DataFrame(response.data)
        logger.info(f"Retrieved {len(df)} rows from {table_name}")
        return df
    except Exception as e:
        logger.error(f"Error querying table {table_name}: {e}")
        raise


def query_recent_check_ins(client: Client, hours_back: int = Config.RETENTION_HOURS) -> pd.DataFrame:
    """
    Query check_ins rows newer than `hours_back` hours, newest first.

    Args:
        client: Supabase client
        hours_back: Size of the window in hours

    Returns:
        DataFrame of check_ins rows
    """
    since = datetime.now(timezone.utc) - timedelta(hours=hours_back)
    try:
        response = (
            client.table("check_ins")
            .select("gym_id,user_id,timestamp,distance_meters")
            .gte("timestamp", since.isoformat())
            .order("timestamp", desc=True)
            .execute()
        )
        df = pd.DataFrame(response.data)
        logger.info(f"Retrieved {len(df)} check-ins from the last {hours_back}h")
        return df
    except Exception as e:
        logger.error(f"Error querying recent check-ins: {e}")
        raise


def check_in_to_record(check_in: CheckIn) -> Dict[str, Any]:
    """Convert a CheckIn to a check_ins row."""
    timestamp = datetime.fromtimestamp(check_in.timestamp / 1000.0, tz=timezone.utc)
    return {
        "gym_id": check_in.location_id,
        "user_id": check_in.user_id,
        "timestamp": timestamp.isoformat(),
        "distance_meters": check_in.distance_meters,
        "source": "user",
    }


def insert_check_ins(client: Client, check_ins: List[CheckIn]) -> None:
    """
    Insert submitted check-ins into the check_ins table.

    Args:
        client: Supabase client
        check_ins: Check-ins to insert
    """
    if not check_ins:
        logger.info("No check-ins to insert")
        return

    records = [check_in_to_record(c) for c in check_ins]
    try:
        client.table("check_ins").insert(records).execute()
        logger.info(f"Successfully inserted {len(records)} check-in records")
    except Exception as e:
        logger.error(f"Error inserting check-ins: {e}")
        raise
