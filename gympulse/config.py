"""
Configuration management for the occupancy dashboard.

Loads environment variables and holds the constants shared by every engine.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Configuration class for the occupancy dashboard."""

    # Supabase credentials (optional, only needed for the hosted directory/check-ins)
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_ANON_KEY: str = os.getenv("SUPABASE_ANON_KEY", "")

    # Client settings
    TIMEZONE: str = os.getenv("GYMPULSE_TIMEZONE", "America/Toronto")
    STORAGE_PATH: str = os.getenv("GYMPULSE_STORAGE_PATH", "gympulse_storage.json")
    PREMIUM: bool = _env_flag("GYMPULSE_PREMIUM")

    # Occupancy levels
    LEVEL_MODERATE_THRESHOLD: int = 35  # percentage at which Low becomes Moderate
    LEVEL_HIGH_THRESHOLD: int = 75  # percentage at which Moderate becomes High
    CONFIDENCE_MEDIUM_THRESHOLD: int = 60
    CONFIDENCE_HIGH_THRESHOLD: int = 80
    STALE_AFTER_MINUTES: int = 5

    # Synthetic baseline
    SYNTHETIC_PEAK_CAPACITY: int = 120  # assumed peak headcount when no real capacity is known
    SYNTHETIC_CONFIDENCE_MIN: int = 55
    SYNTHETIC_CONFIDENCE_MAX: int = 95  # exclusive

    # Check-in signal
    CHECK_IN_ADOPTION_RATE: float = 0.30  # share of attendees assumed to check in through the app
    RECENT_WINDOW_MINUTES: int = 15
    DEFAULT_CAPACITY: int = 100
    BLEND_REAL_WEIGHT: float = 0.4
    BLEND_SYNTHETIC_WEIGHT: float = 0.6
    REAL_DATA_CONFIDENCE_BOOST: int = 15

    # Location heuristics: (location field, substring, percentage bump)
    LOCATION_BUMPS = (
        ("brand", "Anytime", 5),
        ("name", "Downtown", 10),
    )

    # Check-in rules
    CHECK_IN_RADIUS_METERS: float = 200.0
    CHECK_IN_COOLDOWN_MINUTES: int = 60
    RETENTION_HOURS: int = 24

    # Analytics windows
    COMMUNITY_WINDOW_HOURS: int = 24
    WEEK_DAYS: int = 7
    RECENT_PERSONAL_LIMIT: int = 10
    RECENT_COMMUNITY_LIMIT: int = 20
    TOP_GYMS_LIMIT: int = 5
    PEAK_HOURS_LIMIT: int = 3
    WEEKLY_CHECK_IN_TARGET: int = 4  # check-ins per week that earn the full frequency score

    # Forecasts
    TREND_HOURS: int = 24
    PREDICTION_HOURS: int = 12
    RIDGE_ALPHA: float = 1.0

    # Refresh loop
    REFRESH_INTERVAL_SECONDS: float = 30.0
    SIMULATED_DELAY_SECONDS: float = 0.45
    SIMULATED_FAILURE_RATE: float = 0.04

    @classmethod
    def is_supabase_configured(cls) -> bool:
        """Return True when hosted database credentials look usable."""
        return bool(cls.SUPABASE_URL) and len(cls.SUPABASE_ANON_KEY) > 10

    @classmethod
    def validate(cls) -> None:
        """
        Validate that the Supabase configuration is present.

        Raises:
            ValueError: If required configuration is missing.
        """
        missing = []

        if not cls.SUPABASE_URL:
            missing.append("SUPABASE_URL")
        if not cls.SUPABASE_ANON_KEY:
            missing.append("SUPABASE_ANON_KEY")

        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}. "
                f"Please create a .env file with these values (see .env.example)."
            )
