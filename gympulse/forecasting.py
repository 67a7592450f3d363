"""
Forecasts for the dashboard.

Builds the 24-hour trend, the 12-hour prediction series, the weekly heatmap,
the best-visit recommendation and the premium weekly forecast.
"""

import logging
import math
from typing import Iterable, List, Optional

import numpy as np
import pandas as pd

from gympulse.aggregation import (
    estimate_occupancy_percentage,
    location_capacity,
    round_half_up,
    round_half_up_tenths,
)
from gympulse.config import Config
from gympulse.feature_engineering import DAY_MS, HOUR_MS, local_datetime, now_ms
from gympulse.model_training import build_hour_features, evaluate_model, train_ridge_model
from gympulse.models import AdvancedSnapshot, CheckIn, Location, PersonalSnapshot, PredictionPoint, TrendPoint
from gympulse.signals import SignalSource

logger = logging.getLogger(__name__)

HEATMAP_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
HEATMAP_SLOTS = ["6a", "9a", "12p", "3p", "6p", "9p"]

NO_FORECAST_TEXT = "No forecast available yet"


def _clamp(value: int, low: int, high: int) -> int:
    return min(high, max(low, value))


def format_hour(epoch_ms: int, tz_name: str) -> str:
    return local_datetime(epoch_ms, tz_name).strftime("%H:00")


def generate_trend_data(
    signal: SignalSource,
    now: Optional[int] = None,
    tz_name: str = Config.TIMEZONE,
) -> List[TrendPoint]:
    """
    Hourly occupancy for the last 24 hours, oldest first.

    Args:
        signal: Source of the synthetic readings
        now: Reference time in epoch ms (defaults to wall clock)
        tz_name: Timezone for hour labels

    Returns:
        24 TrendPoints ending at the current hour
    """
    if now is None:
        now = now_ms()

    points = []
    for index in range(Config.TREND_HOURS):
        timestamp = now - (Config.TREND_HOURS - 1 - index) * HOUR_MS
        points.append(
            TrendPoint(
                time=format_hour(timestamp, tz_name),
                timestamp=timestamp,
                occupancy=signal.integer(0, 100),
            )
        )
    return points


def check_in_trend(
    location_id: str,
    check_ins: Iterable[CheckIn],
    location: Optional[Location] = None,
    now: Optional[int] = None,
    tz_name: str = Config.TIMEZONE,
) -> List[TrendPoint]:
    """
    Hourly occupancy implied by recorded check-ins over the last 24 hours.

    Each point covers the hour ending at its timestamp and converts that
    hour's check-in count with the adoption rate and the location capacity.

    Args:
        location_id: Location to build the history for
        check_ins: All held check-ins
        location: Resolved location (for capacity), if known
        now: Reference time in epoch ms (defaults to wall clock)
        tz_name: Timezone for hour labels

    Returns:
        24 TrendPoints ending at the current hour, or an empty list when the
        location has no check-ins in that span
    """
    if now is None:
        now = now_ms()

    start = now - Config.TREND_HOURS * HOUR_MS
    timestamps = [
        c.timestamp for c in check_ins
        if c.location_id == location_id and start < c.timestamp <= now
    ]
    if not timestamps:
        return []

    capacity = location_capacity(location)
    points = []
    for index in range(Config.TREND_HOURS):
        end = now - (Config.TREND_HOURS - 1 - index) * HOUR_MS
        count = sum(1 for ts in timestamps if end - HOUR_MS < ts <= end)
        points.append(
            TrendPoint(
                time=format_hour(end, tz_name),
                timestamp=end,
                occupancy=estimate_occupancy_percentage(count, capacity),
            )
        )

    logger.info(f"Built check-in history for {location_id} from {len(timestamps)} check-ins")
    return points


def _fit_predictions(trend: List[TrendPoint], timestamps: List[int], tz_name: str) -> List[int]:
    history_hours = [local_datetime(p.timestamp, tz_name).hour for p in trend]
    X = build_hour_features(history_hours)
    y = pd.Series([p.occupancy for p in trend], dtype=float)

    model = train_ridge_model(X, y, alpha=Config.RIDGE_ALPHA)
    evaluate_model(model, X, y)

    future_hours = [local_datetime(ts, tz_name).hour for ts in timestamps]
    predictions = np.clip(model.predict(build_hour_features(future_hours)), 0, 100)
    return [round_half_up(float(value)) for value in predictions]


def generate_prediction_data(
    signal: SignalSource,
    trend: Optional[List[TrendPoint]] = None,
    now: Optional[int] = None,
    tz_name: str = Config.TIMEZONE,
) -> List[PredictionPoint]:
    """
    Predicted occupancy for the next 12 hours.

    With a trend history the predictions come from a Ridge fit on hour of
    day; without one they are drawn from the signal source. Each point gets a
    spread in [8, 26) for its bounds and is flagged as a peak window when the
    prediction reaches the High threshold.

    Args:
        signal: Source of synthetic draws
        trend: Optional recent hourly history
        now: Reference time in epoch ms (defaults to wall clock)
        tz_name: Timezone for hour labels

    Returns:
        12 PredictionPoints starting at the current hour
    """
    if now is None:
        now = now_ms()

    timestamps = [now + index * HOUR_MS for index in range(Config.PREDICTION_HOURS)]
    fitted = _fit_predictions(trend, timestamps, tz_name) if trend else None

    points = []
    for index, timestamp in enumerate(timestamps):
        predicted = fitted[index] if fitted is not None else signal.integer(0, 100)
        spread = signal.integer(8, 26)
        points.append(
            PredictionPoint(
                time=format_hour(timestamp, tz_name),
                predicted=predicted,
                lower_bound=_clamp(predicted - spread, 0, 100),
                upper_bound=_clamp(predicted + spread, 0, 100),
                peak_window=predicted >= Config.LEVEL_HIGH_THRESHOLD,
            )
        )

    peaks = sum(1 for p in points if p.peak_window)
    logger.info(f"Generated {len(points)} hourly predictions ({peaks} peak windows)")
    return points


def get_best_visit_window(predictions: List[PredictionPoint]) -> str:
    """
    Recommend the quietest slot, spanning into the following slot's label.

    Ties go to the earliest slot.
    """
    if not predictions:
        return NO_FORECAST_TEXT

    best_index = min(range(len(predictions)), key=lambda i: predictions[i].predicted)
    start = predictions[best_index].time
    if best_index + 1 < len(predictions):
        return f"Best time to go: {start}–{predictions[best_index + 1].time}"
    return f"Best time to go: {start}"


def generate_weekly_heatmap(signal: SignalSource) -> List[dict]:
    """Typical occupancy per weekday and time slot, Monday first."""
    rows = []
    for day_index, day in enumerate(HEATMAP_DAYS):
        row = {"day": day}
        for slot_index, slot in enumerate(HEATMAP_SLOTS):
            base = 20 + ((day_index + slot_index) % 5) * 15
            row[slot] = _clamp(base + signal.integer(0, 25), 0, 100)
        rows.append(row)
    return rows


def consistency_score(this_week_check_ins: int, weekly_distribution: List[int]) -> int:
    """
    Score (0-100) for how steadily a member trains.

    70 points scale with this week's check-ins up to the weekly target;
    30 points scale with the number of weekdays ever trained on.
    """
    frequency = min(1.0, this_week_check_ins / Config.WEEKLY_CHECK_IN_TARGET)
    active_days = sum(1 for count in weekly_distribution if count > 0)
    score = round_half_up(70 * frequency + 30 * active_days / 7)
    return _clamp(score, 0, 100)


def _weeks_observed(check_ins: List[CheckIn]) -> int:
    if not check_ins:
        return 1
    timestamps = [c.timestamp for c in check_ins]
    span = max(timestamps) - min(timestamps)
    return max(1, math.ceil(span / (Config.WEEK_DAYS * DAY_MS)))


def analyze_advanced(personal: PersonalSnapshot, check_ins: Iterable[CheckIn]) -> AdvancedSnapshot:
    """
    Premium analytics derived from a personal snapshot.

    Callers are responsible for checking the premium entitlement.

    Args:
        personal: Personal analytics for the member
        check_ins: The same check-ins the snapshot was computed from

    Returns:
        AdvancedSnapshot with a weekday forecast (Sunday first)
    """
    check_ins = list(check_ins)
    score = consistency_score(personal.this_week_check_ins, personal.weekly_distribution)
    stretch_goal = min(100, round_half_up(score * 1.25))

    weekly = np.asarray(personal.weekly_distribution, dtype=float)
    weeks = _weeks_observed(check_ins)
    forecast = [round_half_up_tenths(float(value)) for value in weekly / weeks]

    best_day = int(np.argmax(weekly)) if personal.total_check_ins > 0 else None

    logger.info(
        f"Advanced analytics: consistency {score}, stretch goal {stretch_goal}, "
        f"best day {best_day}, {weeks} week(s) observed"
    )

    return AdvancedSnapshot(
        consistency_score=score,
        stretch_goal=stretch_goal,
        forecasted_check_ins=forecast,
        best_day_of_week=best_day,
    )
