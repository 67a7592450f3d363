"""
Check-in submission.

Holds the session's check-in collection and validates new check-ins
against the cooldown and the gym geofence.
"""

import logging
import math
import threading
from dataclasses import dataclass
from typing import Optional, Tuple

from gympulse.aggregation import round_half_up
from gympulse.config import Config
from gympulse.directory import LocationDirectory
from gympulse.feature_engineering import MINUTE_MS, now_ms
from gympulse.geo import haversine_m, is_within_radius
from gympulse.models import CheckIn, Coordinates, Location
from gympulse.storage import KeyValueStorage, get_or_create_user_id, load_check_ins, save_check_ins

logger = logging.getLogger(__name__)

PERMISSION_DENIED = "permission-denied"
POSITION_UNAVAILABLE = "position-unavailable"
TIMEOUT = "timeout"

GEOLOCATION_MESSAGES = {
    PERMISSION_DENIED: "Location permission denied. Enable location access to check in.",
    POSITION_UNAVAILABLE: "Location information is unavailable. Try again in a moment.",
    TIMEOUT: "Location request timed out. Please try again.",
}


class GeolocationError(Exception):
    """Raised by a geolocation provider when no position can be obtained."""

    def __init__(self, reason: str):
        if reason not in GEOLOCATION_MESSAGES:
            raise ValueError(f"Unknown geolocation failure reason: {reason!r}")
        self.reason = reason
        super().__init__(GEOLOCATION_MESSAGES[reason])

    @property
    def message(self) -> str:
        return GEOLOCATION_MESSAGES[self.reason]


class GeolocationProvider:
    """Interface for the device position lookup."""

    def get_current_position(self) -> Coordinates:
        raise NotImplementedError


class StaticGeolocation(GeolocationProvider):
    """Reports a fixed position, or fails with a fixed reason."""

    def __init__(self, position: Optional[Coordinates] = None, failure: Optional[str] = None):
        self.position = position
        self.failure = failure

    def get_current_position(self) -> Coordinates:
        if self.failure is not None:
            raise GeolocationError(self.failure)
        if self.position is None:
            raise GeolocationError(POSITION_UNAVAILABLE)
        return self.position


@dataclass(frozen=True)
class CheckInResult:
    accepted: bool
    message: str
    check_in: Optional[CheckIn] = None
    distance_meters: Optional[float] = None
    minutes_remaining: Optional[int] = None


class CheckInStore:
    """
    Session-scoped check-in collection.

    The collection is an immutable tuple replaced on every append, so readers
    always see a complete snapshot.
    """

    def __init__(self, storage: KeyValueStorage, now: Optional[int] = None):
        self._storage = storage
        self._lock = threading.Lock()
        self._check_ins: Tuple[CheckIn, ...] = tuple(load_check_ins(storage, now))
        self.user_id = get_or_create_user_id(storage)

        logger.info(f"Loaded {len(self._check_ins)} check-ins for {self.user_id}")

    @property
    def check_ins(self) -> Tuple[CheckIn, ...]:
        return self._check_ins

    def user_check_ins(self) -> Tuple[CheckIn, ...]:
        return tuple(c for c in self._check_ins if c.user_id == self.user_id)

    def append(self, check_in: CheckIn) -> None:
        with self._lock:
            self._append_locked(check_in)

    def append_unless_recent(self, check_in: CheckIn, cooldown_ms: int) -> Optional[CheckIn]:
        """
        Append unless this client checked in at the same location within
        `cooldown_ms` of the new check-in.

        The cooldown check and the append happen under one lock.

        Returns:
            The blocking check-in, or None if the new one was appended
        """
        with self._lock:
            last = self.last_check_in_at(check_in.location_id)
            if last is not None and check_in.timestamp - last.timestamp < cooldown_ms:
                return last
            self._append_locked(check_in)
            return None

    def _append_locked(self, check_in: CheckIn) -> None:
        updated = self._check_ins + (check_in,)
        save_check_ins(self._storage, list(updated))
        self._check_ins = updated

    def last_check_in_at(self, location_id: str) -> Optional[CheckIn]:
        """Most recent check-in by this client at a location."""
        mine = [c for c in self._check_ins if c.user_id == self.user_id and c.location_id == location_id]
        if not mine:
            return None
        return max(mine, key=lambda c: c.timestamp)


def _reject(message: str, **kwargs) -> CheckInResult:
    logger.info(f"Check-in rejected: {message}")
    return CheckInResult(accepted=False, message=message, **kwargs)


def _reject_cooldown(location: Location, last: CheckIn, now: int, cooldown_ms: int) -> CheckInResult:
    minutes_left = math.ceil((cooldown_ms - (now - last.timestamp)) / MINUTE_MS)
    unit = "minute" if minutes_left == 1 else "minutes"
    return _reject(
        f"You already checked in at {location.name}. Try again in {minutes_left} {unit}.",
        minutes_remaining=minutes_left,
    )


def submit_check_in(
    location_id: str,
    store: CheckInStore,
    directory: LocationDirectory,
    geolocation: GeolocationProvider,
    now: Optional[int] = None,
) -> CheckInResult:
    """
    Validate and record a check-in.

    Rejections (returned, not raised):
    - unknown location
    - a check-in at the same location within the last 60 minutes
    - geolocation failure
    - more than 200 m from the gym

    Args:
        location_id: Gym to check into
        store: Session check-in store (appended to on success)
        directory: Location lookup
        geolocation: Device position provider
        now: Reference time in epoch ms (defaults to wall clock)

    Returns:
        CheckInResult with a user-facing message
    """
    if now is None:
        now = now_ms()

    location = directory.get_location_by_id(location_id)
    if location is None:
        return _reject("Gym not found. Pick a gym from the list and try again.")

    last = store.last_check_in_at(location_id)
    cooldown_ms = Config.CHECK_IN_COOLDOWN_MINUTES * MINUTE_MS
    if last is not None and now - last.timestamp < cooldown_ms:
        return _reject_cooldown(location, last, now, cooldown_ms)

    try:
        position = geolocation.get_current_position()
    except GeolocationError as e:
        return _reject(e.message)

    distance = haversine_m(position.lat, position.lng, location.coordinates.lat, location.coordinates.lng)
    if not math.isfinite(distance):
        return _reject(GEOLOCATION_MESSAGES[POSITION_UNAVAILABLE])

    if not is_within_radius(distance, Config.CHECK_IN_RADIUS_METERS):
        return _reject(
            f"You are {round_half_up(distance)}m away from {location.name}. "
            f"Move within {int(Config.CHECK_IN_RADIUS_METERS)}m to check in.",
            distance_meters=distance,
        )

    check_in = CheckIn(
        location_id=location_id,
        user_id=store.user_id,
        timestamp=now,
        distance_meters=round_half_up(distance),
    )
    # Another submission may have landed while the position was resolving
    blocking = store.append_unless_recent(check_in, cooldown_ms)
    if blocking is not None:
        return _reject_cooldown(location, blocking, now, cooldown_ms)

    logger.info(f"Checked in {store.user_id} at {location_id} ({check_in.distance_meters}m)")
    return CheckInResult(
        accepted=True,
        message=f"Checked in at {location.name}!",
        check_in=check_in,
        distance_meters=distance,
    )
