"""Record types for check-ins, locations, live readings and analytics snapshots."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from gympulse.config import Config


@dataclass(frozen=True)
class Coordinates:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float


@dataclass(frozen=True)
class CheckIn:
    """A single user-submitted presence event.

    Attributes:
        location_id: Identifier of the gym checked into.
        user_id: Pseudo-anonymous per-client identifier.
        timestamp: Unix epoch milliseconds at submission time.
        distance_meters: Rounded distance from the gym at submission time, if known.
    """

    location_id: str
    user_id: str
    timestamp: int
    distance_meters: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "locationId": self.location_id,
            "userId": self.user_id,
            "timestamp": self.timestamp,
            "distanceMeters": self.distance_meters,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CheckIn":
        distance = data.get("distanceMeters")
        return cls(
            location_id=str(data["locationId"]),
            user_id=str(data["userId"]),
            timestamp=int(data["timestamp"]),
            distance_meters=int(distance) if distance is not None else None,
        )


@dataclass(frozen=True)
class Location:
    """Static reference data for a gym, supplied by the directory."""

    id: str
    name: str
    brand: str
    city: str
    province: str
    coordinates: Coordinates
    capacity: int = Config.DEFAULT_CAPACITY
    address: str = ""


@dataclass(frozen=True)
class OccupancyBaseline:
    """Synthetic reading produced when no real signal is available."""

    percentage: int
    estimated_headcount: int
    level: str
    confidence: int
    last_updated_at: str


@dataclass(frozen=True)
class CheckInAggregate:
    """Check-in signal for one location over the recent window."""

    has_real_data: bool
    check_in_count: int
    adjusted_percentage: Optional[int] = None
    estimated_actual_count: Optional[int] = None


@dataclass(frozen=True)
class LiveOccupancyReading:
    """Displayed live reading, rebuilt on every refresh."""

    percentage: int
    level: str
    estimated_headcount: int
    confidence: int
    check_in_count: int
    estimated_actual_count: Optional[int]
    capacity: int
    last_updated_at: str
    gym_name: str
    gym_id: str


@dataclass(frozen=True)
class EnrichedCheckIn:
    """A check-in paired with its resolved location and local date."""

    check_in: CheckIn
    location: Optional[Location]
    date: datetime


@dataclass(frozen=True)
class PersonalSnapshot:
    total_check_ins: int
    unique_locations: int
    most_visited: Optional[Tuple[Optional[Location], int]]
    recent_check_ins: List[EnrichedCheckIn]
    hourly_distribution: List[int]
    weekly_distribution: List[int]
    average_distance: int
    this_week_check_ins: int


@dataclass(frozen=True)
class GymActivity:
    """Per-location community breakdown."""

    location: Location
    last_24_hours_check_ins: int
    recent_check_ins: int
    estimated_occupancy: int


@dataclass(frozen=True)
class PeakHour:
    hour: int
    count: int


@dataclass(frozen=True)
class CommunitySnapshot:
    total_community_check_ins: int
    gyms_with_activity: List[GymActivity]
    most_popular_gym: Optional[GymActivity]
    top_gyms: List[GymActivity]
    recent_community_activity: List[EnrichedCheckIn]
    peak_hours: List[PeakHour]


@dataclass(frozen=True)
class AdvancedSnapshot:
    consistency_score: int
    stretch_goal: int
    forecasted_check_ins: List[float]
    best_day_of_week: Optional[int]


@dataclass(frozen=True)
class TrendPoint:
    time: str
    timestamp: int
    occupancy: int


@dataclass(frozen=True)
class PredictionPoint:
    time: str
    predicted: int
    lower_bound: int
    upper_bound: int
    peak_window: bool


@dataclass
class DashboardState:
    """What the dashboard shows after the latest committed refresh."""

    gym_id: str
    live: Optional[LiveOccupancyReading] = None
    trend: List[TrendPoint] = field(default_factory=list)
    predictions: List[PredictionPoint] = field(default_factory=list)
    best_visit_text: str = ""
    error: str = ""
    loading: bool = True
