"""
Shared fixtures: a fixed clock, in-memory storage and a small directory.
"""

import os
import sys

import pytest

# Add the repository root to path so `gympulse` imports resolve without install
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gympulse.directory import LocationDirectory
from gympulse.models import CheckIn, Coordinates, Location
from gympulse.storage import MemoryStorage, USER_ID_KEY

# 2024-03-13 12:00:00 UTC, a Wednesday
NOW = 1_710_331_200_000
MINUTE = 60 * 1000
HOUR = 60 * MINUTE
DAY = 24 * HOUR


def make_location(location_id, name="Test Gym", brand="Test Brand", capacity=100, lat=45.5, lng=-73.5):
    return Location(
        id=location_id,
        name=name,
        brand=brand,
        city="Montreal",
        province="Quebec",
        coordinates=Coordinates(lat=lat, lng=lng),
        capacity=capacity,
    )


def make_check_in(location_id, minutes_ago, user_id="user_a", distance=None, now=NOW):
    return CheckIn(
        location_id=location_id,
        user_id=user_id,
        timestamp=now - int(minutes_ago * MINUTE),
        distance_meters=distance,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def directory():
    return LocationDirectory([
        make_location("gym-a", name="Alpha Gym", brand="Plain Fitness", capacity=50),
        make_location("gym-b", name="Bravo Downtown", brand="Anytime Fitness", capacity=100),
        make_location("gym-c", name="Charlie Gym", brand="Plain Fitness", capacity=0),
    ])


@pytest.fixture
def storage():
    return MemoryStorage({USER_ID_KEY: "user_a"})
