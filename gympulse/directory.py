"""
Gym location directory.

Read-only lookups over location reference data, either the built-in
Quebec directory or locations loaded from the hosted `gyms` table.
"""

import logging
from typing import Dict, Iterable, List, Optional

from gympulse.models import Coordinates, Location

logger = logging.getLogger(__name__)

GYM_BRANDS = {
    "ANYTIME_FITNESS": "Anytime Fitness",
    "GOODLIFE_FITNESS": "GoodLife Fitness",
    "YMCA": "YMCA",
    "CLUB_SIX": "Club SIX",
    "ELITE_GYMS": "Elite Gyms",
    "CROSS_FIT": "CrossFit Gym",
    "ORANGETHEORY": "Orangetheory",
    "F45": "F45",
}

PROVINCES = {
    "QC": "Quebec",
    "ON": "Ontario",
    "BC": "British Columbia",
    "AB": "Alberta",
    "MB": "Manitoba",
    "NS": "Nova Scotia",
    "NB": "New Brunswick",
    "PE": "Prince Edward Island",
    "NL": "Newfoundland & Labrador",
    "SK": "Saskatchewan",
}

DEFAULT_REGION = PROVINCES["QC"]


def _gym(gym_id, name, brand_key, city, address, lat, lng) -> Location:
    return Location(
        id=gym_id,
        name=name,
        brand=GYM_BRANDS[brand_key],
        city=city,
        province=PROVINCES["QC"],
        coordinates=Coordinates(lat=lat, lng=lng),
        address=address,
    )


QUEBEC_GYMS = [
    # Montreal
    _gym("mtl-anytime-1", "Anytime Fitness Downtown", "ANYTIME_FITNESS", "Montreal",
         "1500 Rue St-Catherine O", 45.5017, -73.5673),
    _gym("mtl-goodlife-1", "GoodLife Fitness Plateau", "GOODLIFE_FITNESS", "Montreal",
         "4300 Rue de Bullion", 45.5255, -73.5948),
    _gym("mtl-ymca-1", "YMCA Montreal Downtown", "YMCA", "Montreal",
         "1425 Boulevard de Maisonneuve O", 45.5047, -73.5788),
    _gym("mtl-elite-1", "Elite Gyms Westmount", "ELITE_GYMS", "Montreal",
         "4900 Rue Sherbrooke O", 45.4898, -73.6059),
    _gym("mtl-orangetheory-1", "Orangetheory Fitness Old Montreal", "ORANGETHEORY", "Montreal",
         "350 Rue St-Paul O", 45.5028, -73.5611),
    # Quebec City
    _gym("qc-anytime-1", "Anytime Fitness Vieux-Quebec", "ANYTIME_FITNESS", "Quebec City",
         "580 Rue de la Reine", 46.8139, -71.2080),
    _gym("qc-goodlife-1", "GoodLife Fitness Sainte-Foy", "GOODLIFE_FITNESS", "Quebec City",
         "2600 Boulevard Laurier", 46.7909, -71.2265),
    _gym("qc-ymca-1", "YMCA Quebec City", "YMCA", "Quebec City",
         "855 Avenue Holland", 46.8172, -71.1968),
    # Gatineau
    _gym("gatineau-anytime-1", "Anytime Fitness Gatineau", "ANYTIME_FITNESS", "Gatineau",
         "275 Boulevard de la Gappe", 45.5017, -75.7447),
    _gym("gatineau-goodlife-1", "GoodLife Fitness Buckingham", "GOODLIFE_FITNESS", "Gatineau",
         "580 Boulevard de la Gappe", 45.5030, -75.7522),
    # Sherbrooke
    _gym("sherbrooke-anytime-1", "Anytime Fitness Downtown", "ANYTIME_FITNESS", "Sherbrooke",
         "105 Rue King O", 45.4015, -71.8947),
    _gym("sherbrooke-club-six-1", "Club SIX Sherbrooke", "CLUB_SIX", "Sherbrooke",
         "365 Boulevard Industriel", 45.4088, -71.8750),
    # Laval
    _gym("laval-goodlife-1", "GoodLife Fitness Laval", "GOODLIFE_FITNESS", "Laval",
         "2180 Boulevard des Laurentides", 45.5605, -73.7454),
    _gym("laval-anytime-1", "Anytime Fitness Vimont", "ANYTIME_FITNESS", "Laval",
         "440 Boulevard de la Concorde O", 45.5733, -73.7547),
]


class LocationDirectory:
    """
    In-memory location directory.

    Unknown regions fall back to the default region's locations.
    """

    def __init__(self, locations: Iterable[Location], default_region: str = DEFAULT_REGION):
        self._locations: List[Location] = list(locations)
        self._by_id: Dict[str, Location] = {loc.id: loc for loc in self._locations}
        self._default_region = default_region

        logger.info(f"Location directory loaded with {len(self._locations)} gyms")

    @classmethod
    def builtin(cls) -> "LocationDirectory":
        """Directory backed by the bundled Quebec gym list."""
        return cls(QUEBEC_GYMS)

    def __len__(self) -> int:
        return len(self._locations)

    def all(self) -> List[Location]:
        return list(self._locations)

    def get_location_by_id(self, location_id: str) -> Optional[Location]:
        return self._by_id.get(location_id)

    def _for_region(self, region: Optional[str]) -> List[Location]:
        if region is None:
            return list(self._locations)
        matches = [loc for loc in self._locations if loc.province == region]
        if not matches:
            logger.debug(f"No gyms for region {region!r}, using {self._default_region}")
            matches = [loc for loc in self._locations if loc.province == self._default_region]
        return matches

    def list_cities_for_region(self, region: str) -> List[str]:
        """Sorted distinct cities in a region."""
        return sorted({loc.city for loc in self._for_region(region)})

    def list_locations_for_region_and_city(self, region: str, city: Optional[str] = None) -> List[Location]:
        """Locations in a region, optionally narrowed to one city."""
        locations = self._for_region(region)
        if city:
            locations = [loc for loc in locations if loc.city == city]
        return locations

    def search(self, query: str, region: Optional[str] = None) -> List[Location]:
        """Case-insensitive match on name, brand or city."""
        needle = query.lower()
        return [
            loc for loc in self._for_region(region)
            if needle in loc.name.lower() or needle in loc.brand.lower() or needle in loc.city.lower()
        ]

    def brands(self, region: Optional[str] = None) -> List[str]:
        return sorted({loc.brand for loc in self._for_region(region)})
