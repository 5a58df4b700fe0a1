"""
Coordinate, distance and timezone helpers backed by a small static gazetteer.

Nothing here raises for unknown places or malformed coordinates: lookups
return None and calculations return 0 so callers can fall back to the
destination centroid.
"""

import logging
import math
import random
import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel

from longtrip.models.itinerary_models import Coordinates


class LocationMatch(BaseModel):
    lat: float
    lng: float
    timezone: str
    city: str
    region: str
    found: bool = True
    partial_match: bool = False

class CoordinateValidation(BaseModel):
    valid: bool
    error: Optional[str] = None

class ClosestCity(BaseModel):
    name: str
    coordinates: Coordinates
    timezone: str
    distance: float


class LocationUtility:
    """Static gazetteer lookups plus Haversine math"""

    EARTH_RADIUS_KM = 6371.0
    KM_TO_MILES = 0.621371
    MIN_PARTIAL_WORD_LENGTH = 4
    REGION_RADIUS_KM = 200

    # Too common in place names to identify a city on their own
    GENERIC_PLACE_WORDS = {
        "city", "new", "san", "santa", "saint", "los", "las", "old", "port",
        "north", "south", "east", "west", "lake", "beach", "island", "town",
    }

    TRAVEL_SPEEDS_KMH = {
        "walking": 5,
        "driving": 30,   # city driving with traffic
        "public": 20,    # public transport with stops
        "bicycle": 15,
    }
    MINIMUM_TRAVEL_MINUTES = {
        "walking": 5,
        "driving": 10,
        "public": 15,
        "bicycle": 8,
    }

    # region -> city -> (lat, lng, timezone)
    GAZETTEER: Dict[str, Dict[str, Tuple[float, float, str]]] = {
        "vietnam": {
            "ho chi minh city": (10.7769, 106.7009, "Asia/Ho_Chi_Minh"),
            "saigon": (10.7769, 106.7009, "Asia/Ho_Chi_Minh"),
            "hanoi": (21.0285, 105.8542, "Asia/Ho_Chi_Minh"),
            "da nang": (16.0678, 108.2208, "Asia/Ho_Chi_Minh"),
            "nha trang": (12.2585, 109.0526, "Asia/Ho_Chi_Minh"),
            "hue": (16.4637, 107.5909, "Asia/Ho_Chi_Minh"),
            "can tho": (10.0452, 105.7469, "Asia/Ho_Chi_Minh"),
            "vung tau": (10.4113, 107.1365, "Asia/Ho_Chi_Minh"),
            "dalat": (11.9404, 108.4583, "Asia/Ho_Chi_Minh"),
            "phu quoc": (10.2899, 103.9840, "Asia/Ho_Chi_Minh"),
        },
        "japan": {
            "tokyo": (35.6762, 139.6503, "Asia/Tokyo"),
            "kyoto": (35.0116, 135.7681, "Asia/Tokyo"),
            "osaka": (34.6937, 135.5023, "Asia/Tokyo"),
            "hiroshima": (34.3853, 132.4553, "Asia/Tokyo"),
            "nara": (34.6851, 135.8048, "Asia/Tokyo"),
        },
        "thailand": {
            "bangkok": (13.7563, 100.5018, "Asia/Bangkok"),
            "chiang mai": (18.7883, 98.9853, "Asia/Bangkok"),
            "phuket": (7.8804, 98.3923, "Asia/Bangkok"),
            "pattaya": (12.9236, 100.8825, "Asia/Bangkok"),
        },
        "singapore": {
            "singapore": (1.3521, 103.8198, "Asia/Singapore"),
        },
        "europe": {
            "paris": (48.8566, 2.3522, "Europe/Paris"),
            "london": (51.5074, -0.1278, "Europe/London"),
            "rome": (41.9028, 12.4964, "Europe/Rome"),
            "barcelona": (41.3851, 2.1734, "Europe/Madrid"),
            "amsterdam": (52.3676, 4.9041, "Europe/Amsterdam"),
        },
        "usa": {
            "new york": (40.7128, -74.0060, "America/New_York"),
            "los angeles": (34.0522, -118.2437, "America/Los_Angeles"),
            "san francisco": (37.7749, -122.4194, "America/Los_Angeles"),
            "chicago": (41.8781, -87.6298, "America/Chicago"),
        },
    }

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def find_coordinates(self, name: Optional[str]) -> Optional[LocationMatch]:
        """Find coordinates and timezone for a destination name"""
        if not name or not name.strip():
            return None

        query = name.lower().strip()
        query_is_specific = self._is_distinctive(query)

        for region, city, (lat, lng, tz) in self._iter_cities():
            if self._contains_phrase(query, city) or (query_is_specific and self._contains_phrase(city, query)):
                return LocationMatch(lat=lat, lng=lng, timezone=tz, city=city, region=region)

        # Partial pass: one distinctive word shared whole, e.g. "Chiang Rai" -> "chiang mai"
        words = {w for w in re.split(r"[\s,]+", query) if self._is_distinctive(w)}
        for region, city, (lat, lng, tz) in self._iter_cities():
            if words & {cw for cw in city.split() if self._is_distinctive(cw)}:
                return LocationMatch(lat=lat, lng=lng, timezone=tz, city=city, region=region, partial_match=True)

        self.logger.debug(f"[location] No gazetteer match for '{name}'")
        return None

    def distance(self, a: Any, b: Any, unit: str = "km") -> float:
        """Great-circle distance using the Haversine formula"""
        p1 = self._as_pair(a)
        p2 = self._as_pair(b)
        if p1 is None or p2 is None:
            return 0.0

        lat1, lng1 = map(math.radians, p1)
        lat2, lng2 = map(math.radians, p2)
        d_lat = lat2 - lat1
        d_lng = lng2 - lng1

        h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
        c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
        distance_km = self.EARTH_RADIUS_KM * c

        return distance_km * self.KM_TO_MILES if unit == "miles" else distance_km

    def estimate_travel_time(self, a: Any, b: Any, mode: str = "walking") -> int:
        """Estimated travel time in minutes"""
        distance_km = self.distance(a, b, "km")
        if distance_km == 0:
            return 0

        speed = self.TRAVEL_SPEEDS_KMH.get(mode, self.TRAVEL_SPEEDS_KMH["walking"])
        minutes = math.ceil(distance_km / speed * 60)
        return max(minutes, self.MINIMUM_TRAVEL_MINUTES.get(mode, 5))

    def validate_coordinates(self, coordinates: Any) -> CoordinateValidation:
        if coordinates is None:
            return CoordinateValidation(valid=False, error="Coordinates object is required")

        lat, lng = self._extract(coordinates)
        if lat is None and lng is None and not isinstance(coordinates, (dict, Coordinates)):
            return CoordinateValidation(valid=False, error="Coordinates object is required")

        if not self._is_number(lat) or not self._is_number(lng):
            return CoordinateValidation(valid=False, error="Latitude and longitude must be numbers")
        if lat < -90 or lat > 90:
            return CoordinateValidation(valid=False, error="Latitude must be between -90 and 90 degrees")
        if lng < -180 or lng > 180:
            return CoordinateValidation(valid=False, error="Longitude must be between -180 and 180 degrees")

        return CoordinateValidation(valid=True)

    def find_closest_city(self, coordinates: Any) -> Optional[ClosestCity]:
        if not self.validate_coordinates(coordinates).valid:
            return None

        closest: Optional[ClosestCity] = None
        for region, city, (lat, lng, tz) in self._iter_cities():
            d = self.distance(coordinates, (lat, lng))
            if closest is None or d < closest.distance:
                closest = ClosestCity(
                    name=city,
                    coordinates=Coordinates(lat=lat, lng=lng),
                    timezone=tz,
                    distance=d
                )
        return closest

    def get_timezone(self, coordinates: Any) -> str:
        closest = self.find_closest_city(coordinates)
        if closest:
            return closest.timezone

        pair = self._as_pair(coordinates)
        if pair is None:
            return "UTC"
        # Coarse longitude bands when nothing in the gazetteer applies
        lng = pair[1]
        if 100 <= lng <= 120:
            return "Asia/Ho_Chi_Minh"
        if 135 <= lng <= 145:
            return "Asia/Tokyo"
        if -10 <= lng <= 30:
            return "Europe/Paris"
        if -130 <= lng <= -60:
            return "America/New_York"
        return "UTC"

    def generate_nearby_coordinates(
        self,
        center: Any,
        radius_km: float = 5,
        rng: Optional[random.Random] = None
    ) -> Coordinates:
        """Random point within radius_km of center"""
        pair = self._as_pair(center)
        if pair is None:
            return Coordinates(lat=0.0, lng=0.0)

        rng = rng or random.Random()
        lat, lng = pair
        radius_lat = radius_km / 111  # ~111 km per degree latitude
        cos_lat = math.cos(math.radians(lat))
        radius_lng = radius_km / (111 * cos_lat) if cos_lat > 1e-9 else radius_lat

        angle = rng.random() * 2 * math.pi
        spread = rng.random() * min(radius_lat, radius_lng)
        return Coordinates(lat=lat + spread * math.cos(angle), lng=lng + spread * math.sin(angle))

    def format_address(self, location: Optional[Dict[str, Any]]) -> str:
        if not location:
            return "Location not specified"

        parts: List[str] = []
        for key in ("name", "address"):
            if location.get(key):
                parts.append(location[key])
        for key in ("city", "country"):
            value = location.get(key)
            if value and value not in " ".join(parts):
                parts.append(value)

        return ", ".join(parts) if parts else "Address not available"

    def is_in_region(self, coordinates: Any, region_name: str) -> bool:
        if not self.validate_coordinates(coordinates).valid:
            return False
        region = self.GAZETTEER.get(region_name.lower())
        if not region:
            return False
        return any(
            self.distance(coordinates, (lat, lng)) <= self.REGION_RADIUS_KM
            for lat, lng, _ in region.values()
        )

    def get_cities_in_region(self, region_name: str) -> List[Dict[str, Any]]:
        region = self.GAZETTEER.get(region_name.lower(), {})
        return [
            {"name": city, "lat": lat, "lng": lng, "timezone": tz}
            for city, (lat, lng, tz) in region.items()
        ]

    def _is_distinctive(self, word: str) -> bool:
        return len(word) >= self.MIN_PARTIAL_WORD_LENGTH and word not in self.GENERIC_PLACE_WORDS

    @staticmethod
    def _contains_phrase(text: str, phrase: str) -> bool:
        return re.search(rf"\b{re.escape(phrase)}\b", text) is not None

    def _iter_cities(self):
        for region_name, region in self.GAZETTEER.items():
            for city, entry in region.items():
                yield region_name, city, entry

    @staticmethod
    def _is_number(value: Any) -> bool:
        return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)

    @staticmethod
    def _extract(coordinates: Any) -> Tuple[Any, Any]:
        if isinstance(coordinates, Coordinates):
            return coordinates.lat, coordinates.lng
        if isinstance(coordinates, dict):
            return coordinates.get("lat"), coordinates.get("lng")
        if isinstance(coordinates, (tuple, list)) and len(coordinates) == 2:
            return coordinates[0], coordinates[1]
        return None, None

    def _as_pair(self, coordinates: Any) -> Optional[Tuple[float, float]]:
        lat, lng = self._extract(coordinates)
        if not self._is_number(lat) or not self._is_number(lng):
            return None
        return float(lat), float(lng)
