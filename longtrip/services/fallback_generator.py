"""
Template-based itinerary synthesis used when AI generation is unavailable.

This is the last line of defense: every method here is total over valid
trips and never raises. Every produced day and activity is flagged
``fallback_generated`` so callers can tell synthetic content from AI output.
"""

import logging
import random
import re
from datetime import timedelta
from typing import Dict, List, NamedTuple, Optional

from longtrip.models.chunk_models import Chunk, ChunkFocus, ChunkPriority, DetailLevel, GenerationStrategy
from longtrip.models.itinerary_models import (
    Activity,
    ChunkResultSummary,
    Coordinates,
    DayItinerary,
    FinalItinerary,
    ItinerarySummary,
    LocationModel,
)
from longtrip.models.trip_models import Trip
from longtrip.services.location_utility import LocationMatch, LocationUtility


ACTIVITY_TEMPLATES: Dict[ChunkFocus, List[Dict]] = {
    ChunkFocus.ARRIVAL_ORIENTATION: [
        {"type": "orientation", "title": "City Orientation Walk",
         "description": "Get familiar with the city center and main landmarks",
         "duration": 180, "category": "sightseeing"},
        {"type": "logistics", "title": "Hotel Check-in & Local Information",
         "description": "Check into accommodation and gather local information",
         "duration": 120, "category": "logistics"},
    ],
    ChunkFocus.CULTURAL_IMMERSION: [
        {"type": "cultural", "title": "Local Museum Visit",
         "description": "Explore the main cultural museum of the area",
         "duration": 240, "category": "cultural"},
        {"type": "cultural", "title": "Traditional Market Exploration",
         "description": "Visit a local market and experience daily life",
         "duration": 180, "category": "cultural"},
    ],
    ChunkFocus.LOCAL_EXPERIENCES: [
        {"type": "cultural", "title": "Neighborhood Walk with Locals",
         "description": "Wander a residential neighborhood away from the main sights",
         "duration": 180, "category": "cultural"},
        {"type": "food", "title": "Local Cafe Stop",
         "description": "Slow down at a cafe popular with residents",
         "duration": 90, "category": "food"},
    ],
    ChunkFocus.FOOD_DISCOVERY: [
        {"type": "food", "title": "Local Restaurant Experience",
         "description": "Try authentic local cuisine at a recommended restaurant",
         "duration": 120, "category": "food"},
        {"type": "food", "title": "Street Food Tour",
         "description": "Sample various local street foods and snacks",
         "duration": 180, "category": "food"},
    ],
    ChunkFocus.NATURE_EXPLORATION: [
        {"type": "nature", "title": "City Park Visit",
         "description": "Relax and explore the main city park or green space",
         "duration": 180, "category": "nature"},
        {"type": "nature", "title": "Outdoor Walking Tour",
         "description": "Explore natural areas around the city",
         "duration": 240, "category": "nature"},
    ],
    ChunkFocus.HISTORICAL_SITES: [
        {"type": "historical", "title": "Historical Landmark Visit",
         "description": "Visit the most significant historical site in the area",
         "duration": 240, "category": "historical"},
        {"type": "historical", "title": "Heritage Walk",
         "description": "Walking tour of historical buildings and sites",
         "duration": 180, "category": "historical"},
    ],
    ChunkFocus.ENTERTAINMENT_LEISURE: [
        {"type": "leisure", "title": "Local Entertainment Venue",
         "description": "Visit a popular local entertainment or leisure spot",
         "duration": 180, "category": "entertainment"},
        {"type": "leisure", "title": "Shopping District Exploration",
         "description": "Browse local shops and shopping areas",
         "duration": 240, "category": "leisure"},
    ],
    ChunkFocus.NIGHTLIFE_ENTERTAINMENT: [
        {"type": "nightlife", "title": "Local Bar/Lounge Visit",
         "description": "Experience local nightlife at a recommended venue",
         "duration": 180, "category": "nightlife"},
        {"type": "nightlife", "title": "Evening Entertainment",
         "description": "Enjoy evening entertainment options in the city",
         "duration": 240, "category": "nightlife"},
    ],
    ChunkFocus.DEPARTURE_LOGISTICS: [
        {"type": "logistics", "title": "Departure Preparation",
         "description": "Pack belongings and prepare for departure",
         "duration": 120, "category": "logistics"},
        {"type": "leisure", "title": "Final Local Experience",
         "description": "Last-minute local activity before departure",
         "duration": 180, "category": "leisure"},
    ],
    ChunkFocus.GENERAL_SIGHTSEEING: [
        {"type": "orientation", "title": "Main Sights Walk",
         "description": "See the best-known landmarks at an easy pace",
         "duration": 180, "category": "sightseeing"},
        {"type": "cultural", "title": "Local Museum Visit",
         "description": "Explore the main cultural museum of the area",
         "duration": 180, "category": "cultural"},
        {"type": "food", "title": "Local Restaurant Experience",
         "description": "Try authentic local cuisine at a recommended restaurant",
         "duration": 120, "category": "food"},
    ],
}

LOCATION_PATTERNS = {
    "orientation": "{city} City Center",
    "logistics": "{city} Information Center",
    "cultural": "{city} Cultural Center",
    "food": "{city} Food Market",
    "nature": "{city} Public Park",
    "historical": "{city} Historical District",
    "leisure": "{city} Entertainment Area",
    "nightlife": "{city} Night District",
}

# Base cost per activity type in USD
BASE_COSTS = {
    "orientation": 0,
    "logistics": 5,
    "cultural": 15,
    "food": 25,
    "nature": 5,
    "historical": 12,
    "leisure": 20,
    "nightlife": 30,
}

EXPENSIVE_CITIES = ("tokyo", "singapore", "london", "paris", "new york", "san francisco")
LOW_COST_REGIONS = ("vietnam", "thailand")

# region -> (currency code, units per USD)
LOCAL_CURRENCIES = {
    "vietnam": ("VND", 23000),
    "thailand": ("THB", 35),
    "japan": ("JPY", 150),
}

UNITS_PER_USD = {"USD": 1, **{code: rate for code, rate in LOCAL_CURRENCIES.values()}}

ACTIVITIES_PER_DETAIL_LEVEL = {
    DetailLevel.COMPREHENSIVE: 4,
    DetailLevel.BALANCED: 3,
    DetailLevel.SIMPLIFIED: 2,
}

EMERGENCY_FOCUS_ROTATION = [
    ChunkFocus.ARRIVAL_ORIENTATION,
    ChunkFocus.CULTURAL_IMMERSION,
    ChunkFocus.FOOD_DISCOVERY,
    ChunkFocus.HISTORICAL_SITES,
    ChunkFocus.NATURE_EXPLORATION,
    ChunkFocus.ENTERTAINMENT_LEISURE,
]

FIRST_SLOT_HOUR = 9
SLOT_SPACING_HOURS = 3
COORDINATE_JITTER = 0.01  # total spread in degrees, centered on the match


def mentions_any(text: str, names) -> bool:
    return any(re.search(rf"\b{re.escape(name)}\b", text) for name in names)


class ActivityCost(NamedTuple):
    amount: float
    currency: str
    local_amount: Optional[float] = None
    local_currency: Optional[str] = None


class FallbackGenerator:
    """Deterministic, template-driven day synthesis"""

    def __init__(self, location_utility: Optional[LocationUtility] = None, seed: Optional[int] = None):
        self.location_utility = location_utility or LocationUtility()
        self.seed = seed
        self._rng = random.Random(seed)
        self.logger = logging.getLogger(__name__)

    def generate_fallback_days(self, trip: Trip, chunk: Chunk) -> List[DayItinerary]:
        """Template days for every day in the chunk's range"""
        start_date = trip.destination.start_date + timedelta(days=chunk.start_day - 1)
        match = self.location_utility.find_coordinates(trip.destination.display_name)

        days = []
        for offset in range(chunk.length):
            day_number = chunk.start_day + offset
            days.append(DayItinerary(
                day_number=day_number,
                date=start_date + timedelta(days=offset),
                activities=self._generate_day_activities(trip, chunk, day_number, match),
                notes=f"Fallback activities generated for {chunk.focus.value}",
                chunk_id=chunk.id,
                fallback_generated=True
            ))

        self.logger.info(
            f"[fallback] Generated {len(days)} template days for chunk {chunk.id} "
            f"(days {chunk.start_day}-{chunk.end_day})"
        )
        return days

    def generate_emergency_fallback(
        self,
        trip: Trip,
        reason: Optional[str] = None,
        error: Optional[str] = None
    ) -> FinalItinerary:
        """Whole-trip template itinerary that bypasses AI generation entirely"""
        match = self.location_utility.find_coordinates(trip.destination.display_name)
        days: List[DayItinerary] = []
        summaries: List[ChunkResultSummary] = []

        for index in range(trip.duration):
            day_number = index + 1
            chunk = Chunk(
                id=f"emergency_day_{day_number}",
                start_day=day_number,
                end_day=day_number,
                priority=ChunkPriority.LOW,
                focus=self._determine_emergency_focus(index, trip.duration),
                detail_level=DetailLevel.SIMPLIFIED
            )
            days.append(DayItinerary(
                day_number=day_number,
                date=trip.destination.start_date + timedelta(days=index),
                activities=self._generate_day_activities(trip, chunk, day_number, match),
                notes=f"Emergency fallback day {day_number}",
                chunk_id=chunk.id,
                fallback_generated=True,
                emergency_fallback=True
            ))
            summaries.append(ChunkResultSummary(
                chunk_id=chunk.id,
                focus=chunk.focus.value,
                success=False,
                days=1,
                fallback_used=True
            ))

        self.logger.warning(
            f"[fallback] Emergency fallback itinerary for {trip.duration} days",
            extra={"reason": reason, "error": error}
        )
        return FinalItinerary(
            destination=trip.destination.name,
            strategy=GenerationStrategy.EMERGENCY_FALLBACK.value,
            days=days,
            summary=ItinerarySummary.from_days(
                days, 0, len(days), len(days), trip.budget.currency if trip.budget else None
            ),
            chunk_results=summaries,
            fallback_reason=reason,
            error=error
        )

    def _generate_day_activities(
        self,
        trip: Trip,
        chunk: Chunk,
        day_number: int,
        match: Optional[LocationMatch]
    ) -> List[Activity]:
        templates = ACTIVITY_TEMPLATES.get(chunk.focus) or ACTIVITY_TEMPLATES[ChunkFocus.CULTURAL_IMMERSION]
        count = ACTIVITIES_PER_DETAIL_LEVEL.get(chunk.detail_level, 3)

        activities = []
        for slot in range(count):
            template = templates[slot % len(templates)]
            activities.append(self._create_activity(template, trip, chunk, day_number, slot, match))
        return activities

    def _create_activity(
        self,
        template: Dict,
        trip: Trip,
        chunk: Chunk,
        day_number: int,
        slot: int,
        match: Optional[LocationMatch]
    ) -> Activity:
        city = trip.destination.display_name
        hour = FIRST_SLOT_HOUR + slot * SLOT_SPACING_HOURS
        activity_type = template["type"]
        cost = self._estimate_activity_cost(activity_type, trip, match)

        return Activity(
            time=f"{hour:02d}:00",
            title=f"{template['title']} - Day {day_number}",
            description=f"{template['description']} in {city}",
            location=LocationModel(
                name=LOCATION_PATTERNS.get(activity_type, "Local Area in {city}").format(city=city),
                address=city,
                coordinates=self._jittered_coordinates(match, f"{chunk.id}:{day_number}:{slot}")
            ),
            duration_minutes=template.get("duration", 180),
            cost=cost.amount,
            currency=cost.currency,
            local_cost=cost.local_amount,
            local_currency=cost.local_currency,
            category=template.get("category", "leisure"),
            notes=f"Fallback activity for {chunk.focus.value} - {activity_type}",
            fallback_generated=True
        )

    def _jittered_coordinates(self, match: Optional[LocationMatch], key: str) -> Coordinates:
        if match is None:
            return Coordinates(lat=0.0, lng=0.0)
        rng = self._rng_for(key)
        return Coordinates(
            lat=match.lat + (rng.random() - 0.5) * COORDINATE_JITTER,
            lng=match.lng + (rng.random() - 0.5) * COORDINATE_JITTER
        )

    def _rng_for(self, key: str) -> random.Random:
        # Seeded generators derive one stream per activity so output does not depend on call order
        if self.seed is None:
            return self._rng
        return random.Random(f"{self.seed}:{key}")

    def _estimate_activity_cost(self, activity_type: str, trip: Trip, match: Optional[LocationMatch]) -> ActivityCost:
        """Cost in the trip's accounting currency, plus the local-currency price when that differs"""
        destination_text = " ".join(
            filter(None, [trip.destination.name, trip.destination.city, trip.destination.country])
        ).lower()
        # A partial gazetteer match is close enough for a map pin, not for pricing
        recognized = match if match is not None and not match.partial_match else None
        city = recognized.city if recognized else ""
        region = recognized.region if recognized else ""

        multiplier = 1.0
        if city in EXPENSIVE_CITIES or mentions_any(destination_text, EXPENSIVE_CITIES):
            multiplier = 2.0
        elif region in LOW_COST_REGIONS or mentions_any(destination_text, LOW_COST_REGIONS):
            multiplier = 0.3

        cost_usd = BASE_COSTS.get(activity_type, 15) * multiplier

        # Unlisted budget currencies take the USD figure at face value
        currency = trip.budget.currency if trip.budget else "USD"
        amount = round(cost_usd * UNITS_PER_USD.get(currency, 1), 2)

        local_region = region or next((r for r in LOCAL_CURRENCIES if mentions_any(destination_text, [r])), "")
        local = LOCAL_CURRENCIES.get(local_region)
        if local is None or local[0] == currency:
            return ActivityCost(amount, currency)
        local_currency, rate = local
        return ActivityCost(amount, currency, float(round(cost_usd * rate)), local_currency)

    @staticmethod
    def _determine_emergency_focus(day_index: int, total_days: int) -> ChunkFocus:
        if day_index == 0:
            return ChunkFocus.ARRIVAL_ORIENTATION
        if day_index == total_days - 1 and total_days > 1:
            return ChunkFocus.DEPARTURE_LOGISTICS
        return EMERGENCY_FOCUS_ROTATION[(day_index - 1) % len(EMERGENCY_FOCUS_ROTATION)]
