"""
Prompts for chunked itinerary generation with Google Vertex AI Gemini
"""

from datetime import timedelta
from typing import Any, Dict, List

from longtrip.models.chunk_models import Chunk, ChunkFocus, DetailLevel, GenerationContext
from longtrip.models.itinerary_models import DayItinerary
from longtrip.models.trip_models import Pace, Trip
from longtrip.services.providers import PromptBuilder


FOCUS_GUIDANCE = {
    ChunkFocus.ARRIVAL_ORIENTATION: "Ease travelers in: orientation walks, check-in logistics, nearby highlights, an early evening.",
    ChunkFocus.CULTURAL_IMMERSION: "Museums, temples, traditional crafts and performances that show local culture.",
    ChunkFocus.LOCAL_EXPERIENCES: "Neighborhood life, markets, workshops and places locals actually go.",
    ChunkFocus.NATURE_EXPLORATION: "Parks, gardens, hikes and scenic outdoor areas within reach of the city.",
    ChunkFocus.FOOD_DISCOVERY: "Signature dishes, street food, markets and well-known local restaurants.",
    ChunkFocus.HISTORICAL_SITES: "Landmarks, heritage districts and sites with historical significance.",
    ChunkFocus.ENTERTAINMENT_LEISURE: "Shopping areas, shows, leisure venues and relaxed free time.",
    ChunkFocus.NIGHTLIFE_ENTERTAINMENT: "Evening-heavy days: bars, live music, night markets. Start later in the morning.",
    ChunkFocus.DEPARTURE_LOGISTICS: "Light schedule near the accommodation, packing time, transfer to the airport or station.",
    ChunkFocus.GENERAL_SIGHTSEEING: "A balanced mix of the destination's best-known sights, food and culture.",
}

DETAIL_GUIDANCE = {
    DetailLevel.COMPREHENSIVE: "4-5 activities per day with full descriptions, practical tips and logistics.",
    DetailLevel.BALANCED: "3-4 activities per day with concise descriptions.",
    DetailLevel.SIMPLIFIED: "2-3 activities per day, essentials only.",
}

PACE_GUIDANCE = {
    Pace.EASY: "Relaxed pace: shorter activities and plenty of rest time.",
    Pace.MODERATE: "Moderate pace: a balanced mix with reasonable breaks.",
    Pace.INTENSE: "Intense pace: full days with early starts.",
}

ACTIVITY_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "time": {"type": "string", "description": "Start time as HH:MM (24h)"},
        "title": {"type": "string"},
        "description": {"type": "string"},
        "location": {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "address": {"type": "string"},
                "coordinates": {
                    "type": "object",
                    "properties": {"lat": {"type": "number"}, "lng": {"type": "number"}},
                },
            },
            "required": ["name"],
        },
        "duration_minutes": {"type": "integer"},
        "cost": {"type": "number"},
        "category": {"type": "string"},
        "notes": {"type": "string"},
    },
    "required": ["time", "title", "location"],
}


def get_chunk_system_prompt() -> str:
    """System instructions shared by every chunk prompt"""
    return """
    You are an expert AI Trip Planner generating one segment of a longer trip.

    RESPONSE REQUIREMENTS:
    1. Return ONLY valid JSON matching the provided schema
    2. Return exactly one entry per requested day, in day order
    3. Every day must contain at least one activity
    4. Times are HH:MM in 24h format, costs are numbers with no currency symbols
    5. Use real, specific venue names and addresses
    6. Keep continuity with the previous days and never repeat their activities
    """


def build_chunk_response_schema(chunk: Chunk) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "days": {
                "type": "array",
                "minItems": chunk.length,
                "maxItems": chunk.length,
                "items": {
                    "type": "object",
                    "properties": {
                        "day_number": {"type": "integer"},
                        "date": {"type": "string", "description": "YYYY-MM-DD"},
                        "theme": {"type": "string"},
                        "activities": {"type": "array", "items": ACTIVITY_SCHEMA},
                        "notes": {"type": "string"},
                    },
                    "required": ["day_number", "activities"],
                },
            }
        },
        "required": ["days"],
    }


class ChunkPromptBuilder(PromptBuilder):
    """Deterministic prompt text for one chunk of a long trip"""

    MAX_PREVIOUS_ACTIVITIES_PER_DAY = 4

    def build_chunked_prompt(self, chunk_trip: Trip, chunk: Chunk, context: GenerationContext) -> str:
        info = chunk_trip.chunk_info
        total_days = info.total_days if info and info.total_days else chunk.end_day
        destination = chunk_trip.destination
        start = destination.start_date
        end = start + timedelta(days=chunk.length - 1)
        prefs = chunk_trip.preferences

        sections = [
            get_chunk_system_prompt().strip(),
            f"Generate a {chunk.detail_level.value} itinerary for a {chunk.length}-day trip segment.",
            "\n".join([
                "TRIP DETAILS:",
                f"- Destination: {destination.display_name}" + (f", {destination.country}" if destination.country else ""),
                f"- Days: {chunk.start_day}-{chunk.end_day} of {total_days} total days",
                f"- Dates: {start.isoformat()} to {end.isoformat()}",
                f"- Travelers: {chunk_trip.travelers.adults} adults, {chunk_trip.travelers.children} children, {chunk_trip.travelers.infants} infants",
                f"- Focus: {chunk.focus.value.replace('_', ' ')}",
                f"- Detail Level: {chunk.detail_level.value}",
                f"- Overall Theme: {context.overall_theme}",
            ]),
            "\n".join([
                "SEGMENT GUIDANCE:",
                f"- {FOCUS_GUIDANCE.get(chunk.focus, FOCUS_GUIDANCE[ChunkFocus.GENERAL_SIGHTSEEING])}",
                f"- {DETAIL_GUIDANCE.get(chunk.detail_level, DETAIL_GUIDANCE[DetailLevel.BALANCED])}",
                f"- {PACE_GUIDANCE.get(prefs.pace, PACE_GUIDANCE[Pace.MODERATE])}",
            ]),
        ]

        if prefs.interests:
            sections.append(f"INTERESTS: {', '.join(prefs.interests)}")

        constraints = list(dict.fromkeys(list(prefs.constraints) + list(context.constraints)))
        if constraints:
            sections.append("CONSTRAINTS:\n" + "\n".join(f"- {c}" for c in constraints))

        budget_section = self._budget_section(chunk_trip, context)
        if budget_section:
            sections.append(budget_section)

        if context.previous_days:
            sections.append(self._previous_days_section(context.previous_days))
        if info and info.used_categories:
            sections.append(
                "Activity categories already covered: " + ", ".join(info.used_categories)
                + ". Favor variety where it fits the focus."
            )

        sections.append(
            f"Return JSON with a \"days\" array of exactly {chunk.length} entries, "
            f"day_number {chunk.start_day} to {chunk.end_day}. No markdown, no explanations."
        )
        return "\n\n".join(sections)

    def response_schema(self, chunk: Chunk) -> Dict[str, Any]:
        return build_chunk_response_schema(chunk)

    @staticmethod
    def _budget_section(chunk_trip: Trip, context: GenerationContext) -> str:
        if not chunk_trip.budget:
            return ""
        lines = [f"BUDGET: {chunk_trip.budget.total:g} {chunk_trip.budget.currency} for the whole trip"]
        remaining = context.remaining_budget()
        if remaining is not None:
            lines.append(f"- Remaining: about {remaining:,.0f} {chunk_trip.budget.currency}")
        return "\n".join(lines)

    def _previous_days_section(self, previous_days: List[DayItinerary]) -> str:
        lines = [
            "PREVIOUS DAYS (for continuity, do not repeat):",
        ]
        for day in previous_days:
            titles = [a.title for a in day.activities[:self.MAX_PREVIOUS_ACTIVITIES_PER_DAY]]
            lines.append(f"- Day {day.day_number} ({day.date.isoformat()}): {'; '.join(titles) or 'free day'}")
        return "\n".join(lines)
