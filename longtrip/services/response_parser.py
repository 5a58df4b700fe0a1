"""
Parsing of AI chunk responses into DayItinerary objects.

Raw model output goes through an ordered chain of recovery strategies
(direct JSON, fenced or embedded object extraction, truncated-JSON repair)
and is then shape checked. Anything that cannot produce a full chunk of
days raises ResponseParseError so the orchestrator can fall back.
"""

import json
import logging
import re
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from longtrip.models.chunk_models import Chunk
from longtrip.models.itinerary_models import Activity, Coordinates, DayItinerary, LocationModel
from longtrip.models.trip_models import Trip
from longtrip.services.providers import ResponseParser
from longtrip.utils.errors import ResponseParseError


ACTIVITY_CATEGORIES = {
    "cultural": ["temple", "shrine", "museum", "palace", "cathedral", "monument", "heritage"],
    "food": ["restaurant", "market", "food", "cuisine", "meal", "dining", "cafe", "coffee"],
    "shopping": ["shop", "mall", "boutique", "souvenir", "store"],
    "nature": ["park", "garden", "river", "mountain", "beach", "forest", "nature"],
    "nightlife": ["bar", "club", "lounge", "nightlife"],
    "leisure": ["free time", "exploration", "relax", "entertainment"],
}

TIME_PATTERN = re.compile(r"^\s*(\d{1,2})[:.](\d{2})")


class ItineraryResponseParser(ResponseParser):
    """Default parser for the chunk JSON schema"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.recovery_strategies: List[Tuple[str, Callable[[str], Any]]] = [
            ("direct", self._parse_direct),
            ("embedded", self._parse_embedded),
            ("repaired", self._parse_repaired),
        ]

    def parse_chunk_response(self, content: Any, chunk_trip: Trip, chunk: Chunk) -> List[DayItinerary]:
        data = self.load_content(content)
        raw_days = self._extract_days(data)

        if len(raw_days) < chunk.length:
            raise ResponseParseError(
                f"Expected {chunk.length} days for chunk {chunk.id}, got {len(raw_days)}"
            )
        if len(raw_days) > chunk.length:
            self.logger.warning(
                f"[parser] Chunk {chunk.id} returned {len(raw_days)} days, keeping first {chunk.length}"
            )

        start_date = chunk_trip.destination.start_date
        days = []
        for offset, raw_day in enumerate(raw_days[:chunk.length]):
            day_number = chunk.start_day + offset
            activities = self._normalize_activities(raw_day.get("activities"), chunk_trip, day_number)
            if not activities:
                raise ResponseParseError(f"Day {day_number} of chunk {chunk.id} has no activities")

            notes = raw_day.get("notes") or raw_day.get("theme")
            days.append(DayItinerary(
                day_number=day_number,
                date=start_date + timedelta(days=offset),
                activities=activities,
                notes=str(notes) if notes else None,
                chunk_id=chunk.id
            ))
        return days

    def load_content(self, content: Any) -> Any:
        """Turn provider content into JSON data, trying each recovery strategy in order"""
        if isinstance(content, (dict, list)):
            return content
        if isinstance(content, bytes):
            content = content.decode("utf-8", errors="ignore")
        if not isinstance(content, str) or not content.strip():
            raise ResponseParseError("Empty AI response")

        for name, strategy in self.recovery_strategies:
            try:
                data = strategy(content)
            except (json.JSONDecodeError, ValueError) as e:
                self.logger.debug(f"[parser] {name} strategy failed", extra={"error": str(e)})
                continue
            if data is not None:
                if name != "direct":
                    self.logger.info(f"[parser] Recovered response with {name} strategy")
                return data

        raise ResponseParseError("Failed to parse AI response as JSON")

    @staticmethod
    def _parse_direct(text: str) -> Any:
        return json.loads(text)

    @staticmethod
    def _parse_embedded(text: str) -> Optional[Any]:
        """Strip code fences and parse the outermost object or array"""
        stripped = re.sub(r"^```(?:json)?\s*|\s*```\s*$", "", text.strip())
        candidates = []
        for open_ch, close_ch in (("{", "}"), ("[", "]")):
            start = stripped.find(open_ch)
            end = stripped.rfind(close_ch)
            if start != -1 and end > start:
                candidates.append((start, stripped[start:end + 1]))
        # Outermost structure first
        for _, candidate in sorted(candidates):
            try:
                return json.loads(candidate)
            except json.JSONDecodeError:
                continue
        return None

    def _parse_repaired(self, text: str) -> Optional[Any]:
        repaired = self.repair_json_string(text)
        if repaired is None:
            return None
        return json.loads(repaired)

    @staticmethod
    def repair_json_string(text: str) -> Optional[str]:
        """Best-effort repair for truncated JSON: drops a dangling string, trailing commas, closes brackets"""
        starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
        if not starts:
            return None
        s = text[min(starts):]

        # Walk the text tracking open brackets outside strings
        stack: List[str] = []
        in_string = False
        escaped = False
        last_string_start = -1
        for i, ch in enumerate(s):
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
                last_string_start = i
            elif ch in "{[":
                stack.append("}" if ch == "{" else "]")
            elif ch in "}]" and stack:
                stack.pop()

        if in_string:
            s = s[:last_string_start]

        s = s.rstrip()
        # A dangling key or separator cannot be completed
        s = re.sub(r'(,?\s*"[^"]*"\s*:\s*|,\s*)$', "", s)
        s = re.sub(r",\s*(\}|\])", r"\1", s)
        return s + "".join(reversed(stack))

    @staticmethod
    def _extract_days(data: Any) -> List[Dict[str, Any]]:
        if isinstance(data, dict):
            for key in ("days", "itinerary", "daily_itineraries"):
                if isinstance(data.get(key), list):
                    data = data[key]
                    break
            else:
                raise ResponseParseError("Response has no list of days")
        if not isinstance(data, list):
            raise ResponseParseError(f"Unexpected response type: {type(data).__name__}")
        return [day for day in data if isinstance(day, dict)]

    def _normalize_activities(self, raw_activities: Any, chunk_trip: Trip, day_number: int) -> List[Activity]:
        if not isinstance(raw_activities, list):
            return []

        activities = []
        for index, raw in enumerate(raw_activities):
            if not isinstance(raw, dict):
                continue
            try:
                activities.append(self._build_activity(raw, index, chunk_trip))
            except (ValidationError, ValueError, TypeError) as e:
                self.logger.warning(
                    f"[parser] Dropping malformed activity on day {day_number}",
                    extra={"error": str(e)}
                )
        return activities

    def _build_activity(self, raw: Dict[str, Any], index: int, chunk_trip: Trip) -> Activity:
        title = raw.get("title") or raw.get("name") or raw.get("activity")
        if not title or not isinstance(title, str):
            raise ValueError("activity has no title")

        description = raw.get("description") or ""
        category = raw.get("category") or self.classify_activity(f"{title} {description}")
        currency = raw.get("currency") or (chunk_trip.budget.currency if chunk_trip.budget else None)

        return Activity(
            time=self._normalize_time(raw.get("time"), index),
            title=title.strip(),
            description=str(description),
            location=self._normalize_location(raw.get("location"), chunk_trip),
            duration_minutes=self._as_int(raw.get("duration_minutes") or raw.get("duration"), 120),
            cost=max(0.0, self._as_float(raw.get("cost") or raw.get("estimated_cost"), 0.0)),
            currency=currency,
            category=str(category),
            notes=str(raw.get("notes") or "")
        )

    @staticmethod
    def _normalize_time(value: Any, index: int) -> str:
        if isinstance(value, str):
            match = TIME_PATTERN.match(value)
            if match:
                hour, minute = int(match.group(1)), int(match.group(2))
                if hour < 24 and minute < 60:
                    return f"{hour:02d}:{minute:02d}"
        # Spread untimed activities through the day
        return f"{min(9 + index * 3, 23):02d}:00"

    @staticmethod
    def _normalize_location(value: Any, chunk_trip: Trip) -> LocationModel:
        city = chunk_trip.destination.display_name
        if isinstance(value, str) and value.strip():
            return LocationModel(name=value.strip(), address=city)
        if isinstance(value, dict):
            coords = value.get("coordinates") or {}
            lat = coords.get("lat") if isinstance(coords, dict) else None
            lng = coords.get("lng") if isinstance(coords, dict) else None
            return LocationModel(
                name=str(value.get("name") or city),
                address=str(value.get("address") or city),
                coordinates=Coordinates(
                    lat=lat if isinstance(lat, (int, float)) else 0.0,
                    lng=lng if isinstance(lng, (int, float)) else 0.0
                )
            )
        return LocationModel(name=city, address=city)

    @staticmethod
    def classify_activity(text: str) -> str:
        lowered = text.lower()
        for category, keywords in ACTIVITY_CATEGORIES.items():
            if any(keyword in lowered for keyword in keywords):
                return category
        return "sightseeing"

    @staticmethod
    def _as_float(value: Any, default: float) -> float:
        if isinstance(value, bool):
            return default
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            match = re.search(r"\d+(?:\.\d+)?", value.replace(",", ""))
            if match:
                return float(match.group())
        return default

    @classmethod
    def _as_int(cls, value: Any, default: int) -> int:
        return max(0, int(round(cls._as_float(value, default))))
