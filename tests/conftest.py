import asyncio
import json
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Set

import pytest

from longtrip.models.trip_models import Trip
from longtrip.prompts.chunk_prompts import ChunkPromptBuilder
from longtrip.services.fallback_generator import FallbackGenerator
from longtrip.services.providers import AIProvider, AIServices, ProviderResponse
from longtrip.services.response_parser import ItineraryResponseParser
from longtrip.utils.config import Settings
from longtrip.utils.errors import ProviderError

START_DATE = date(2026, 4, 1)


def build_days_payload(day_count: int) -> Dict[str, Any]:
    """A well-formed chunk response with two activities per day"""
    return {
        "days": [
            {
                "day_number": i + 1,
                "theme": f"Theme {i + 1}",
                "activities": [
                    {
                        "time": "09:00",
                        "title": f"Museum visit {i + 1}",
                        "description": "Morning at the museum",
                        "location": {"name": "City Museum", "address": "1 Main St",
                                     "coordinates": {"lat": 35.68, "lng": 139.76}},
                        "duration_minutes": 120,
                        "cost": 20,
                        "category": "cultural",
                    },
                    {
                        "time": "13:00",
                        "title": f"Lunch {i + 1}",
                        "location": "Central Market",
                        "cost": 10,
                        "category": "food",
                    },
                ],
            }
            for i in range(day_count)
        ]
    }


class FakeProvider(AIProvider):
    """In-memory provider that answers with as many days as the schema asks for"""

    def __init__(
        self,
        fail_calls: Optional[Set[int]] = None,
        fail_all: bool = False,
        delay: float = 0.0,
        on_call: Optional[Callable[[int], None]] = None
    ):
        self.fail_calls = fail_calls or set()
        self.fail_all = fail_all
        self.delay = delay
        self.on_call = on_call
        self.calls: List[Dict[str, Any]] = []

    async def call_structured(self, model, prompt, schema, options=None):
        self.calls.append({"model": model, "prompt": prompt, "schema": schema, "options": options or {}})
        call_number = len(self.calls)
        if self.on_call:
            self.on_call(call_number)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_all or call_number in self.fail_calls:
            raise ProviderError(f"fake failure on call {call_number}")

        day_count = schema["properties"]["days"]["minItems"] if schema else 1
        return ProviderResponse(content=json.dumps(build_days_payload(day_count)), tokens_used=100)


@pytest.fixture
def test_settings():
    """Settings with no pacing delay and seeded fallback output"""
    return Settings(
        INTER_CHUNK_DELAY_SECONDS=0.0,
        PROVIDER_TIMEOUT_SECONDS=5.0,
        FALLBACK_RANDOM_SEED=42,
        GENERATION_TIMEOUT_SECONDS=None
    )


@pytest.fixture
def make_trip():
    """Factory for trips starting on a fixed date"""
    def _make_trip(
        duration: int = 10,
        name: str = "Tokyo, Japan",
        city: Optional[str] = "Tokyo",
        country: Optional[str] = "Japan",
        pace: str = "moderate",
        nightlife: str = "none",
        budget: Optional[Dict[str, Any]] = None
    ) -> Trip:
        return Trip.model_validate({
            "duration": duration,
            "destination": {"name": name, "city": city, "country": country, "start_date": START_DATE.isoformat()},
            "budget": budget,
            "preferences": {"pace": pace, "nightlife": nightlife, "interests": ["food", "temples"]},
        })
    return _make_trip


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def fallback_generator():
    return FallbackGenerator(seed=42)


@pytest.fixture
def make_services(fallback_generator):
    """Factory for an AIServices bundle around a given provider"""
    def _make_services(provider: AIProvider) -> AIServices:
        return AIServices(
            provider=provider,
            prompt_builder=ChunkPromptBuilder(),
            response_parser=ItineraryResponseParser(),
            fallback_generator=fallback_generator
        )
    return _make_services


@pytest.fixture
def days_payload():
    return build_days_payload


@pytest.fixture
def provider_factory():
    """FakeProvider class, for tests that need a non-default configuration"""
    return FakeProvider
