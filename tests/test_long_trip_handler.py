import asyncio

import pytest

from longtrip.services.long_trip_handler import (
    FALLBACK_GENERATION_ERROR,
    FALLBACK_NO_AI_SERVICES,
    FALLBACK_TOKEN_BUDGET,
    LongTripHandler,
)
from longtrip.utils.config import Settings
from longtrip.utils.errors import TripValidationError


@pytest.fixture
def build_handler(make_services, test_settings):
    def _build(provider, settings=None):
        return LongTripHandler(services=make_services(provider), settings=settings or test_settings)
    return _build


def generate(handler, trip, **kwargs):
    return asyncio.run(handler.generate_long_trip_itinerary(trip, **kwargs))


def test_short_trip_single_generation(build_handler, fake_provider, make_trip):
    """Test a 3-day trip generated in one provider call"""
    itinerary = generate(build_handler(fake_provider), make_trip(duration=3))

    assert itinerary.strategy == "single_generation"
    assert len(fake_provider.calls) == 1
    assert [d.day_number for d in itinerary.days] == [1, 2, 3]
    assert itinerary.summary.generation_success_ratio == 1.0
    assert itinerary.cancelled is False

def test_long_trip_progressive_chunking(build_handler, fake_provider, make_trip):
    itinerary = generate(build_handler(fake_provider), make_trip(duration=10))

    assert itinerary.strategy == "progressive_chunking"
    assert len(itinerary.days) == 10
    assert itinerary.summary.generation_success_ratio == 1.0
    assert itinerary.metadata["chunk_count"] == 4
    assert itinerary.metadata["tokens_used"] == 400
    assert itinerary.metadata["estimated_tokens"] > 0
    assert "elapsed_seconds" in itinerary.metadata

def test_partial_failure_is_reported(build_handler, provider_factory, make_trip):
    """Test one failed chunk out of three"""
    itinerary = generate(build_handler(provider_factory(fail_calls={2})), make_trip(duration=5))

    assert [d.day_number for d in itinerary.days] == [1, 2, 3, 4, 5]
    assert itinerary.summary.successful_chunks == 2
    assert itinerary.summary.fallback_chunks == 1
    assert itinerary.summary.generation_success_ratio == pytest.approx(2 / 3)
    assert [s.success for s in itinerary.chunk_results] == [True, False, True]

def test_total_provider_failure_still_covers_trip(build_handler, provider_factory, make_trip):
    itinerary = generate(build_handler(provider_factory(fail_all=True)), make_trip(duration=12))

    assert len(itinerary.days) == 12
    assert itinerary.summary.generation_success_ratio == 0
    assert all(d.fallback_generated for d in itinerary.days)

@pytest.mark.parametrize("duration", [1, 4, 5, 9, 21, 60])
def test_every_duration_is_covered(build_handler, fake_provider, make_trip, duration):
    itinerary = generate(build_handler(fake_provider), make_trip(duration=duration, name="Lisbon", city=None, country=None))
    assert [d.day_number for d in itinerary.days] == list(range(1, duration + 1))

def test_token_budget_circuit_breaker(build_handler, fake_provider, make_trip):
    settings = Settings(MAX_TOKENS_PER_REQUEST=100, INTER_CHUNK_DELAY_SECONDS=0.0, FALLBACK_RANDOM_SEED=42)

    itinerary = generate(build_handler(fake_provider, settings), make_trip(duration=10))

    assert fake_provider.calls == []
    assert itinerary.strategy == "emergency_fallback"
    assert itinerary.fallback_reason == FALLBACK_TOKEN_BUDGET
    assert len(itinerary.days) == 10

def test_simplified_generation_when_standard_too_large(build_handler, fake_provider, make_trip):
    settings = Settings(STANDARD_TOKEN_CEILING=100, INTER_CHUNK_DELAY_SECONDS=0.0, FALLBACK_RANDOM_SEED=42)

    itinerary = generate(build_handler(fake_provider, settings), make_trip(duration=3))

    assert itinerary.strategy == "simplified_generation"
    assert len(fake_provider.calls) == 1
    assert "Generate a simplified itinerary" in fake_provider.calls[0]["prompt"]
    assert len(itinerary.days) == 3

@pytest.mark.parametrize("trip", [
    {"duration": 5},
    {"duration": 61, "destination": {"name": "Tokyo", "start_date": "2026-04-01"}},
    {"duration": 0, "destination": {"name": "Tokyo", "start_date": "2026-04-01"}},
    {"duration": 5, "destination": {"name": "!!", "start_date": "2026-04-01"}},
    "Tokyo for a week",
])
def test_invalid_trip_raises(build_handler, fake_provider, trip):
    with pytest.raises(TripValidationError) as exc_info:
        generate(build_handler(fake_provider), trip)

    assert exc_info.value.errors
    assert fake_provider.calls == []

def test_accepts_trip_dict(build_handler, fake_provider):
    trip = {"duration": 6, "destination": {"name": "Kyoto", "start_date": "2026-05-01"}}
    itinerary = generate(build_handler(fake_provider), trip)
    assert itinerary.days[0].date.isoformat() == "2026-05-01"
    assert len(itinerary.days) == 6

def test_unexpected_error_uses_emergency_fallback(build_handler, fake_provider, make_trip, monkeypatch):
    handler = build_handler(fake_provider)

    def broken_combine(*args, **kwargs):
        raise RuntimeError("combine broke")

    monkeypatch.setattr(handler.combiner, "combine", broken_combine)
    itinerary = generate(handler, make_trip(duration=7))

    assert itinerary.strategy == "emergency_fallback"
    assert itinerary.fallback_reason == FALLBACK_GENERATION_ERROR
    assert itinerary.error == "combine broke"
    assert len(itinerary.days) == 7

def test_without_ai_services(make_trip, test_settings):
    handler = LongTripHandler(settings=test_settings)
    itinerary = generate(handler, make_trip(duration=4))

    assert itinerary.fallback_reason == FALLBACK_NO_AI_SERVICES
    assert len(itinerary.days) == 4
    assert handler.health_status()["services"]["ai_services"] is False

def test_validation_warnings_reach_metadata(build_handler, fake_provider, make_trip, test_settings):
    itinerary = generate(build_handler(fake_provider), make_trip(duration=10, budget={"total": 0}))
    assert itinerary.metadata["warnings"] == ["Budget is zero; cost estimates will not be tracked against it"]

    fallback = generate(LongTripHandler(settings=test_settings), make_trip(duration=30, pace="intense"))
    assert len(fallback.metadata["warnings"]) == 1

    assert "warnings" not in generate(build_handler(fake_provider), make_trip(duration=3)).metadata

def test_timeout_pads_remaining_chunks(build_handler, provider_factory, make_trip):
    provider = provider_factory(delay=0.5)
    itinerary = generate(build_handler(provider), make_trip(duration=10), timeout_seconds=0.1)

    assert itinerary.cancelled is True
    assert len(itinerary.days) == 10
    assert len(provider.calls) == 1
    assert itinerary.summary.generation_success_ratio == 0

def test_progress_passthrough(build_handler, fake_provider, make_trip):
    seen = []
    generate(build_handler(fake_provider), make_trip(duration=10), on_progress=seen.append)
    assert [p.current for p in seen] == [1, 2, 3, 4]

def test_health_status(build_handler, fake_provider):
    health = build_handler(fake_provider).health_status()

    assert health["status"] == "healthy"
    assert set(health["services"]) == {
        "chunk_planner", "token_estimator", "ai_services",
        "fallback_generator", "location_utility", "result_combiner",
    }
    assert all(health["services"].values())
    assert health["configuration"]["min_days_for_chunking"] == 5
    assert "timestamp" in health

def test_estimate_tokens(build_handler, fake_provider, make_trip):
    handler = build_handler(fake_provider)
    trip = make_trip(duration=10)

    budget = handler.estimate_tokens(trip)

    assert budget.estimated == handler.analyze_trip(trip).estimated_tokens
    assert budget.budget_with_margin == round(budget.estimated * 1.2)
    assert budget.recommended_model == "high-capacity"

def test_preview_and_chunking_threshold(build_handler, fake_provider, make_trip):
    handler = build_handler(fake_provider)

    assert [c.id for c in handler.preview_chunks(make_trip(duration=10))] == [
        "arrival", "middle_1", "middle_2", "departure"
    ]
    assert handler.should_use_chunking(make_trip(duration=4)) is False
    assert handler.should_use_chunking(make_trip(duration=5)) is True

def test_token_efficiency(build_handler, fake_provider, make_trip):
    efficiency = build_handler(fake_provider).get_token_efficiency(make_trip(duration=10))

    assert efficiency.recommendation == "chunked"
    assert efficiency.chunked.chunks == 4
    assert efficiency.simplified.tokens < efficiency.standard.tokens
