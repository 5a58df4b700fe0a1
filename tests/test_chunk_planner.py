from datetime import date

import pytest

from longtrip.models.chunk_models import Chunk, ChunkFocus, DetailLevel, GenerationStrategy
from longtrip.services.chunk_planner import ChunkPlanner


@pytest.fixture
def planner(test_settings):
    return ChunkPlanner(test_settings)


def day_ranges(chunks):
    return [(c.start_day, c.end_day) for c in chunks]


def test_short_trip_is_single_chunk(planner, make_trip):
    """A 3-day trip is generated in one piece"""
    analysis = planner.analyze(make_trip(duration=3))

    assert analysis.needs_chunking is False
    assert analysis.strategy == GenerationStrategy.SINGLE_GENERATION
    assert len(analysis.chunks) == 1
    chunk = analysis.chunks[0]
    assert (chunk.id, chunk.start_day, chunk.end_day) == ("full_trip", 1, 3)
    assert chunk.focus == ChunkFocus.GENERAL_SIGHTSEEING
    assert analysis.estimated_tokens > 0

def test_ten_day_trip_chunks(planner, make_trip):
    analysis = planner.analyze(make_trip(duration=10))

    assert analysis.needs_chunking is True
    assert analysis.strategy == GenerationStrategy.PROGRESSIVE_CHUNKING
    assert day_ranges(analysis.chunks) == [(1, 2), (3, 8), (9, 9), (10, 10)]
    assert [c.id for c in analysis.chunks] == ["arrival", "middle_1", "middle_2", "departure"]
    assert analysis.chunks[0].focus == ChunkFocus.ARRIVAL_ORIENTATION
    assert analysis.chunks[-1].focus == ChunkFocus.DEPARTURE_LOGISTICS
    assert analysis.chunks[0].detail_level == DetailLevel.COMPREHENSIVE
    assert analysis.chunks[-1].detail_level == DetailLevel.SIMPLIFIED

def test_heavy_nightlife_gets_nightlife_chunk(planner, make_trip):
    analysis = planner.analyze(make_trip(duration=8, nightlife="heavy"))
    middle = [c for c in analysis.chunks if c.id.startswith("middle_")]
    assert any(c.focus == ChunkFocus.NIGHTLIFE_ENTERTAINMENT for c in middle)

@pytest.mark.parametrize("pace", ["easy", "moderate", "intense"])
@pytest.mark.parametrize("nightlife", ["none", "heavy"])
def test_chunks_partition_trip(planner, make_trip, pace, nightlife):
    """Chunks are contiguous, non-overlapping and cover every day exactly once"""
    for duration in range(1, 61):
        chunks = planner.analyze(make_trip(duration=duration, pace=pace, nightlife=nightlife)).chunks

        assert chunks[0].start_day == 1
        assert chunks[-1].end_day == duration
        for previous, current in zip(chunks, chunks[1:]):
            assert current.start_day == previous.end_day + 1
        assert sum(c.length for c in chunks) == duration

def test_five_day_trip_boundary(planner, make_trip):
    assert planner.analyze(make_trip(duration=4)).needs_chunking is False
    analysis = planner.analyze(make_trip(duration=5))
    assert analysis.needs_chunking is True
    assert day_ranges(analysis.chunks) == [(1, 2), (3, 4), (5, 5)]

def test_analyze_is_idempotent(planner, make_trip):
    trip = make_trip(duration=23, nightlife="light")
    first = planner.analyze(trip)
    second = planner.analyze(trip)
    assert first.chunks == second.chunks
    assert first.estimated_tokens == second.estimated_tokens

def test_easy_pace_uses_shorter_middle_chunks(planner, make_trip):
    chunks = planner.analyze(make_trip(duration=20, pace="easy")).chunks
    middle = [c for c in chunks if c.id.startswith("middle_")]
    assert [c.length for c in middle[:-1]] == [4] * (len(middle) - 1)
    assert day_ranges(middle) == [(3, 6), (7, 10), (11, 14), (15, 18), (19, 19)]

def test_intense_pace_uses_longer_middle_chunks(planner, make_trip):
    chunks = planner.analyze(make_trip(duration=20, pace="intense")).chunks
    middle = [c for c in chunks if c.id.startswith("middle_")]
    assert middle[0].length == 8

def test_chunk_focus_without_nightlife(planner, make_trip):
    chunks = planner.analyze(make_trip(duration=20)).chunks
    assert chunks[1].focus == ChunkFocus.LOCAL_EXPERIENCES
    assert all(c.focus != ChunkFocus.NIGHTLIFE_ENTERTAINMENT for c in chunks)

def test_light_nightlife_lands_on_weekend_chunks(planner, make_trip):
    chunks = planner.analyze(make_trip(duration=25, nightlife="light")).chunks
    by_id = {c.id: c for c in chunks}
    assert by_id["middle_1"].focus == ChunkFocus.NIGHTLIFE_ENTERTAINMENT
    assert by_id["middle_2"].focus == ChunkFocus.NATURE_EXPLORATION
    assert by_id["middle_3"].focus == ChunkFocus.NIGHTLIFE_ENTERTAINMENT

def test_calculate_max_tokens_for_chunk(planner):
    assert planner.calculate_max_tokens_for_chunk(
        Chunk(id="a", start_day=1, end_day=2, detail_level=DetailLevel.COMPREHENSIVE)) == 3000
    assert planner.calculate_max_tokens_for_chunk(
        Chunk(id="b", start_day=3, end_day=4, detail_level=DetailLevel.BALANCED)) == 2000
    assert planner.calculate_max_tokens_for_chunk(
        Chunk(id="c", start_day=5, end_day=5, detail_level=DetailLevel.SIMPLIFIED)) == 1400

def test_calculate_chunk_start_date():
    assert ChunkPlanner.calculate_chunk_start_date(date(2026, 4, 1), 3) == date(2026, 4, 3)
    assert ChunkPlanner.calculate_chunk_start_date(date(2026, 4, 30), 2) == date(2026, 5, 1)

def test_chunk_rejects_inverted_range():
    with pytest.raises(ValueError):
        Chunk(id="bad", start_day=5, end_day=3)

def test_get_config(planner):
    config = planner.get_config()
    assert config["min_days_for_chunking"] == 5
    assert config["arrival_days"] == 2
    assert config["middle_days"] == 6
