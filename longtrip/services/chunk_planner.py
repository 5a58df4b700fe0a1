"""
Chunk planning for long trips.

Splits a trip into an arrival chunk, evenly sized middle chunks and a
departure chunk. Planning is a pure function of the trip duration and
preferences so the day-range partition can be checked independently of any
generation run.
"""

import logging
import math
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from longtrip.models.chunk_models import (
    Chunk,
    ChunkFocus,
    ChunkPriority,
    DetailLevel,
    GenerationStrategy,
    TripAnalysis,
)
from longtrip.models.trip_models import NightlifePreference, Pace, Trip, TripPreferences
from longtrip.services.token_estimator import TokenBudgetEstimator
from longtrip.utils.config import Settings, get_settings


class ChunkPlanner:
    """Decides whether a trip needs chunking and builds the chunk list"""

    BASE_THEMES = [
        ChunkFocus.CULTURAL_IMMERSION,
        ChunkFocus.LOCAL_EXPERIENCES,
        ChunkFocus.NATURE_EXPLORATION,
        ChunkFocus.FOOD_DISCOVERY,
        ChunkFocus.HISTORICAL_SITES,
        ChunkFocus.ENTERTAINMENT_LEISURE,
    ]
    RELAXED_THEMES = [
        ChunkFocus.NATURE_EXPLORATION,
        ChunkFocus.CULTURAL_IMMERSION,
        ChunkFocus.LOCAL_EXPERIENCES,
    ]
    ACTIVE_THEMES = [
        ChunkFocus.CULTURAL_IMMERSION,
        ChunkFocus.FOOD_DISCOVERY,
        ChunkFocus.ENTERTAINMENT_LEISURE,
    ]
    NIGHTLIFE_INSERT_POSITION = 2

    MAX_TOKENS_BASE = 2000
    MAX_TOKENS_MULTIPLIERS = {
        DetailLevel.COMPREHENSIVE: 1.5,
        DetailLevel.BALANCED: 1.0,
        DetailLevel.SIMPLIFIED: 0.7,
    }

    def __init__(
        self,
        settings: Optional[Settings] = None,
        estimator: Optional[TokenBudgetEstimator] = None
    ):
        self.settings = settings or get_settings()
        self.estimator = estimator or TokenBudgetEstimator(self.settings.STANDARD_TOKEN_CEILING)
        self.logger = logging.getLogger(__name__)

        self.min_days_for_chunking = self.settings.MIN_DAYS_FOR_CHUNKING
        self.arrival_days = self.settings.ARRIVAL_CHUNK_DAYS
        self.departure_days = self.settings.DEPARTURE_CHUNK_DAYS
        self.middle_days = self.settings.MIDDLE_CHUNK_DAYS
        self.overlap_days = self.settings.OVERLAP_DAYS

    def analyze(self, trip: Trip, preferences: Optional[TripPreferences] = None) -> TripAnalysis:
        """Analyze a trip and produce its chunking strategy"""
        preferences = preferences or trip.preferences
        duration = trip.duration

        if duration < self.min_days_for_chunking:
            chunks = [
                Chunk(
                    id="full_trip",
                    start_day=1,
                    end_day=duration,
                    priority=ChunkPriority.NORMAL,
                    focus=ChunkFocus.GENERAL_SIGHTSEEING,
                    detail_level=DetailLevel.BALANCED
                )
            ]
            return TripAnalysis(
                needs_chunking=False,
                strategy=GenerationStrategy.SINGLE_GENERATION,
                chunks=chunks,
                estimated_tokens=self.estimator.estimate_total(chunks, trip)
            )

        chunks = self.create_chunks(duration, preferences)
        estimated = self.estimator.estimate_total(chunks, trip)
        self.logger.info(
            f"[planner] {duration}-day trip split into {len(chunks)} chunks (~{estimated:,} tokens)",
            extra={"duration": duration, "chunks": [c.id for c in chunks]}
        )
        return TripAnalysis(
            needs_chunking=True,
            strategy=GenerationStrategy.PROGRESSIVE_CHUNKING,
            chunks=chunks,
            estimated_tokens=estimated
        )

    def create_chunks(self, duration: int, preferences: Optional[TripPreferences] = None) -> List[Chunk]:
        """Build arrival, middle and departure chunks covering [1, duration]"""
        preferences = preferences or TripPreferences()
        chunks: List[Chunk] = []

        arrival_end = min(self.arrival_days, duration)
        chunks.append(Chunk(
            id="arrival",
            start_day=1,
            end_day=arrival_end,
            priority=ChunkPriority.HIGH,
            focus=ChunkFocus.ARRIVAL_ORIENTATION,
            detail_level=DetailLevel.COMPREHENSIVE
        ))

        # Departure never eats into the arrival range
        departure_start = max(arrival_end + 1, duration - self.departure_days + 1)
        middle_last_day = departure_start - 1
        chunk_size = self.middle_chunk_size(preferences.pace)

        current_day = arrival_end + 1
        chunk_index = 1
        while current_day <= middle_last_day:
            end_day = min(current_day + chunk_size - 1, middle_last_day)
            chunks.append(Chunk(
                id=f"middle_{chunk_index}",
                start_day=current_day,
                end_day=end_day,
                priority=ChunkPriority.NORMAL,
                focus=self.determine_chunk_focus(chunk_index, duration, preferences),
                detail_level=DetailLevel.BALANCED
            ))
            current_day = end_day + 1
            chunk_index += 1

        if departure_start <= duration:
            chunks.append(Chunk(
                id="departure",
                start_day=departure_start,
                end_day=duration,
                priority=ChunkPriority.LOW,
                focus=ChunkFocus.DEPARTURE_LOGISTICS,
                detail_level=DetailLevel.SIMPLIFIED
            ))

        return chunks

    def middle_chunk_size(self, pace: Pace) -> int:
        if pace == Pace.EASY:
            return max(1, math.floor(self.middle_days * 0.8))
        if pace == Pace.INTENSE:
            return math.ceil(self.middle_days * 1.2)
        return self.middle_days

    def determine_chunk_focus(
        self,
        chunk_index: int,
        total_duration: int,
        preferences: TripPreferences
    ) -> ChunkFocus:
        """Pick a middle chunk's theme, rotating through a pace-specific list"""
        nightlife = preferences.nightlife
        wants_nightlife = nightlife != NightlifePreference.NONE

        if wants_nightlife and self.is_weekend_chunk(chunk_index, total_duration):
            return ChunkFocus.NIGHTLIFE_ENTERTAINMENT

        if preferences.pace == Pace.EASY:
            themes = list(self.RELAXED_THEMES)
        elif preferences.pace == Pace.INTENSE:
            themes = list(self.ACTIVE_THEMES)
            if nightlife == NightlifePreference.HEAVY:
                themes.append(ChunkFocus.NIGHTLIFE_ENTERTAINMENT)
        else:
            themes = list(self.BASE_THEMES)
            if nightlife == NightlifePreference.HEAVY:
                themes.insert(self.NIGHTLIFE_INSERT_POSITION, ChunkFocus.NIGHTLIFE_ENTERTAINMENT)

        return themes[chunk_index % len(themes)]

    @staticmethod
    def is_weekend_chunk(chunk_index: int, total_duration: int) -> bool:
        # Positional guess, not calendar based: middle chunks 1 and 3 stand in for weekends
        return chunk_index == 1 or (chunk_index == 3 and total_duration >= 7)

    @staticmethod
    def calculate_chunk_start_date(trip_start_date: date, chunk_start_day: int) -> date:
        return trip_start_date + timedelta(days=chunk_start_day - 1)

    def calculate_max_tokens_for_chunk(self, chunk: Chunk) -> int:
        """Floor for a chunk's output token allowance"""
        return math.floor(self.MAX_TOKENS_BASE * self.MAX_TOKENS_MULTIPLIERS.get(chunk.detail_level, 1.0))

    def get_config(self) -> Dict[str, Any]:
        return {
            "min_days_for_chunking": self.min_days_for_chunking,
            "arrival_days": self.arrival_days,
            "departure_days": self.departure_days,
            "middle_days": self.middle_days,
            "overlap_days": self.overlap_days,
        }
