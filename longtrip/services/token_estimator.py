"""
Token budget estimation for itinerary generation.

Estimates are deterministic functions of the chunk plan and the destination,
so callers can compare single-shot, chunked and simplified generation before
spending any provider tokens.
"""

import json
import logging
import math
from typing import Any, List, Optional

from longtrip.models.chunk_models import (
    ApproachEstimate,
    Chunk,
    ChunkFocus,
    DetailLevel,
    TokenBudget,
    TokenEfficiencyAnalysis,
    TripAnalysis,
)
from longtrip.models.trip_models import Trip


class TokenBudgetEstimator:
    """Estimates token usage for chunks, whole trips and prompt text"""

    # Rough estimate: 1 token ≈ 4 characters for English text
    CHARS_PER_TOKEN = 4

    BASE_TOKENS_PER_DAY = {
        DetailLevel.COMPREHENSIVE: 400,  # descriptions, tips, logistics
        DetailLevel.BALANCED: 280,
        DetailLevel.SIMPLIFIED: 180,     # essentials only
    }
    ACTIVITIES_PER_DAY = {
        DetailLevel.COMPREHENSIVE: 4.5,
        DetailLevel.BALANCED: 3.5,
        DetailLevel.SIMPLIFIED: 2.5,
    }
    TOKENS_PER_ACTIVITY = {
        DetailLevel.COMPREHENSIVE: 120,
        DetailLevel.BALANCED: 85,
        DetailLevel.SIMPLIFIED: 50,
    }

    FOCUS_COMPLEXITY = {
        ChunkFocus.ARRIVAL_ORIENTATION: 1.3,
        ChunkFocus.CULTURAL_IMMERSION: 1.2,
        ChunkFocus.FOOD_DISCOVERY: 1.1,
        ChunkFocus.HISTORICAL_SITES: 1.2,
        ChunkFocus.NATURE_EXPLORATION: 1.0,
        ChunkFocus.LOCAL_EXPERIENCES: 1.1,
        ChunkFocus.ENTERTAINMENT_LEISURE: 0.9,
        ChunkFocus.NIGHTLIFE_ENTERTAINMENT: 1.0,
        ChunkFocus.DEPARTURE_LOGISTICS: 0.8,
        ChunkFocus.GENERAL_SIGHTSEEING: 1.0,
    }

    # Ordered highest complexity first; first keyword hit wins
    DESTINATION_COMPLEXITY = [
        (1.4, ("multi", "tour", "several", "various")),
        (1.3, ("japan", "tokyo", "kyoto", "china", "india", "morocco")),
        (1.2, ("vietnam", "thailand", "korea", "russia", "middle east", "arabia")),
        (1.1, ("europe", "italy", "france", "spain", "germany", "brazil")),
    ]

    CONTEXT_OVERHEAD_TOKENS = 50
    HIGH_CAPACITY_THRESHOLD = 4000
    CHUNK_SUGGESTION_THRESHOLD = 6000
    TOKENS_PER_SUGGESTED_CHUNK = 4000

    def __init__(self, standard_token_ceiling: int = 6000):
        self.standard_token_ceiling = standard_token_ceiling
        self.logger = logging.getLogger(__name__)

    @classmethod
    def estimate_text_tokens(cls, text: str) -> int:
        """Estimate token count from text"""
        return len(text or "") // cls.CHARS_PER_TOKEN

    @classmethod
    def estimate_json_tokens(cls, data: Any) -> int:
        """Estimate tokens from JSON-serializable data"""
        try:
            json_str = json.dumps(data, ensure_ascii=False, separators=(",", ":"), default=str)
        except (TypeError, ValueError):
            return 0
        return cls.estimate_text_tokens(json_str)

    def estimate_chunk(self, chunk: Chunk, trip: Optional[Trip] = None) -> int:
        """Estimate generation tokens for one chunk"""
        per_day = self._tokens_per_day(
            chunk.detail_level,
            self.focus_complexity(chunk.focus) * self.destination_complexity(trip)
        )
        overhead = self.CONTEXT_OVERHEAD_TOKENS if chunk.is_continuation else 0
        return round(chunk.length * per_day + overhead)

    def estimate_total(self, chunks: List[Chunk], trip: Optional[Trip] = None) -> int:
        """Sum of per-chunk estimates"""
        return sum(self.estimate_chunk(chunk, trip) for chunk in chunks)

    def estimate_standard(self, trip: Trip, detail_level: DetailLevel = DetailLevel.BALANCED) -> int:
        """Estimate tokens for generating the whole trip in one request"""
        per_day = self._tokens_per_day(detail_level, self.destination_complexity(trip))
        return round(trip.duration * per_day)

    def calculate_token_budget(self, estimated_tokens: int, safety_margin: float = 0.2) -> TokenBudget:
        """Wrap an estimate with a safety margin and a model recommendation"""
        if estimated_tokens > self.CHUNK_SUGGESTION_THRESHOLD:
            suggestion = math.ceil(estimated_tokens / self.TOKENS_PER_SUGGESTED_CHUNK)
        else:
            suggestion = 1
        return TokenBudget(
            estimated=estimated_tokens,
            budget_with_margin=round(estimated_tokens * (1 + safety_margin)),
            safety_margin=round(estimated_tokens * safety_margin),
            recommended_model="high-capacity" if estimated_tokens > self.HIGH_CAPACITY_THRESHOLD else "fast",
            chunk_count_suggestion=suggestion
        )

    def analyze_token_efficiency(self, trip: Trip, analysis: TripAnalysis) -> TokenEfficiencyAnalysis:
        """Compare standard, chunked and simplified generation for a trip"""
        standard_tokens = self.estimate_standard(trip, DetailLevel.BALANCED)
        simplified_tokens = self.estimate_standard(trip, DetailLevel.SIMPLIFIED)
        if analysis.needs_chunking:
            chunked_tokens = analysis.estimated_tokens or self.estimate_total(analysis.chunks, trip)
        else:
            chunked_tokens = standard_tokens

        return TokenEfficiencyAnalysis(
            standard=ApproachEstimate(
                tokens=standard_tokens,
                approach="single_call",
                quality="high",
                risk_level="high" if standard_tokens > self.standard_token_ceiling else "low"
            ),
            chunked=ApproachEstimate(
                tokens=chunked_tokens,
                approach="chunked",
                quality="high",
                risk_level="low",
                chunks=len(analysis.chunks) or 1
            ),
            simplified=ApproachEstimate(
                tokens=simplified_tokens,
                approach="simplified",
                quality="medium",
                risk_level="low"
            ),
            recommendation=self.recommend_approach(standard_tokens, trip.duration)
        )

    def recommend_approach(self, standard_tokens: int, duration: int) -> str:
        if duration <= 4:
            return "simplified" if standard_tokens > self.standard_token_ceiling else "standard"
        if duration <= 7:
            return "chunked" if standard_tokens > 5000 else "standard"
        return "chunked"

    def focus_complexity(self, focus: ChunkFocus) -> float:
        return self.FOCUS_COMPLEXITY.get(focus, 1.0)

    def destination_complexity(self, trip: Optional[Trip]) -> float:
        if trip is None:
            return 1.0
        dest = trip.destination
        haystack = " ".join(filter(None, [dest.name, dest.city, dest.country])).lower()
        for multiplier, keywords in self.DESTINATION_COMPLEXITY:
            if any(keyword in haystack for keyword in keywords):
                return multiplier
        return 1.0

    def _tokens_per_day(self, detail_level: DetailLevel, complexity: float) -> float:
        base = self.BASE_TOKENS_PER_DAY.get(detail_level, 280)
        activities = self.ACTIVITIES_PER_DAY.get(detail_level, 3.5)
        per_activity = self.TOKENS_PER_ACTIVITY.get(detail_level, 85)
        return base + activities * per_activity * complexity
