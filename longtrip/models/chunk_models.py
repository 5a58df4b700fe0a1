from pydantic import BaseModel, Field, model_validator
from datetime import date
from typing import List, Optional, Set
from enum import Enum

from longtrip.models.itinerary_models import DayItinerary, counts_toward

class ChunkPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"

class ChunkFocus(str, Enum):
    ARRIVAL_ORIENTATION = "arrival_orientation"
    CULTURAL_IMMERSION = "cultural_immersion"
    LOCAL_EXPERIENCES = "local_experiences"
    NATURE_EXPLORATION = "nature_exploration"
    FOOD_DISCOVERY = "food_discovery"
    HISTORICAL_SITES = "historical_sites"
    ENTERTAINMENT_LEISURE = "entertainment_leisure"
    NIGHTLIFE_ENTERTAINMENT = "nightlife_entertainment"
    DEPARTURE_LOGISTICS = "departure_logistics"
    GENERAL_SIGHTSEEING = "general_sightseeing"

class DetailLevel(str, Enum):
    COMPREHENSIVE = "comprehensive"
    BALANCED = "balanced"
    SIMPLIFIED = "simplified"

class GenerationStrategy(str, Enum):
    SINGLE_GENERATION = "single_generation"
    PROGRESSIVE_CHUNKING = "progressive_chunking"
    SIMPLIFIED_GENERATION = "simplified_generation"
    EMERGENCY_FALLBACK = "emergency_fallback"

class Chunk(BaseModel):
    id: str
    start_day: int = Field(..., ge=1)
    end_day: int = Field(..., ge=1)
    priority: ChunkPriority = ChunkPriority.NORMAL
    focus: ChunkFocus = ChunkFocus.GENERAL_SIGHTSEEING
    detail_level: DetailLevel = DetailLevel.BALANCED

    @model_validator(mode="after")
    def validate_day_range(self):
        if self.start_day > self.end_day:
            raise ValueError(f"Chunk {self.id} starts after it ends ({self.start_day} > {self.end_day})")
        return self

    @property
    def length(self) -> int:
        return self.end_day - self.start_day + 1

    @property
    def is_continuation(self) -> bool:
        return self.start_day > 1

class TripAnalysis(BaseModel):
    needs_chunking: bool
    strategy: GenerationStrategy
    chunks: List[Chunk]
    estimated_tokens: int = 0

class TokenBudget(BaseModel):
    estimated: int
    budget_with_margin: int
    safety_margin: int
    recommended_model: str  # "fast" or "high-capacity"
    chunk_count_suggestion: int = 1

class ApproachEstimate(BaseModel):
    tokens: int
    approach: str
    quality: str
    risk_level: str
    chunks: int = 1

class TokenEfficiencyAnalysis(BaseModel):
    standard: ApproachEstimate
    chunked: ApproachEstimate
    simplified: ApproachEstimate
    recommendation: str  # "standard", "chunked" or "simplified"

class ChunkInfo(BaseModel):
    """Chunk descriptor attached to the chunk-scoped trip view"""
    id: str
    focus: ChunkFocus
    detail_level: DetailLevel
    day_range: str
    total_days: Optional[int] = None
    context: str  # "beginning" or "continuation"
    processed_chunks: int = 0
    remaining_budget: Optional[float] = None
    used_categories: List[str] = Field(default_factory=list)

class ChunkProgress(BaseModel):
    current: int
    total: int
    percentage: int
    chunk_id: str
    stage: str = "chunk_generation"

class GenerationContext(BaseModel):
    """
    Mutable state carried from one chunk to the next.

    One instance per generation request. Updated only after a chunk has
    finished (AI or fallback), never while a chunk is in flight.
    """
    destination: str
    start_date: date
    overlap_days: int = 2
    previous_days: List[DayItinerary] = Field(default_factory=list)
    processed_chunks: int = 0
    total_budget_used: float = 0.0
    activity_categories: Set[str] = Field(default_factory=set)
    overall_theme: str = "sightseeing"
    constraints: List[str] = Field(default_factory=list)
    budget_total: Optional[float] = None
    currency: Optional[str] = None  # costs in other currencies are not counted

    @property
    def is_continuation(self) -> bool:
        return len(self.previous_days) > 0

    def record_chunk(self, days: List[DayItinerary]) -> float:
        """Slide the previous-days window and fold in the chunk's categories and cost"""
        if self.overlap_days > 0:
            self.previous_days = (self.previous_days + list(days))[-self.overlap_days:]
        else:
            self.previous_days = []
        self.processed_chunks += 1

        chunk_cost = 0.0
        for day in days:
            for activity in day.activities:
                if activity.category:
                    self.activity_categories.add(activity.category)
                if counts_toward(activity, self.currency):
                    chunk_cost += activity.cost or 0.0
        self.total_budget_used += chunk_cost
        return chunk_cost

    def remaining_budget(self) -> Optional[float]:
        if not self.budget_total:
            return None
        return max(0.0, self.budget_total - self.total_budget_used)
