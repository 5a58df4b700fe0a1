from pydantic import BaseModel, Field
from datetime import date
from typing import List, Optional, Dict, Any

class Coordinates(BaseModel):
    lat: float = 0.0
    lng: float = 0.0

class LocationModel(BaseModel):
    name: str
    address: str = ""
    coordinates: Coordinates = Field(default_factory=Coordinates)

class Activity(BaseModel):
    time: str = Field(..., pattern=r"^([01]\d|2[0-3]):[0-5]\d$")  # HH:MM
    title: str
    description: str = ""
    location: LocationModel
    duration_minutes: int = Field(120, ge=0)
    cost: float = Field(0.0, ge=0)
    currency: Optional[str] = None
    local_cost: Optional[float] = Field(None, ge=0)  # display only, in local_currency
    local_currency: Optional[str] = None
    category: str = "sightseeing"
    notes: str = ""
    fallback_generated: bool = False

class DayItinerary(BaseModel):
    day_number: int = Field(..., ge=1)
    date: date
    activities: List[Activity] = Field(default_factory=list)
    notes: Optional[str] = None
    chunk_id: Optional[str] = None
    fallback_generated: bool = False
    emergency_fallback: bool = False

class ChunkResult(BaseModel):
    chunk_id: str
    focus: Optional[str] = None
    success: bool
    days: List[DayItinerary] = Field(default_factory=list)
    fallback_used: bool = False
    error: Optional[str] = None
    tokens_used: int = 0

class ChunkResultSummary(BaseModel):
    chunk_id: str
    focus: Optional[str] = None
    success: bool
    days: int
    fallback_used: bool = False

class ItinerarySummary(BaseModel):
    total_days: int
    total_activities: int
    estimated_cost: float
    successful_chunks: int
    fallback_chunks: int
    generation_success_ratio: float = Field(..., ge=0.0, le=1.0)

    @classmethod
    def from_days(
        cls,
        days: List[DayItinerary],
        successful_chunks: int,
        fallback_chunks: int,
        total_chunks: int,
        currency: Optional[str] = None
    ) -> "ItinerarySummary":
        """Summary counts; costs priced in a currency other than `currency` are left out of the total"""
        total_activities = sum(len(day.activities) for day in days)
        estimated_cost = sum(
            activity.cost
            for day in days
            for activity in day.activities
            if isinstance(activity.cost, (int, float)) and counts_toward(activity, currency)
        )
        ratio = successful_chunks / total_chunks if total_chunks else 0.0
        return cls(
            total_days=len(days),
            total_activities=total_activities,
            estimated_cost=round(estimated_cost),
            successful_chunks=successful_chunks,
            fallback_chunks=fallback_chunks,
            generation_success_ratio=ratio
        )

class FinalItinerary(BaseModel):
    destination: str
    strategy: str
    days: List[DayItinerary]
    summary: ItinerarySummary
    chunk_results: List[ChunkResultSummary] = Field(default_factory=list)
    fallback_reason: Optional[str] = None
    error: Optional[str] = None
    cancelled: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)

def counts_toward(activity: Activity, currency: Optional[str]) -> bool:
    """Whether an activity's cost can be added to a total kept in `currency`"""
    return not currency or not activity.currency or activity.currency.upper() == currency.upper()
