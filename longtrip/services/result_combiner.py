import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from longtrip.models.chunk_models import Chunk, ChunkFocus, ChunkPriority, DetailLevel, GenerationStrategy
from longtrip.models.itinerary_models import (
    ChunkResult,
    ChunkResultSummary,
    DayItinerary,
    FinalItinerary,
    ItinerarySummary,
)
from longtrip.models.trip_models import Trip
from longtrip.services.fallback_generator import FallbackGenerator


class ResultCombiner:
    """Merges per-chunk results into one itinerary covering every trip day"""

    def __init__(self, fallback_generator: Optional[FallbackGenerator] = None):
        self.fallback_generator = fallback_generator or FallbackGenerator()
        self.logger = logging.getLogger(__name__)

    def combine(
        self,
        chunk_results: List[ChunkResult],
        trip: Trip,
        strategy: GenerationStrategy = GenerationStrategy.PROGRESSIVE_CHUNKING,
        cancelled: bool = False,
        metadata: Optional[Dict[str, Any]] = None
    ) -> FinalItinerary:
        all_days = [day for result in chunk_results for day in result.days]
        days = self.normalize_days(all_days, trip)

        successful = sum(1 for r in chunk_results if r.success)
        fallback = sum(1 for r in chunk_results if r.fallback_used)
        summaries = [
            ChunkResultSummary(
                chunk_id=r.chunk_id,
                focus=r.focus,
                success=r.success,
                days=len(r.days),
                fallback_used=r.fallback_used
            )
            for r in chunk_results
        ]

        metadata = dict(metadata or {})
        metadata.setdefault("tokens_used", sum(r.tokens_used for r in chunk_results))

        self.logger.info(
            f"[combiner] Combined {len(chunk_results)} chunks into {len(days)} days",
            extra={"successful_chunks": successful, "fallback_chunks": fallback}
        )
        return FinalItinerary(
            destination=trip.destination.name,
            strategy=strategy.value,
            days=days,
            summary=ItinerarySummary.from_days(
                days, successful, fallback, len(chunk_results), trip.budget.currency if trip.budget else None
            ),
            chunk_results=summaries,
            cancelled=cancelled,
            metadata=metadata
        )

    def normalize_days(self, days: List[DayItinerary], trip: Trip) -> List[DayItinerary]:
        """Sort by date, drop duplicate dates, pad gaps, truncate and renumber"""
        start = trip.destination.start_date
        end = start + timedelta(days=trip.duration - 1)

        by_date: Dict[Any, DayItinerary] = {}
        # sorted() is stable, so the first chunk's copy of a date wins
        for day in sorted(days, key=lambda d: d.date):
            if start <= day.date <= end and day.date not in by_date:
                by_date[day.date] = day
        dropped = len(days) - len(by_date)
        if dropped:
            self.logger.warning(f"[combiner] Dropped {dropped} duplicate or out-of-range days")

        normalized = []
        for offset in range(trip.duration):
            current = start + timedelta(days=offset)
            day = by_date.get(current) or self._pad_day(trip, offset + 1)
            normalized.append(day.model_copy(update={"day_number": offset + 1, "date": current}))
        return normalized

    def _pad_day(self, trip: Trip, day_number: int) -> DayItinerary:
        self.logger.warning(f"[combiner] Day {day_number} missing from chunk results, padding from templates")
        chunk = Chunk(
            id=f"padding_day_{day_number}",
            start_day=day_number,
            end_day=day_number,
            priority=ChunkPriority.LOW,
            focus=ChunkFocus.GENERAL_SIGHTSEEING,
            detail_level=DetailLevel.SIMPLIFIED
        )
        return self.fallback_generator.generate_fallback_days(trip, chunk)[0]
