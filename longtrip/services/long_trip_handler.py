"""
Entry point for long trip itinerary generation.

Picks a generation strategy for each trip and always hands back a complete
itinerary: the degradation ladder goes standard, chunked, simplified and
finally the template-only emergency fallback. Only malformed trips raise.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from longtrip.models.chunk_models import (
    Chunk,
    DetailLevel,
    GenerationStrategy,
    TokenBudget,
    TokenEfficiencyAnalysis,
    TripAnalysis,
)
from longtrip.models.itinerary_models import FinalItinerary
from longtrip.models.trip_models import Trip, TripPreferences
from longtrip.services.chunk_generator import CANCELLED_ERROR, ChunkGenerator, ProgressCallback
from longtrip.services.chunk_planner import ChunkPlanner
from longtrip.services.fallback_generator import FallbackGenerator
from longtrip.services.location_utility import LocationUtility
from longtrip.services.providers import AIServices
from longtrip.services.result_combiner import ResultCombiner
from longtrip.services.token_estimator import TokenBudgetEstimator
from longtrip.utils.config import Settings, get_settings
from longtrip.utils.errors import BudgetExceededError
from longtrip.utils.validators import TripValidator

TripInput = Union[Trip, Dict[str, Any]]

FALLBACK_TOKEN_BUDGET = "token_budget_exceeded"
FALLBACK_GENERATION_ERROR = "generation_error"
FALLBACK_NO_AI_SERVICES = "ai_services_unavailable"


class LongTripHandler:
    """Wires planning, estimation, chunked generation and fallback together"""

    def __init__(self, services: Optional[AIServices] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.services = services
        self.logger = logging.getLogger(__name__)

        self.estimator = TokenBudgetEstimator(self.settings.STANDARD_TOKEN_CEILING)
        self.planner = ChunkPlanner(self.settings, self.estimator)
        if services is not None:
            self.fallback_generator = services.fallback_generator
            self.location_utility = services.fallback_generator.location_utility
        else:
            self.location_utility = LocationUtility()
            self.fallback_generator = FallbackGenerator(self.location_utility, self.settings.FALLBACK_RANDOM_SEED)
        self.combiner = ResultCombiner(self.fallback_generator)

    def analyze_trip(self, trip: TripInput, preferences: Optional[TripPreferences] = None) -> TripAnalysis:
        """Chunk plan and token estimate for a trip"""
        return self.planner.analyze(self._validate_trip(trip), preferences)

    def estimate_tokens(self, trip: TripInput) -> TokenBudget:
        analysis = self.analyze_trip(trip)
        return self.estimator.calculate_token_budget(analysis.estimated_tokens, self.settings.TOKEN_SAFETY_MARGIN)

    def preview_chunks(self, trip: TripInput) -> List[Chunk]:
        return self.analyze_trip(trip).chunks

    def should_use_chunking(self, trip: TripInput) -> bool:
        return self._validate_trip(trip).duration >= self.settings.MIN_DAYS_FOR_CHUNKING

    def get_token_efficiency(self, trip: TripInput) -> TokenEfficiencyAnalysis:
        validated = self._validate_trip(trip)
        return self.estimator.analyze_token_efficiency(validated, self.planner.analyze(validated))

    async def generate_long_trip_itinerary(
        self,
        trip: TripInput,
        cancel_event: Optional[asyncio.Event] = None,
        timeout_seconds: Optional[float] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> FinalItinerary:
        """
        Generate a full itinerary for a trip of any length.

        Raises:
            TripValidationError: the trip is malformed; nothing is generated

        Every other failure is absorbed: failed chunks are filled from
        templates and unexpected errors yield the emergency fallback.
        """
        validated, warnings = TripValidator.check(trip, self.settings.MAX_TRIP_DURATION_DAYS)
        itinerary = await self._generate(validated, cancel_event, timeout_seconds, on_progress)
        if warnings:
            itinerary.metadata["warnings"] = warnings
        return itinerary

    async def _generate(
        self,
        validated: Trip,
        cancel_event: Optional[asyncio.Event],
        timeout_seconds: Optional[float],
        on_progress: Optional[ProgressCallback]
    ) -> FinalItinerary:
        started = time.monotonic()
        timeout = timeout_seconds if timeout_seconds is not None else self.settings.GENERATION_TIMEOUT_SECONDS
        deadline = started + timeout if timeout is not None else None

        if self.services is None:
            self.logger.warning("[handler] No AI services configured, using emergency fallback")
            return self.fallback_generator.generate_emergency_fallback(validated, reason=FALLBACK_NO_AI_SERVICES)

        try:
            analysis = self.planner.analyze(validated)
            self._check_token_budget(analysis)
            strategy, analysis = self._select_strategy(validated, analysis)

            self.logger.info(
                f"[handler] Generating {validated.duration}-day trip with {strategy.value}",
                extra={"chunks": len(analysis.chunks), "estimated_tokens": analysis.estimated_tokens}
            )
            generator = ChunkGenerator(self.services, self.planner, self.estimator, self.settings)
            results = await generator.generate_chunked_itinerary(
                validated, analysis, cancel_event, deadline, on_progress
            )
            cancelled = any(r.error == CANCELLED_ERROR for r in results)
            return self.combiner.combine(
                results,
                validated,
                strategy=strategy,
                cancelled=cancelled,
                metadata={
                    "estimated_tokens": analysis.estimated_tokens,
                    "chunk_count": len(analysis.chunks),
                    "elapsed_seconds": round(time.monotonic() - started, 3),
                }
            )
        except BudgetExceededError as e:
            self.logger.warning(f"[handler] Circuit breaker tripped: {e.detail}")
            return self.fallback_generator.generate_emergency_fallback(
                validated, reason=FALLBACK_TOKEN_BUDGET, error=e.detail
            )
        except Exception as e:
            self.logger.exception("[handler] Unexpected error during generation")
            return self.fallback_generator.generate_emergency_fallback(
                validated, reason=FALLBACK_GENERATION_ERROR, error=str(e)
            )

    def health_status(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "services": {
                "chunk_planner": self.planner is not None,
                "token_estimator": self.estimator is not None,
                "ai_services": self.services is not None,
                "fallback_generator": self.fallback_generator is not None,
                "location_utility": self.location_utility is not None,
                "result_combiner": self.combiner is not None,
            },
            "configuration": {
                "max_tokens_per_request": self.settings.MAX_TOKENS_PER_REQUEST,
                "max_days_per_chunk": self.settings.MIDDLE_CHUNK_DAYS,
                "min_days_for_chunking": self.settings.MIN_DAYS_FOR_CHUNKING,
                "inter_chunk_delay_seconds": self.settings.INTER_CHUNK_DELAY_SECONDS,
            },
            "timestamp": datetime.now().isoformat(),
        }

    def _validate_trip(self, trip: TripInput) -> Trip:
        return TripValidator.ensure_valid(trip, self.settings.MAX_TRIP_DURATION_DAYS)

    def _check_token_budget(self, analysis: TripAnalysis) -> None:
        ceiling = self.settings.MAX_TOKENS_PER_REQUEST * max(1, len(analysis.chunks))
        if analysis.estimated_tokens > ceiling:
            raise BudgetExceededError(analysis.estimated_tokens, ceiling)

    def _select_strategy(self, trip: Trip, analysis: TripAnalysis):
        """Strategy to run and the (possibly adjusted) chunk plan for it"""
        if analysis.needs_chunking:
            return GenerationStrategy.PROGRESSIVE_CHUNKING, analysis

        standard_tokens = self.estimator.estimate_standard(trip)
        if standard_tokens <= self.settings.STANDARD_TOKEN_CEILING:
            return GenerationStrategy.SINGLE_GENERATION, analysis

        self.logger.info(
            f"[handler] Standard estimate {standard_tokens:,} above ceiling, using simplified generation"
        )
        chunks = [c.model_copy(update={"detail_level": DetailLevel.SIMPLIFIED}) for c in analysis.chunks]
        simplified = analysis.model_copy(update={
            "strategy": GenerationStrategy.SIMPLIFIED_GENERATION,
            "chunks": chunks,
            "estimated_tokens": self.estimator.estimate_total(chunks, trip),
        })
        return GenerationStrategy.SIMPLIFIED_GENERATION, simplified
