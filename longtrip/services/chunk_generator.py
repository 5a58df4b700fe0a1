"""
Sequential chunk-by-chunk itinerary generation.

Each chunk is generated with a narrowed view of the trip plus a short
window of the days generated before it, so no single request has to hold
the whole itinerary. Chunks run strictly in day order. A chunk whose
provider call fails, times out or returns unusable output is filled from
templates instead, so the result always covers every day of the trip.
"""

import asyncio
import inspect
import logging
import time
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from longtrip.models.chunk_models import (
    Chunk,
    ChunkInfo,
    ChunkPriority,
    ChunkProgress,
    GenerationContext,
    TripAnalysis,
)
from longtrip.models.itinerary_models import ChunkResult
from longtrip.models.trip_models import Trip
from longtrip.services.chunk_planner import ChunkPlanner
from longtrip.services.providers import AIServices
from longtrip.services.token_estimator import TokenBudgetEstimator
from longtrip.utils.config import Settings, get_settings
from longtrip.utils.errors import ProviderTimeoutError

ProgressCallback = Callable[[ChunkProgress], Any]
ChunkStrategy = Tuple[str, Callable[[Optional[str]], Awaitable[ChunkResult]]]

CANCELLED_ERROR = "cancelled"

logger = logging.getLogger(__name__)


async def run_strategy_chain(strategies: Sequence[ChunkStrategy], chunk_id: str) -> ChunkResult:
    """
    Run chunk strategies in order until one returns a result.

    Each strategy receives the error message of the strategy before it
    (None for the first). The error of the final strategy propagates.
    """
    last_error: Optional[str] = None
    for index, (name, strategy) in enumerate(strategies):
        try:
            return await strategy(last_error)
        except Exception as e:
            if index == len(strategies) - 1:
                raise
            last_error = str(e) or type(e).__name__
            logger.warning(
                f"[chunked] Strategy '{name}' failed for chunk {chunk_id}: {last_error}",
                extra={"chunk_id": chunk_id, "strategy": name, "error_type": type(e).__name__}
            )
    raise ValueError("No chunk strategies configured")


class ChunkGenerator:
    """Generates chunk results in order, carrying context from chunk to chunk"""

    HIGH_PRIORITY_TEMPERATURE = 0.7
    DEFAULT_TEMPERATURE = 0.8

    def __init__(
        self,
        services: AIServices,
        planner: Optional[ChunkPlanner] = None,
        estimator: Optional[TokenBudgetEstimator] = None,
        settings: Optional[Settings] = None
    ):
        self.services = services
        self.settings = settings or get_settings()
        self.estimator = estimator or TokenBudgetEstimator(self.settings.STANDARD_TOKEN_CEILING)
        self.planner = planner or ChunkPlanner(self.settings, self.estimator)
        self.logger = logging.getLogger(__name__)

    async def generate_chunked_itinerary(
        self,
        trip: Trip,
        analysis: TripAnalysis,
        cancel_event: Optional[asyncio.Event] = None,
        deadline: Optional[float] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> List[ChunkResult]:
        """
        Generate every chunk of the analysis in day order.

        Args:
            trip: the full trip
            analysis: chunk plan from ChunkPlanner.analyze
            cancel_event: when set, remaining chunks are filled from templates
            deadline: time.monotonic() value after which remaining chunks are filled from templates
            on_progress: called with a ChunkProgress before each chunk (sync or async)
        """
        chunks = sorted(analysis.chunks, key=lambda c: c.start_day)
        context = self.create_context(trip)
        results: List[ChunkResult] = []
        total = len(chunks)

        self.logger.info(
            f"[chunked] Starting generation of {total} chunks for {trip.duration}-day trip to {trip.destination.name}"
        )

        for index, chunk in enumerate(chunks):
            if self._should_stop(cancel_event, deadline):
                self.logger.warning(
                    f"[chunked] Generation stopped before chunk {chunk.id}; filling {total - index} chunks from templates"
                )
                for remaining in chunks[index:]:
                    result = self._fallback_result(trip, remaining, CANCELLED_ERROR)
                    context.record_chunk(result.days)
                    results.append(result)
                break

            await self._report_progress(on_progress, ChunkProgress(
                current=index + 1,
                total=total,
                percentage=round((index + 1) / total * 100),
                chunk_id=chunk.id
            ))

            result = await self.generate_chunk(trip, chunk, context, deadline)
            context.record_chunk(result.days)
            results.append(result)

            if index < total - 1:
                await self._inter_chunk_delay(cancel_event, deadline)

        successful = sum(1 for r in results if r.success)
        self.logger.info(
            f"[chunked] Finished: {successful}/{total} chunks generated by AI",
            extra={"successful": successful, "fallback": total - successful}
        )
        return results

    async def generate_chunk(
        self,
        trip: Trip,
        chunk: Chunk,
        context: GenerationContext,
        deadline: Optional[float] = None
    ) -> ChunkResult:
        """Generate one chunk, falling back to templates when the provider path fails"""
        chunk_trip = self.create_chunk_trip(trip, chunk, context)

        async def provider_strategy(_: Optional[str]) -> ChunkResult:
            return await self._generate_with_provider(chunk_trip, chunk, context, deadline)

        async def template_strategy(error: Optional[str]) -> ChunkResult:
            return self._fallback_result(trip, chunk, error)

        return await run_strategy_chain(
            [("provider", provider_strategy), ("template", template_strategy)],
            chunk.id
        )

    def create_context(self, trip: Trip) -> GenerationContext:
        return GenerationContext(
            destination=trip.destination.name,
            start_date=trip.destination.start_date,
            overlap_days=self.settings.OVERLAP_DAYS,
            constraints=list(trip.preferences.constraints),
            budget_total=trip.budget.total if trip.budget else None,
            currency=trip.budget.currency if trip.budget else None,
            overall_theme=", ".join(trip.preferences.interests) or "sightseeing"
        )

    def create_chunk_trip(self, trip: Trip, chunk: Chunk, context: GenerationContext) -> Trip:
        """Trip view narrowed to one chunk's days"""
        start_date = self.planner.calculate_chunk_start_date(trip.destination.start_date, chunk.start_day)
        chunk_info = ChunkInfo(
            id=chunk.id,
            focus=chunk.focus,
            detail_level=chunk.detail_level,
            day_range=f"{chunk.start_day}-{chunk.end_day}",
            total_days=trip.duration,
            context="continuation" if context.is_continuation else "beginning",
            processed_chunks=context.processed_chunks,
            remaining_budget=context.remaining_budget(),
            used_categories=sorted(context.activity_categories)
        )
        return trip.model_copy(update={
            "duration": chunk.length,
            "destination": trip.destination.model_copy(update={"start_date": start_date}),
            "chunk_info": chunk_info,
        })

    def generation_options(self, trip: Trip, chunk: Chunk) -> Tuple[str, Dict[str, Any]]:
        """Model alias and generation options for a chunk"""
        budget = self.estimator.calculate_token_budget(
            self.estimator.estimate_chunk(chunk, trip),
            self.settings.TOKEN_SAFETY_MARGIN
        )
        max_tokens = min(
            max(self.planner.calculate_max_tokens_for_chunk(chunk), budget.budget_with_margin),
            self.settings.MAX_OUTPUT_TOKENS
        )
        temperature = (
            self.HIGH_PRIORITY_TEMPERATURE if chunk.priority == ChunkPriority.HIGH else self.DEFAULT_TEMPERATURE
        )
        return budget.recommended_model, {"temperature": temperature, "max_tokens": max_tokens}

    async def _generate_with_provider(
        self,
        chunk_trip: Trip,
        chunk: Chunk,
        context: GenerationContext,
        deadline: Optional[float]
    ) -> ChunkResult:
        prompt = self.services.prompt_builder.build_chunked_prompt(chunk_trip, chunk, context)
        schema = self.services.prompt_builder.response_schema(chunk)
        model, options = self.generation_options(chunk_trip, chunk)
        timeout = self._provider_timeout(deadline)

        self.logger.info(
            f"[chunked] Generating chunk {chunk.id} (days {chunk.start_day}-{chunk.end_day}) with {model} model",
            extra={"chunk_id": chunk.id, "prompt_tokens": self.estimator.estimate_text_tokens(prompt), **options}
        )
        try:
            response = await asyncio.wait_for(
                self.services.provider.call_structured(model, prompt, schema, options),
                timeout
            )
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(f"Provider call for chunk {chunk.id} timed out after {timeout:.1f}s") from e

        days = self.services.response_parser.parse_chunk_response(response.content, chunk_trip, chunk)
        return ChunkResult(
            chunk_id=chunk.id,
            focus=chunk.focus.value,
            success=True,
            days=days,
            tokens_used=response.tokens_used
        )

    def _fallback_result(self, trip: Trip, chunk: Chunk, error: Optional[str]) -> ChunkResult:
        days = self.services.fallback_generator.generate_fallback_days(trip, chunk)
        return ChunkResult(
            chunk_id=chunk.id,
            focus=chunk.focus.value,
            success=False,
            days=days,
            fallback_used=True,
            error=error
        )

    def _provider_timeout(self, deadline: Optional[float]) -> float:
        timeout = self.settings.PROVIDER_TIMEOUT_SECONDS
        if deadline is not None:
            timeout = min(timeout, max(0.0, deadline - time.monotonic()))
        return timeout

    async def _inter_chunk_delay(self, cancel_event: Optional[asyncio.Event], deadline: Optional[float]) -> None:
        delay = self.settings.INTER_CHUNK_DELAY_SECONDS
        if deadline is not None:
            delay = min(delay, max(0.0, deadline - time.monotonic()))
        if delay <= 0:
            return
        if cancel_event is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), delay)
        except asyncio.TimeoutError:
            pass

    @staticmethod
    def _should_stop(cancel_event: Optional[asyncio.Event], deadline: Optional[float]) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            return True
        return deadline is not None and time.monotonic() >= deadline

    async def _report_progress(self, on_progress: Optional[ProgressCallback], progress: ChunkProgress) -> None:
        if on_progress is None:
            return
        try:
            outcome = on_progress(progress)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            self.logger.warning(f"[chunked] Progress callback failed: {e}")
