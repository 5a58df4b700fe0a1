from fastapi import FastAPI, HTTPException, Depends, Request
import os
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from longtrip.models.chunk_models import Chunk, TokenBudget, TokenEfficiencyAnalysis, TripAnalysis
from longtrip.models.itinerary_models import FinalItinerary
from longtrip.models.trip_models import Trip
from longtrip.prompts.chunk_prompts import ChunkPromptBuilder
from longtrip.services.fallback_generator import FallbackGenerator
from longtrip.services.location_utility import LocationUtility
from longtrip.services.long_trip_handler import LongTripHandler
from longtrip.services.providers import AIServices
from longtrip.services.response_parser import ItineraryResponseParser
from longtrip.services.vertex_ai_service import VertexAIService
from longtrip.utils.config import configure_logging, get_settings, validate_settings
from longtrip.utils.errors import TripValidationError

configure_logging()
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Long Trip Planner API",
    description="Plan and generate multi-week itineraries in chunks using Google Vertex AI Gemini",
    version=get_settings().API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global handler (initialized on startup)
long_trip_handler: Optional[LongTripHandler] = None


class GenerateItineraryRequest(BaseModel):
    trip: Trip
    timeout_seconds: Optional[float] = Field(default=None, gt=0)


class ChunkPreviewResponse(BaseModel):
    needs_chunking: bool
    chunks: List[Chunk]


class TokenEstimateResponse(BaseModel):
    budget: TokenBudget
    efficiency: TokenEfficiencyAnalysis


def build_handler() -> LongTripHandler:
    """Create the handler with Vertex AI services, or template-only when AI is not configured"""
    settings = get_settings()

    if not validate_settings():
        logger.warning("Vertex AI not configured; generation will use template fallback only")
        return LongTripHandler(services=None, settings=settings)

    # Ensure GOOGLE_APPLICATION_CREDENTIALS is exported for ADC (Vertex AI)
    if settings.GOOGLE_APPLICATION_CREDENTIALS:
        os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = settings.GOOGLE_APPLICATION_CREDENTIALS
        logger.info("ADC path set from settings", extra={"gac_path": settings.GOOGLE_APPLICATION_CREDENTIALS})
    else:
        logger.info("No GOOGLE_APPLICATION_CREDENTIALS in settings; relying on gcloud ADC if present")

    services = AIServices(
        provider=VertexAIService(
            project_id=settings.GOOGLE_CLOUD_PROJECT,
            location=settings.GOOGLE_CLOUD_LOCATION
        ),
        prompt_builder=ChunkPromptBuilder(),
        response_parser=ItineraryResponseParser(),
        fallback_generator=FallbackGenerator(LocationUtility(), settings.FALLBACK_RANDOM_SEED)
    )
    return LongTripHandler(services=services, settings=settings)


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup"""
    global long_trip_handler

    try:
        logger.info("Initializing long trip handler...")
        long_trip_handler = build_handler()
        logger.info("Long trip handler initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {str(e)}")
        raise


# Dependency to get the handler
def get_handler() -> LongTripHandler:
    if long_trip_handler is None:
        raise HTTPException(status_code=503, detail="Long trip handler not initialized")
    return long_trip_handler


@app.exception_handler(TripValidationError)
async def trip_validation_error_handler(request: Request, exc: TripValidationError):
    logger.info(f"Rejected invalid trip: {exc}")
    return JSONResponse(status_code=422, content={"detail": exc.detail, "errors": exc.errors})


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    if long_trip_handler is None:
        return {
            "status": "degraded",
            "timestamp": datetime.now().isoformat(),
            "services": {"long_trip_handler": False},
        }

    health = long_trip_handler.health_status()
    if not health["services"]["ai_services"]:
        health["status"] = "degraded"
    return health


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Long Trip Planner API",
        "version": get_settings().API_VERSION,
        "docs": "/docs",
        "health": "/health"
    }


@app.post("/api/v1/long-trips/analyze", response_model=TripAnalysis)
async def analyze_trip(trip: Trip, handler: LongTripHandler = Depends(get_handler)):
    """Chunk plan and token estimate for a trip"""
    return handler.analyze_trip(trip)


@app.post("/api/v1/long-trips/estimate-tokens", response_model=TokenEstimateResponse)
async def estimate_tokens(trip: Trip, handler: LongTripHandler = Depends(get_handler)):
    return TokenEstimateResponse(
        budget=handler.estimate_tokens(trip),
        efficiency=handler.get_token_efficiency(trip)
    )


@app.post("/api/v1/long-trips/preview-chunks", response_model=ChunkPreviewResponse)
async def preview_chunks(trip: Trip, handler: LongTripHandler = Depends(get_handler)):
    return ChunkPreviewResponse(
        needs_chunking=handler.should_use_chunking(trip),
        chunks=handler.preview_chunks(trip)
    )


@app.post("/api/v1/long-trips/generate", response_model=FinalItinerary)
async def generate_itinerary(request: GenerateItineraryRequest, handler: LongTripHandler = Depends(get_handler)):
    """Generate a complete itinerary; degraded generation is reported in the summary, not as an error"""
    itinerary = await handler.generate_long_trip_itinerary(
        request.trip,
        timeout_seconds=request.timeout_seconds
    )
    logger.info(
        f"Generated {len(itinerary.days)}-day itinerary for {request.trip.destination.name}",
        extra={"strategy": itinerary.strategy, "ratio": itinerary.summary.generation_success_ratio}
    )
    return itinerary
