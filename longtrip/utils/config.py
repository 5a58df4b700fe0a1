import logging
from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Google Cloud / Vertex AI Configuration
    GOOGLE_CLOUD_PROJECT: str = "your-project-id"
    GOOGLE_CLOUD_LOCATION: str = "us-central1"
    GOOGLE_APPLICATION_CREDENTIALS: Optional[str] = None
    FAST_MODEL_NAME: str = "gemini-2.5-flash"
    HIGH_CAPACITY_MODEL_NAME: str = "gemini-2.5-pro"

    # API Configuration
    API_VERSION: str = "1.0.0"
    DEBUG_MODE: bool = False
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Trip Limits
    MAX_TRIP_DURATION_DAYS: int = 60

    # Chunking
    MIN_DAYS_FOR_CHUNKING: int = 5
    ARRIVAL_CHUNK_DAYS: int = 2
    DEPARTURE_CHUNK_DAYS: int = 1
    MIDDLE_CHUNK_DAYS: int = 6
    OVERLAP_DAYS: int = 2  # previous days carried into the next prompt

    # Token Budgets
    MAX_TOKENS_PER_REQUEST: int = 4000
    MAX_OUTPUT_TOKENS: int = 8000
    STANDARD_TOKEN_CEILING: int = 6000
    TOKEN_SAFETY_MARGIN: float = 0.2

    # Generation Pacing & Timeouts
    INTER_CHUNK_DELAY_SECONDS: float = 1.0
    PROVIDER_TIMEOUT_SECONDS: float = 90.0
    PROVIDER_MAX_RETRIES: int = 3
    GENERATION_TIMEOUT_SECONDS: Optional[float] = None

    # Fallback Generation
    FALLBACK_RANDOM_SEED: Optional[int] = None

    model_config = {"env_file": ".env", "case_sensitive": True, "extra": "ignore"}

# Global settings instance
settings = Settings()

def get_settings() -> Settings:
    """Get the global settings instance"""
    return settings

def configure_logging(app_settings: Optional[Settings] = None) -> None:
    """Configure root logging from settings"""
    app_settings = app_settings or settings
    logging.basicConfig(
        level=getattr(logging, app_settings.LOG_LEVEL.upper(), logging.INFO),
        format=app_settings.LOG_FORMAT
    )

def validate_settings() -> bool:
    """Validate that all required settings are configured"""
    logger = logging.getLogger(__name__)
    required_settings = [
        "GOOGLE_CLOUD_PROJECT"
    ]

    missing_settings = []
    for setting in required_settings:
        if not getattr(settings, setting) or getattr(settings, setting) in ["your-project-id"]:
            missing_settings.append(setting)

    if missing_settings:
        logger.error(f"Missing or invalid settings: {', '.join(missing_settings)}")
        logger.error("Please configure these settings in your .env file or environment variables")
        return False

    if settings.ARRIVAL_CHUNK_DAYS < 1 or settings.DEPARTURE_CHUNK_DAYS < 1 or settings.MIDDLE_CHUNK_DAYS < 1:
        logger.error("Chunk sizes must be at least 1 day")
        return False

    return True
