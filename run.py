#!/usr/bin/env python3
"""
Startup script for the Long Trip Planner API
"""

import uvicorn
import logging
from longtrip.utils.config import configure_logging, get_settings, validate_settings

def main():
    """Main startup function"""

    configure_logging()
    logger = logging.getLogger(__name__)

    try:
        settings = get_settings()

        if not validate_settings():
            logger.warning("Vertex AI is not configured. Itineraries will be built from templates only.")
            logger.warning("Set GOOGLE_CLOUD_PROJECT to enable AI generation.")

        logger.info("Starting Long Trip Planner API...")
        logger.info(f"API Version: {settings.API_VERSION}")
        logger.info(f"Debug Mode: {settings.DEBUG_MODE}")
        logger.info(f"Host: {settings.API_HOST}:{settings.API_PORT}")

        # Start the server
        uvicorn.run(
            "longtrip.api.main:app",
            host=settings.API_HOST,
            port=settings.API_PORT,
            reload=settings.DEBUG_MODE,
            log_level=settings.LOG_LEVEL.lower(),
            access_log=True
        )

    except KeyboardInterrupt:
        logger.info("Shutting down gracefully...")
        return 0
    except Exception as e:
        logger.error(f"Failed to start server: {str(e)}")
        return 1

if __name__ == "__main__":
    exit(main())
