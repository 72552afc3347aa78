"""
Main application entry point.

This module:
- Configures logging
- Builds the job system and the FastAPI application
- Starts and stops the queue workers with the application lifecycle
"""

import logging
import sys

from jobdispatch import config

# Create logs directory
config.LOG_DIR.mkdir(parents=True, exist_ok=True)

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(config.LOG_DIR / 'app.log')
    ]
)

logger = logging.getLogger(__name__)

# Import application components
from jobdispatch.api.routes import create_app
from jobdispatch.system import JobSystem

job_system = JobSystem()

# Create FastAPI app
app = create_app(job_system)


@app.on_event("startup")
async def startup_event():
    """
    Application startup event.

    - Resets jobs left active by a previous run
    - Starts one worker per queue
    """
    logger.info("=" * 60)
    logger.info("Background Jobs Service - Starting")
    logger.info("=" * 60)

    job_system.start()

    logger.info("Application started successfully")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Application shutdown event.

    - Stops the workers gracefully
    """
    logger.info("Background Jobs Service - Shutting down")

    job_system.close()

    logger.info("Application shut down successfully")


def run():
    import uvicorn

    uvicorn.run(
        "jobdispatch.main:app",
        host=config.HOST,
        port=config.PORT,
        reload=False,
        log_level="info"
    )


if __name__ == "__main__":
    run()
