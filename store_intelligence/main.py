"""
Store Intelligence Service
Main FastAPI application
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

import httpx

from store_intelligence.config import get_settings
from store_intelligence.utils.logger import log
from store_intelligence import __version__

from store_intelligence.api import health, intelligence

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    log.info(f"Starting {settings.app_name} v{__version__}")
    log.info(f"Environment: {settings.environment}")

    # Initialize database (classification cache)
    repository = None
    try:
        from store_intelligence.models.base import init_db
        from store_intelligence.repositories import ClassificationRepository
        init_db()
        repository = ClassificationRepository()
        log.info("Database initialized")
    except Exception as e:
        log.error(f"Database initialization error: {str(e)}")

    # One HTTP client and one service for the process lifetime
    from store_intelligence.services.store_intelligence_service import StoreIntelligenceService
    http_client = httpx.AsyncClient(timeout=settings.upstream_timeout_seconds)
    app.state.intelligence_service = StoreIntelligenceService.from_settings(
        settings, http_client=http_client, repository=repository
    )

    yield

    # Shutdown
    await app.state.intelligence_service.aclose()
    await http_client.aclose()
    log.info("Shutting down application")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="""
    Real-time store intelligence for pizza delivery managers

    Aggregates per-store signals and turns them into one actionable insight:
    - Weather (OpenWeatherMap) with carryout promotion detection
    - Traffic delay on a delivery-radius route (Google Maps)
    - Local events (Ticketmaster, SeatGeek, PredictHQ, Yelp), deduplicated
    - Public holidays (Nager.Date), boost weeks and slow periods
    - Store classification (military, college, downtown, suburban)

    Insights are generated with Claude and validated before they are returned.
    """,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router)
app.include_router(intelligence.router)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "app": settings.app_name,
        "version": __version__,
        "endpoints": {
            "health": "GET /health",
            "status": "GET /status",
            "insight": "POST /intelligence/insight",
            "external_data": "POST /intelligence/external-data"
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "store_intelligence.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
