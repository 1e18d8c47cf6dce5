"""
Health check and status endpoints
"""
from fastapi import APIRouter, Request
from datetime import datetime
from store_intelligence.config import get_settings
from store_intelligence import __version__

settings = get_settings()

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": __version__
    }


@router.get("/status")
async def get_status(request: Request):
    """Get system status and which upstream providers are configured"""
    service = getattr(request.app.state, "intelligence_service", None)
    providers = {}
    llm_available = False
    if service is not None:
        collector = service.collector
        for provider in [collector.weather, collector.traffic, *collector.event_providers, collector.holidays]:
            providers[provider.name] = provider.is_configured
        llm_available = service.llm.is_available()

    return {
        "app_name": settings.app_name,
        "version": __version__,
        "environment": settings.environment,
        "providers": providers,
        "features": {
            "llm_insights": llm_available,
        },
        "timestamp": datetime.utcnow().isoformat()
    }
