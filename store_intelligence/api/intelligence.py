"""
Store intelligence endpoints
Insight briefing and raw signal snapshot for a single store
"""
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from store_intelligence.services.store_intelligence_service import StoreIntelligenceService
from store_intelligence.utils.errors import InvalidStoreError
from store_intelligence.utils.logger import log

router = APIRouter(prefix="/intelligence", tags=["intelligence"])


class StoreRequest(BaseModel):
    """Store record as sent by the caller; full validation happens in the service"""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    store_id: Union[str, int] = Field(alias="storeId")
    city: Optional[str] = None
    state: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    time_zone_code: Optional[str] = Field(default=None, alias="timeZoneCode")


def get_intelligence_service(request: Request) -> StoreIntelligenceService:
    service = getattr(request.app.state, "intelligence_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Store intelligence service not initialized")
    return service


@router.post("/insight")
async def generate_insight(
    request: StoreRequest,
    service: StoreIntelligenceService = Depends(get_intelligence_service),
):
    """
    Generate one actionable insight for a store

    Always answers 200: when a signal or the completion service fails the
    response carries the fallback insight (data.isFallback = true).
    """
    insight = await service.generate_insight(request.model_dump())
    return {"success": True, "data": insight.to_dict()}


@router.post("/external-data")
async def get_external_data(
    request: StoreRequest,
    service: StoreIntelligenceService = Depends(get_intelligence_service),
):
    """Merged external signals (weather, traffic, events, holidays) for a store"""
    try:
        data = await service.collect_external_data(request.model_dump())
        return {"success": True, "data": data.to_dict()}
    except InvalidStoreError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        log.error(f"Error collecting external data: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
