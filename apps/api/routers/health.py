from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from packages.shared.schemas.health import ProbeErrorResponse, ProbeResponse

from apps.api.deps import get_health_service
from apps.api.services.health_service import HealthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=ProbeResponse)
async def health(svc: HealthService = Depends(get_health_service)):
    """Estado de cada proveedor: configurado y respondiendo 200 a un prompt mínimo."""
    try:
        return await svc.probe()
    except Exception:
        logger.exception("Health check error")
        return JSONResponse(status_code=500, content=ProbeErrorResponse().model_dump())
