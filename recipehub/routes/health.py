"""
RecipeHub Backend — Health Check Routes
=========================================

What:  GET / greeting and GET /health for load balancers and Docker probes.
How:   /health runs SELECT 1 against the database and reports the media
       host's circuit breaker state without calling the media host.

    status "OK"          → 200, database reachable
    status "UNAVAILABLE" → 503, database unreachable
"""

import logging
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from recipehub import __version__
from recipehub.database import get_engine
from recipehub.schemas.common import HealthResponse, MessageResponse
from recipehub.services.media_service import media_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/", response_model=MessageResponse, summary="Service greeting")
async def root() -> MessageResponse:
    return MessageResponse(message="Welcome to RecipeHub!")


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check():
    db_status = "connected"
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        logger.warning("Health check: database unreachable: %s", str(e))

    try:
        media_status = "available" if media_service.backend.is_available() else "circuit_open"
    except Exception as e:
        media_status = "unavailable"
        logger.warning("Health check: media backend not configured: %s", str(e))

    health = HealthResponse(
        status="OK" if db_status == "connected" else "UNAVAILABLE",
        version=__version__,
        database=db_status,
        media=media_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if db_status != "connected":
        return JSONResponse(status_code=503, content=health.model_dump(by_alias=True))
    return health
