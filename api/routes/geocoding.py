"""Geocoding endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from api.dependencies import get_geocoding_service
from core.config import settings
from services.geocoding import (
    GeocodeRequest,
    GeocodingError,
    GeocodingService,
    RateLimitError,
    UpstreamTimeoutError,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["geocoding"])


def error_status(error: GeocodingError) -> int:
    if isinstance(error, RateLimitError):
        return status.HTTP_429_TOO_MANY_REQUESTS
    if isinstance(error, UpstreamTimeoutError):
        return status.HTTP_504_GATEWAY_TIMEOUT
    return status.HTTP_502_BAD_GATEWAY


def error_response(status_code: int, message: str, source: Optional[str] = None) -> JSONResponse:
    content = {"success": False, "error": message}
    if source:
        content["source"] = source
    return JSONResponse(status_code=status_code, content=content)


async def _process_geocode(service: GeocodingService, query: str) -> JSONResponse:
    # GeocodingError propagates to the app-level handler registered in main
    result = await service.geocode(query, timeout=settings.REQUEST_TIMEOUT)
    return JSONResponse(content=result.to_payload())


async def geocoding_error_handler(request: Request, exc: GeocodingError) -> JSONResponse:
    """Map a failed upstream call to 429, 502 or 504 with the response-shaped body"""
    logger.warning(f"Geocode failed for {request.method} {request.url.path}: {exc}")
    return error_response(error_status(exc), str(exc), exc.provider)


@router.post("/geocode")
async def geocode_post(
    request: Request,
    service: GeocodingService = Depends(get_geocoding_service),
):
    """
    Forward geocoding from a JSON body

    Example: {"query": "10 Downing Street, London"}
    """
    try:
        body = GeocodeRequest.model_validate(await request.json())
    except (ValueError, ValidationError):
        return error_response(status.HTTP_400_BAD_REQUEST, "invalid request format")

    return await _process_geocode(service, body.query)


@router.get("/geocode")
async def geocode_get(
    q: Optional[str] = Query(None, description="Address to geocode"),
    service: GeocodingService = Depends(get_geocoding_service),
):
    """
    Forward geocoding from a query parameter

    Example: /geocode?q=10%20Downing%20Street
    """
    if not q:
        return error_response(status.HTTP_400_BAD_REQUEST, "query parameter 'q' is required")

    return await _process_geocode(service, q)


@router.get("/status")
async def geocode_status(service: GeocodingService = Depends(get_geocoding_service)):
    """Provider counters and cache statistics"""
    server_status = await service.status()
    return JSONResponse(content=server_status.model_dump(mode="json"))


@router.post("/reset")
async def geocode_reset(service: GeocodingService = Depends(get_geocoding_service)):
    """Zero the provider metrics"""
    service.reset()
    return {"success": True}
