import logging

from fastapi import HTTPException, status

from core.config import settings
from services.geocoding import GeocodingService

logger = logging.getLogger(__name__)

# Global geocoding service (initialized on startup)
_geocoding_service: GeocodingService | None = None


def get_geocoding_service() -> GeocodingService:
    """Get geocoding service instance"""
    global _geocoding_service
    if _geocoding_service is None:
        try:
            _geocoding_service = GeocodingService(settings)
        except ValueError as e:
            logger.error(f"Geocoding service misconfigured: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Geocoding service not configured: {e}",
            )
    return _geocoding_service


async def close_geocoding_service() -> None:
    """Close the global service, if it was created"""
    global _geocoding_service
    if _geocoding_service is not None:
        await _geocoding_service.close()
        _geocoding_service = None
