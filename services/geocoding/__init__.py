"""Geocoding service package"""

from .errors import (
    GeocodingError,
    RateLimitError,
    UpstreamDecodeError,
    UpstreamStatusError,
    UpstreamTimeoutError,
    UpstreamTransportError,
)
from .metrics import ProviderMetrics
from .models import Address, GeocodeRequest, GeocodeResponse, ServerStatus
from .providers import GeocodingProvider, NominatimProvider, PeliasProvider, create_provider
from .ratelimit import RateLimiter
from .service import GeocodingService

__all__ = [
    "Address",
    "GeocodeRequest",
    "GeocodeResponse",
    "ServerStatus",
    "GeocodingError",
    "RateLimitError",
    "UpstreamTransportError",
    "UpstreamTimeoutError",
    "UpstreamStatusError",
    "UpstreamDecodeError",
    "ProviderMetrics",
    "RateLimiter",
    "GeocodingProvider",
    "NominatimProvider",
    "PeliasProvider",
    "create_provider",
    "GeocodingService",
]
