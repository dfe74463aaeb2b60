"""
Upstream geocoding providers.

Every provider runs the same geocode flow (validate, rate limit, request,
decode, normalize, meter). Backends only differ in how the search request is
built and how the best candidate is pulled out of their JSON envelope.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any

import httpx

from core.config import Settings

from .errors import (
    RateLimitError,
    UpstreamDecodeError,
    UpstreamStatusError,
    UpstreamTimeoutError,
    UpstreamTransportError,
)
from .metrics import ProviderMetrics
from .models import Address, GeocodeResponse, ServerStatus
from .ratelimit import RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class GeocodingProvider(ABC):
    """Abstract base class for upstream geocoding backends.

    Subclasses set ``name``, ``search_path`` and ``default_rate_limit`` and
    implement request parameters plus candidate parsing.
    """

    name: str = ""
    search_path: str = ""
    default_rate_limit: int = 1

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        requests_per_second: int | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str | None = None,
    ):
        """
        Initialize provider

        Args:
            base_url: Root URL of the upstream (without the search path)
            client: Shared httpx client; one is created (and owned) when omitted
            requests_per_second: Rate limit ceiling for this upstream
            timeout: Client-level request timeout in seconds
            user_agent: User-Agent header for an owned client
        """
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        if client is None:
            headers = {"User-Agent": user_agent} if user_agent else None
            client = httpx.AsyncClient(timeout=httpx.Timeout(timeout), headers=headers)
        self.client = client
        self.rate_limiter = RateLimiter(requests_per_second or self.default_rate_limit)
        self.metrics = ProviderMetrics()

    @abstractmethod
    def build_params(self, query: str) -> dict[str, Any]:
        """Query-string parameters for a best-match search"""

    @abstractmethod
    def first_candidate(self, payload: Any) -> dict[str, Any] | None:
        """Return the best candidate from the decoded body, or None if empty"""

    @abstractmethod
    def parse_candidate(self, candidate: dict[str, Any]) -> Address:
        """Map one backend candidate onto the normalized Address"""

    async def geocode(self, query: str, timeout: float | None = None) -> GeocodeResponse:
        """
        Geocode a free-text query against this upstream

        Args:
            query: Address text; surrounding whitespace is ignored
            timeout: Caller's overall budget in seconds, covering both the
                rate-limit wait and the upstream call

        Returns:
            GeocodeResponse; success=False for an empty query or no results

        Raises:
            RateLimitError: the budget ran out before admission
            UpstreamTransportError: connection or timeout failure
            UpstreamStatusError: non-2xx response
            UpstreamDecodeError: body did not match the backend's envelope
        """
        loop = asyncio.get_running_loop()
        start = loop.time()
        deadline = None if timeout is None else start + timeout
        self.metrics.record_request()

        query = query.strip()
        if not query:
            return GeocodeResponse.failure("empty query", self.name)

        try:
            await self.rate_limiter.acquire(None if deadline is None else deadline - loop.time())
        except RateLimitError as e:
            e.provider = self.name
            raise

        try:
            payload = await self._fetch(query, deadline)
            candidate = self._first_candidate(payload)
            if candidate is None:
                logger.debug(f"{self.name}: no results for '{query[:60]}'")
                return GeocodeResponse.failure("no results found", self.name)
            address = self._parse(candidate)
        finally:
            elapsed = loop.time() - start
            self.metrics.record_elapsed(elapsed)

        return GeocodeResponse(
            success=True,
            address=address,
            source=self.name,
            processing_time=elapsed,
        )

    async def _fetch(self, query: str, deadline: float | None) -> Any:
        url = f"{self.base_url}{self.search_path}"
        params = self.build_params(query)

        try:
            if deadline is None:
                response = await self.client.get(url, params=params)
            else:
                async with asyncio.timeout_at(deadline):
                    response = await self.client.get(url, params=params)
        except TimeoutError as e:
            self.metrics.record_error()
            logger.warning(f"{self.name}: caller deadline exceeded during upstream request")
            raise UpstreamTimeoutError("request failed: deadline exceeded", provider=self.name) from e
        except httpx.RequestError as e:
            self.metrics.record_error()
            logger.error(f"{self.name}: request to {url} failed: {e!r}")
            raise UpstreamTransportError(f"request failed: {e!r}", provider=self.name) from e

        if not response.is_success:
            self.metrics.record_error()
            body = response.text
            logger.warning(f"{self.name}: upstream returned {response.status_code}: {body[:200]}")
            raise UpstreamStatusError(
                f"server returned {response.status_code}: {body}",
                provider=self.name,
                status_code=response.status_code,
                body=body,
            )

        try:
            return response.json()
        except ValueError as e:
            self.metrics.record_error()
            raise UpstreamDecodeError(f"failed to decode response: {e}", provider=self.name) from e

    def _first_candidate(self, payload: Any) -> dict[str, Any] | None:
        try:
            return self.first_candidate(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            self.metrics.record_error()
            raise UpstreamDecodeError(f"failed to decode response: {e}", provider=self.name) from e

    def _parse(self, candidate: dict[str, Any]) -> Address:
        try:
            return self.parse_candidate(candidate)
        except (AttributeError, KeyError, TypeError, ValueError, IndexError) as e:
            self.metrics.record_error()
            raise UpstreamDecodeError(f"failed to decode result: {e}", provider=self.name) from e

    async def status(self) -> ServerStatus:
        """Snapshot of this provider's counters.

        Providers do not see the cache, so cache hits and misses are always 0.
        """
        snap = self.metrics.snapshot()
        uptime = 0.0
        if snap.last_request is not None:
            uptime = (datetime.now(UTC) - snap.last_request).total_seconds()

        return ServerStatus(
            status="active",
            uptime=uptime,
            start_time=snap.last_request,
            cache_hits=0,
            cache_misses=0,
            requests_total=snap.requests,
            errors_total=snap.errors,
            average_time=snap.average_time,
        )

    def reset(self) -> None:
        """Zero the metrics. Outstanding rate-limit slots drain on their own."""
        self.metrics.reset()
        logger.info(f"{self.name}: metrics reset")

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()


class NominatimProvider(GeocodingProvider):
    """Nominatim: flat JSON array, lat/lon as decimal strings"""

    name = "Nominatim"
    search_path = "/search"
    default_rate_limit = 5

    def build_params(self, query: str) -> dict[str, Any]:
        return {
            "q": query,
            "format": "json",
            "addressdetails": 1,
            "limit": 1,
        }

    def first_candidate(self, payload: Any) -> dict[str, Any] | None:
        if not isinstance(payload, list):
            raise TypeError(f"expected a JSON array, got {type(payload).__name__}")
        return payload[0] if payload else None

    def parse_candidate(self, candidate: dict[str, Any]) -> Address:
        addr = candidate.get("address") or {}
        if not isinstance(addr, dict):
            raise TypeError(f"expected an address object, got {type(addr).__name__}")
        city = addr.get("city") or addr.get("town") or addr.get("village") or ""

        return Address(
            street=addr.get("road") or "",
            number=addr.get("house_number") or "",
            city=city,
            state=addr.get("state") or "",
            country=addr.get("country") or "",
            postal_code=addr.get("postcode") or "",
            latitude=float(candidate["lat"]),
            longitude=float(candidate["lon"]),
            last_updated=datetime.now(UTC),
        )


class PeliasProvider(GeocodingProvider):
    """Pelias: GeoJSON FeatureCollection, coordinates as [lon, lat]"""

    name = "Pelias"
    search_path = "/v1/search"
    default_rate_limit = 10

    def build_params(self, query: str) -> dict[str, Any]:
        return {"text": query, "size": 1}

    def first_candidate(self, payload: Any) -> dict[str, Any] | None:
        if not isinstance(payload, dict):
            raise TypeError(f"expected a GeoJSON object, got {type(payload).__name__}")
        features = payload.get("features") or []
        if not isinstance(features, list):
            raise TypeError(f"expected a features array, got {type(features).__name__}")
        return features[0] if features else None

    def parse_candidate(self, candidate: dict[str, Any]) -> Address:
        props = candidate.get("properties") or {}
        if not isinstance(props, dict):
            raise TypeError(f"expected a properties object, got {type(props).__name__}")
        # GeoJSON axis order
        lon, lat = candidate["geometry"]["coordinates"][:2]

        return Address(
            street=props.get("street") or "",
            number=props.get("housenumber") or "",
            city=props.get("locality") or "",
            state=props.get("region") or "",
            country=props.get("country") or "",
            postal_code=props.get("postalcode") or "",
            latitude=float(lat),
            longitude=float(lon),
            last_updated=datetime.now(UTC),
        )


PROVIDERS: dict[str, type[GeocodingProvider]] = {
    "nominatim": NominatimProvider,
    "pelias": PeliasProvider,
}


def create_provider(config: Settings, client: httpx.AsyncClient | None = None) -> GeocodingProvider:
    """Build the provider selected by ``config.GEOCODING_SERVER``"""
    server = config.GEOCODING_SERVER
    if server not in PROVIDERS:
        raise ValueError(f"invalid geocoding server: {server}")

    if server == "pelias":
        base_url, rate = config.PELIAS_URL, config.PELIAS_RATE_LIMIT
    else:
        base_url, rate = config.NOMINATIM_URL, config.NOMINATIM_RATE_LIMIT

    return PROVIDERS[server](
        base_url,
        client=client,
        requests_per_second=rate,
        timeout=config.HTTP_TIMEOUT,
        user_agent=config.USER_AGENT,
    )
