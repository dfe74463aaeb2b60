"""Geocoding service: cache-or-fetch over the configured upstream provider"""

import asyncio
import contextlib
import logging
from datetime import UTC, datetime

import httpx

from core.config import Settings
from services.cache import GeocodeCache, sweep_periodically

from .models import GeocodeResponse, ServerStatus
from .providers import GeocodingProvider, create_provider

logger = logging.getLogger(__name__)


class GeocodingService:
    """
    Production geocoding service backed by one upstream provider
    """

    def __init__(
        self,
        config: Settings | None = None,
        provider: GeocodingProvider | None = None,
        cache: GeocodeCache | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize geocoding service

        Args:
            config: Validated settings; selects the provider and cache TTLs
            provider: Use this provider instead of building one from config
            cache: Use this cache instead of building one from config
            client: Shared httpx client handed to the provider
        """
        if config is None:
            config = Settings()
        config.validate()
        self.config = config

        self.provider = provider or create_provider(config, client=client)
        self.cache = cache or GeocodeCache(
            ttl=config.cache_ttl_seconds,
            hard_ttl=config.cache_hard_ttl_seconds,
            maxsize=config.CACHE_MAX_ENTRIES,
        )
        self.start_time = datetime.now(UTC)
        self._sweeper: asyncio.Task | None = None

        logger.info(
            f"Geocoding service using {self.provider.name} at {self.provider.base_url} "
            f"(cache ttl={self.cache.ttl:.0f}s, hard ttl={self.cache.hard_ttl:.0f}s)"
        )

    async def geocode(self, query: str, timeout: float | None = None) -> GeocodeResponse:
        """
        Convert a free-text address into a normalized result

        The query is used verbatim as the cache key. Only successful results
        are cached; failures always go back to the upstream. Concurrent misses
        for the same query are not coalesced.

        Args:
            query: Address string to geocode
            timeout: Caller's budget in seconds for the upstream path

        Returns:
            GeocodeResponse, with cached=True when served from cache

        Raises:
            GeocodingError: propagated unchanged from the provider
        """
        cached = self.cache.get(query)
        if cached is not None:
            logger.debug(f"Cache hit for '{query[:60]}'")
            return cached.model_copy(update={"cached": True})

        response = await self.provider.geocode(query, timeout=timeout)

        if response.success:
            self.cache.set(query, response)
        return response

    async def status(self) -> ServerStatus:
        """Provider counters combined with cache statistics"""
        provider_status = await self.provider.status()
        cache_stats = self.cache.stats()

        return provider_status.model_copy(
            update={
                "version": self.config.VERSION,
                "start_time": self.start_time,
                "uptime": (datetime.now(UTC) - self.start_time).total_seconds(),
                "cache_size": cache_stats["size"],
                "cache_hits": cache_stats["hits"],
                "cache_misses": cache_stats["misses"],
            }
        )

    def reset(self) -> None:
        """Reset provider metrics; the cache is left as is"""
        self.provider.reset()

    async def start(self) -> None:
        """Start the background cache sweep"""
        if self._sweeper is None:
            self._sweeper = asyncio.create_task(
                sweep_periodically(self.cache, self.config.CACHE_SWEEP_INTERVAL)
            )

    async def close(self) -> None:
        """Stop the sweep and release the provider's HTTP client"""
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
        await self.provider.close()
