"""Tests for GeocodingService cache-or-fetch orchestration"""

import asyncio

import httpx
import pytest

from core.config import Settings
from services.cache import GeocodeCache
from services.geocoding import (
    GeocodingService,
    NominatimProvider,
    PeliasProvider,
    UpstreamStatusError,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def make_service(upstream, cache=None, server="nominatim"):
    config = Settings()
    config.GEOCODING_SERVER = server
    return GeocodingService(config, cache=cache, client=upstream.client())


@pytest.mark.asyncio
async def test_second_identical_query_is_served_from_cache(fake_upstream, nominatim_payload):
    upstream = fake_upstream(json=nominatim_payload)
    service = make_service(upstream)

    first = await service.geocode("10 Downing Street")
    second = await service.geocode("10 Downing Street")

    assert upstream.call_count == 1
    assert first.cached is False
    assert second.cached is True
    assert second.address == first.address
    assert second.source == first.source
    assert second.processing_time == first.processing_time


@pytest.mark.asyncio
async def test_cache_hit_does_not_mutate_stored_response(fake_upstream, nominatim_payload):
    service = make_service(fake_upstream(json=nominatim_payload))

    await service.geocode("10 Downing Street")
    await service.geocode("10 Downing Street")
    third = await service.geocode("10 Downing Street")

    assert third.cached is True
    assert service.cache.get("10 Downing Street").cached is False


@pytest.mark.asyncio
async def test_empty_query_is_never_cached(fake_upstream, nominatim_payload):
    upstream = fake_upstream(json=nominatim_payload)
    service = make_service(upstream)

    first = await service.geocode("")
    second = await service.geocode("")

    assert not first.success and not second.success
    assert second.cached is False
    assert service.provider.metrics.snapshot().requests == 2
    assert upstream.call_count == 0
    assert len(service.cache) == 0


@pytest.mark.asyncio
async def test_no_results_is_never_cached(fake_upstream):
    upstream = fake_upstream(json=[])
    service = make_service(upstream)

    first = await service.geocode("Atlantis")
    second = await service.geocode("Atlantis")

    assert first.error == "no results found"
    assert second.error == "no results found"
    assert second.cached is False
    assert upstream.call_count == 2


@pytest.mark.asyncio
async def test_provider_errors_propagate_unchanged(fake_upstream):
    upstream = fake_upstream(handler=lambda request: httpx.Response(502, text="bad gateway"))
    service = make_service(upstream)

    with pytest.raises(UpstreamStatusError) as exc_info:
        await service.geocode("10 Downing Street")
    assert exc_info.value.status_code == 502

    with pytest.raises(UpstreamStatusError):
        await service.geocode("10 Downing Street")
    assert upstream.call_count == 2


@pytest.mark.asyncio
async def test_cache_key_is_the_verbatim_query(fake_upstream, nominatim_payload):
    upstream = fake_upstream(json=nominatim_payload)
    service = make_service(upstream)

    await service.geocode("10 Downing Street")
    result = await service.geocode(" 10 Downing Street ")

    assert result.cached is False
    assert upstream.call_count == 2


@pytest.mark.asyncio
async def test_concurrent_identical_misses_each_reach_upstream(fake_upstream, nominatim_payload):
    async def slow(request):
        await asyncio.sleep(0.05)
        return httpx.Response(200, json=nominatim_payload)

    upstream = fake_upstream(handler=slow)
    service = make_service(upstream)

    results = await asyncio.gather(
        service.geocode("10 Downing Street"),
        service.geocode("10 Downing Street"),
    )

    assert all(r.success and not r.cached for r in results)
    assert upstream.call_count == 2


@pytest.mark.asyncio
async def test_entry_past_soft_ttl_is_refetched(fake_upstream, nominatim_payload):
    clock = FakeClock()
    upstream = fake_upstream(json=nominatim_payload)
    service = make_service(upstream, cache=GeocodeCache(ttl=60, hard_ttl=120, timer=clock))

    await service.geocode("10 Downing Street")
    clock.now = 30
    assert (await service.geocode("10 Downing Street")).cached is True

    clock.now = 61
    result = await service.geocode("10 Downing Street")

    assert result.cached is False
    assert upstream.call_count == 2


@pytest.mark.asyncio
async def test_selects_provider_from_config(fake_upstream, pelias_payload):
    service = make_service(fake_upstream(json=pelias_payload), server="pelias")

    assert isinstance(service.provider, PeliasProvider)
    result = await service.geocode("Avenida Paulista 1000")
    assert result.source == "Pelias"


def test_invalid_server_fails_at_construction():
    config = Settings()
    config.GEOCODING_SERVER = "bing"

    with pytest.raises(ValueError):
        GeocodingService(config)


@pytest.mark.asyncio
async def test_status_merges_provider_and_cache(fake_upstream, nominatim_payload):
    service = make_service(fake_upstream(json=nominatim_payload))

    await service.geocode("10 Downing Street")
    await service.geocode("10 Downing Street")

    status = await service.status()
    assert status.requests_total == 1
    assert status.cache_size == 1
    assert status.cache_hits == 1
    assert status.cache_misses == 1
    assert status.version == service.config.VERSION
    assert status.start_time == service.start_time


@pytest.mark.asyncio
async def test_reset_keeps_cache(fake_upstream, nominatim_payload):
    upstream = fake_upstream(json=nominatim_payload)
    service = make_service(upstream)

    await service.geocode("10 Downing Street")
    service.reset()

    assert (await service.status()).requests_total == 0
    assert (await service.geocode("10 Downing Street")).cached is True
    assert upstream.call_count == 1


@pytest.mark.asyncio
async def test_injected_provider_is_used(fake_upstream, nominatim_payload):
    upstream = fake_upstream(json=nominatim_payload)
    provider = NominatimProvider("http://osm.test", client=upstream.client())
    service = GeocodingService(Settings(), provider=provider)

    await service.geocode("10 Downing Street")

    assert service.provider is provider
    assert upstream.requests[0].url.host == "osm.test"


@pytest.mark.asyncio
async def test_start_and_close_manage_sweeper(fake_upstream, nominatim_payload):
    service = make_service(fake_upstream(json=nominatim_payload))

    await service.start()
    sweeper = service._sweeper
    assert sweeper is not None and not sweeper.done()

    await service.close()
    assert sweeper.cancelled()
    assert service._sweeper is None
