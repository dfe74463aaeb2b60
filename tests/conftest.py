import inspect
import sys
from pathlib import Path

import httpx
import pytest

# Ensure the project root is on sys.path for direct pytest runs
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


NOMINATIM_DOWNING_STREET = [
    {
        "place_id": 123456,
        "lat": "51.5033635",
        "lon": "-0.1276248",
        "display_name": "10, Downing Street, Westminster, London, SW1A 2AA, United Kingdom",
        "address": {
            "house_number": "10",
            "road": "Downing Street",
            "city": "London",
            "state": "England",
            "country": "United Kingdom",
            "postcode": "SW1A 2AA",
        },
        "importance": 0.74,
        "type": "house",
    }
]

PELIAS_SAO_PAULO = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [-46.6, -23.5]},
            "properties": {
                "name": "Avenida Paulista 1000",
                "street": "Avenida Paulista",
                "housenumber": "1000",
                "locality": "São Paulo",
                "region": "São Paulo",
                "country": "Brazil",
                "postalcode": "01310-100",
                "confidence": 0.9,
            },
        }
    ],
}


class FakeUpstream:
    """Stand-in upstream: records every request and answers via a handler"""

    def __init__(self, handler):
        self.handler = handler
        self.requests: list[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.handler(request)
        if inspect.isawaitable(response):
            response = await response
        return response

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def fake_upstream():
    """Factory: fake_upstream(json=..., status_code=...) or fake_upstream(handler=...)"""

    def make(json=None, status_code: int = 200, handler=None) -> FakeUpstream:
        if handler is None:
            def handler(request):
                return httpx.Response(status_code, json=json)
        return FakeUpstream(handler)

    return make


@pytest.fixture
def nominatim_payload():
    return NOMINATIM_DOWNING_STREET


@pytest.fixture
def pelias_payload():
    return PELIAS_SAO_PAULO
