"""Exceptions raised by geocoding providers."""


class GeocodingError(Exception):
    """Base error for a geocode call that could not produce a response"""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
    ):
        self.message = message
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)


class RateLimitError(GeocodingError):
    """Admission wait was aborted before a slot freed up; upstream was not contacted."""


class UpstreamTransportError(GeocodingError):
    """Connection, DNS or timeout failure talking to the upstream."""


class UpstreamTimeoutError(UpstreamTransportError):
    """The caller's deadline expired while the upstream call was in flight."""


class UpstreamStatusError(GeocodingError):
    """Upstream answered with a non-2xx status."""

    def __init__(self, message: str, provider: str | None = None, status_code: int | None = None, body: str = ""):
        self.body = body
        super().__init__(message, provider=provider, status_code=status_code)


class UpstreamDecodeError(GeocodingError):
    """Upstream body could not be decoded into the expected envelope."""
