"""Pydantic models for geocoding"""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Address(BaseModel):
    """Normalized address produced from any upstream backend"""

    model_config = ConfigDict(frozen=True)

    street: str = ""
    number: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    postal_code: str = ""
    latitude: float = Field(..., ge=-90, le=90, description="Latitude in decimal degrees (WGS84)")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in decimal degrees (WGS84)")
    last_updated: datetime = Field(default_factory=lambda: datetime.now(UTC))


class GeocodeResponse(BaseModel):
    """Outcome of a single geocode attempt"""

    success: bool
    address: Address | None = None
    error: str | None = None
    processing_time: float | None = None
    source: str | None = None
    cached: bool = False

    @model_validator(mode="after")
    def check_outcome(self) -> "GeocodeResponse":
        """A successful response carries an address, a failed one an error"""
        if self.success:
            if self.address is None:
                raise ValueError("successful response requires an address")
            if self.error:
                raise ValueError("successful response cannot carry an error")
        else:
            if self.address is not None:
                raise ValueError("failed response cannot carry an address")
            if not self.error:
                raise ValueError("failed response requires an error message")
        return self

    @classmethod
    def failure(cls, error: str, source: str) -> "GeocodeResponse":
        return cls(success=False, error=error, source=source)

    def to_payload(self) -> dict:
        """JSON body: {success, address?, error?, processing_time?, source?, cached?}"""
        payload = self.model_dump(mode="json", exclude_none=True)
        if not payload.get("processing_time"):
            payload.pop("processing_time", None)
        if not payload.get("cached"):
            payload.pop("cached", None)
        return payload


class ServerStatus(BaseModel):
    """Point-in-time status of a provider or of the whole service"""

    status: str = "active"
    version: str = ""
    uptime: float = 0.0
    start_time: datetime | None = None
    cache_size: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    requests_total: int = 0
    errors_total: int = 0
    average_time: float = 0.0


class GeocodeRequest(BaseModel):
    """Request body for POST /geocode"""

    query: str = Field(..., description="Free-text address to geocode", min_length=1)
