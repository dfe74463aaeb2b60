import json
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file
load_dotenv()

logger = logging.getLogger(__name__)

VALID_SERVERS = ("nominatim", "pelias")


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _coerce(key: str, current: object, value: object) -> object:
    """Convert a JSON config value to the type of the setting it replaces."""
    if isinstance(current, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return _as_bool(value)
        raise ValueError(f"config key {key} must be a boolean, got {value!r}")

    if isinstance(current, int):
        if isinstance(value, bool):
            raise ValueError(f"config key {key} must be an integer, got {value!r}")
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError(f"config key {key} must be an integer, got {value!r}")
            return int(value)
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"config key {key} must be an integer, got {value!r}") from e

    if isinstance(current, float):
        if isinstance(value, bool):
            raise ValueError(f"config key {key} must be a number, got {value!r}")
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"config key {key} must be a number, got {value!r}") from e

    if not isinstance(value, str):
        raise ValueError(f"config key {key} must be a string, got {value!r}")
    return value


class Settings:
    def __init__(self) -> None:
        # Server
        self.GEOCODING_SERVER: str = os.getenv("GEOCODING_SERVER", "nominatim")
        self.PORT: int = int(os.getenv("PORT", "5000"))
        self.DEBUG: bool = _as_bool(os.getenv("DEBUG"), False)
        self.VERSION: str = os.getenv("VERSION", "1.0.0")

        # Upstream backends
        self.NOMINATIM_URL: str = os.getenv("NOMINATIM_URL", "http://nominatim:8080")
        self.PELIAS_URL: str = os.getenv("PELIAS_URL", "http://pelias:3000")
        self.NOMINATIM_RATE_LIMIT: int = int(os.getenv("NOMINATIM_RATE_LIMIT", "5"))
        self.PELIAS_RATE_LIMIT: int = int(os.getenv("PELIAS_RATE_LIMIT", "10"))
        self.HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "10"))
        self.USER_AGENT: str = os.getenv("USER_AGENT", "geocoding-gateway/1.0")
        self.REQUEST_TIMEOUT: float = float(os.getenv("REQUEST_TIMEOUT", "15"))

        # Cache (hours)
        self.CACHE_DURATION: int = int(os.getenv("CACHE_DURATION", "24"))
        self.CACHE_CLEANUP: int = int(os.getenv("CACHE_CLEANUP", "48"))
        self.CACHE_MAX_ENTRIES: int = int(os.getenv("CACHE_MAX_ENTRIES", "10000"))
        self.CACHE_SWEEP_INTERVAL: float = float(os.getenv("CACHE_SWEEP_INTERVAL", "600"))

        # Paths
        self.DATA_PATH: str = os.getenv("DATA_PATH", "data")
        self.CONFIG_PATH: str = os.getenv("CONFIG_PATH", os.path.join(self.DATA_PATH, "configs"))

    @property
    def config_file(self) -> Path:
        return Path(self.CONFIG_PATH) / "config.json"

    def load_file(self, path: Path | None = None) -> "Settings":
        """Overlay values from a JSON config file, if it exists.

        Keys are the lowercase setting names (e.g. ``"geocoding_server"``).
        A missing file leaves the environment values untouched.
        """
        path = path or self.config_file
        if not path.exists():
            return self

        try:
            data = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise ValueError(f"error loading config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"config file {path} must contain a JSON object")

        for key, value in data.items():
            attr = key.upper()
            if not hasattr(self, attr):
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            setattr(self, attr, _coerce(key, getattr(self, attr), value))

        logger.info(f"Loaded configuration overrides from {path}")
        return self

    def validate(self) -> "Settings":
        """Reject configurations the geocoding core cannot run with."""
        if self.GEOCODING_SERVER not in VALID_SERVERS:
            raise ValueError(f"invalid geocoding server: {self.GEOCODING_SERVER}")
        if self.NOMINATIM_RATE_LIMIT <= 0 or self.PELIAS_RATE_LIMIT <= 0:
            raise ValueError("rate limits must be positive")
        if self.CACHE_DURATION <= 0:
            raise ValueError("CACHE_DURATION must be positive")
        if self.CACHE_CLEANUP < self.CACHE_DURATION:
            raise ValueError("CACHE_CLEANUP must be >= CACHE_DURATION")
        return self

    @property
    def cache_ttl_seconds(self) -> float:
        return self.CACHE_DURATION * 3600.0

    @property
    def cache_hard_ttl_seconds(self) -> float:
        return self.CACHE_CLEANUP * 3600.0


settings = Settings()
