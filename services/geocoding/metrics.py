"""Request counters kept by each provider"""

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(frozen=True)
class MetricsSnapshot:
    requests: int = 0
    errors: int = 0
    total_time: float = 0.0
    last_request: datetime | None = None

    @property
    def average_time(self) -> float:
        if self.requests == 0:
            return 0.0
        return self.total_time / self.requests


@dataclass
class ProviderMetrics:
    """
    Mutable counters for one provider instance.

    Every mutation and every read goes through the lock; readers get an
    immutable MetricsSnapshot so they never hold the lock longer than a copy.
    """

    requests: int = 0
    errors: int = 0
    total_time: float = 0.0
    last_request: datetime | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_request(self) -> datetime:
        now = datetime.now(UTC)
        with self._lock:
            self.requests += 1
            self.last_request = now
        return now

    def record_error(self) -> None:
        with self._lock:
            self.errors += 1

    def record_elapsed(self, seconds: float) -> None:
        with self._lock:
            self.total_time += seconds

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(
                requests=self.requests,
                errors=self.errors,
                total_time=self.total_time,
                last_request=self.last_request,
            )

    def reset(self) -> None:
        with self._lock:
            self.requests = 0
            self.errors = 0
            self.total_time = 0.0
            self.last_request = None
