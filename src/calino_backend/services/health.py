"""Service health checks."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol


class HealthRepository(Protocol):
    """Persistence interface for connectivity checks."""

    def ping(self) -> None:
        """Run a trivial query, raising when storage is unreachable."""


@dataclass
class HealthService:
    """Reports whether the service can reach its storage."""

    repository: HealthRepository

    def check(self) -> dict[str, str]:
        """Return a health payload; storage errors propagate to the caller."""
        self.repository.ping()
        return {
            "status": "healthy",
            "database": "connected",
            "timestamp": datetime.now(tz=UTC).isoformat(),
        }
