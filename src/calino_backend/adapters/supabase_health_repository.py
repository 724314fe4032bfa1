"""Supabase connectivity probe."""

from dataclasses import dataclass

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from calino_backend.domain.errors import InfrastructureError
from calino_backend.services.health import HealthRepository


@dataclass
class SupabaseHealthRepository(HealthRepository):
    """Checks that the history table is reachable."""

    client: Client
    table: str = "user_history"

    def ping(self) -> None:
        """Select a single row id from the history table."""
        try:
            self.client.table(self.table).select("id").limit(1).execute()
        except (APIError, httpx.HTTPError) as exc:
            raise InfrastructureError("Database is unreachable") from exc
