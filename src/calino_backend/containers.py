"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from calino_backend.adapters.gumroad_client import HttpxGumroadClient
from calino_backend.adapters.supabase_health_repository import (
    SupabaseHealthRepository,
)
from calino_backend.adapters.supabase_history_repository import (
    SupabaseHistoryRepository,
)
from calino_backend.adapters.supabase_license_repository import (
    SupabaseLicenseRepository,
)
from calino_backend.adapters.supabase_support import close_client
from calino_backend.config import Settings, product_catalog
from calino_backend.services.health import HealthService
from calino_backend.services.history import HistoryService
from calino_backend.services.licenses import LicenseService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    history_service: HistoryService
    license_service: LicenseService
    health_service: HealthService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    history_service = HistoryService(
        repository=SupabaseHistoryRepository(supabase_client),
        retention_limit=resolved_settings.history_retention_limit,
    )
    verifier = HttpxGumroadClient.create(
        base_url=resolved_settings.verifier_base_url,
        timeout=resolved_settings.verifier_timeout_seconds,
    )
    license_service = LicenseService(
        repository=SupabaseLicenseRepository(supabase_client),
        verifier=verifier,
        products=product_catalog(resolved_settings),
    )
    health_service = HealthService(SupabaseHealthRepository(supabase_client))

    async def close_resources() -> None:
        await verifier.close()
        close_client(supabase_client)

    return AppContainer(
        settings=resolved_settings,
        history_service=history_service,
        license_service=license_service,
        health_service=health_service,
        close_resources=close_resources,
    )
