"""Tests for container wiring."""

import asyncio

from calino_backend.containers import build_container
from calino_backend.domain.licenses import ProductTier


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert container.history_service.retention_limit == 50
    grant = container.license_service.resolve_product("calino-creator")
    assert grant.tier is ProductTier.CREATOR
    assert grant.credits == 500
    asyncio.run(container.close_resources())
