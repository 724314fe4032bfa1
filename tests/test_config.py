"""Tests for configuration parsing."""

import pytest
from pydantic import ValidationError

from calino_backend.config import (
    Settings,
    parse_allowed_origins,
    product_catalog,
)
from calino_backend.domain.licenses import ProductTier
from tests.conftest import SERVICE_KEY


def test_license_products_load_from_json_env(monkeypatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_KEY", SERVICE_KEY)
    monkeypatch.setenv("ADMIN_TOKEN", "admin-token")
    monkeypatch.setenv(
        "LICENSE_PRODUCTS", '{"abc123": {"tier": "starter", "credits": 50}}'
    )

    catalog = product_catalog(Settings())

    assert catalog["abc123"].tier is ProductTier.STARTER
    assert catalog["abc123"].credits == 50


def test_license_products_reject_negative_credits() -> None:
    with pytest.raises(ValidationError):
        Settings(
            supabase_url="https://example.supabase.co",
            supabase_service_key=SERVICE_KEY,
            admin_token="admin-token",
            license_products={"abc123": {"tier": "pro", "credits": -1}},
        )


def test_parse_allowed_origins() -> None:
    assert parse_allowed_origins("*") == ["*"]
    assert parse_allowed_origins(" https://a.test, ,https://b.test ") == [
        "https://a.test",
        "https://b.test",
    ]
    assert parse_allowed_origins(None) == []
