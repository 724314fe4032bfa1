"""Supabase implementation for license redemptions."""

from dataclasses import dataclass

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from calino_backend.adapters.supabase_support import (
    is_unique_violation,
    parse_timestamp,
    storage_errors,
)
from calino_backend.domain.errors import InfrastructureError
from calino_backend.domain.licenses import (
    LicenseRedemption,
    LicenseStatus,
    ProductTier,
    RedemptionInsert,
)
from calino_backend.services.licenses import LicenseRepository


@dataclass
class SupabaseLicenseRepository(LicenseRepository):
    """Supabase-backed repository for license redemptions.

    Single use relies on the unique constraint on ``license_key``; a losing
    concurrent insert surfaces as a ``23505`` error and is reported as the
    existing row.
    """

    client: Client
    table: str = "license_activations"

    def get_redemption(self, license_key: str) -> LicenseRedemption | None:
        """Return the redemption for a license key, if present."""
        with storage_errors("look up license"):
            response = (
                self.client.table(self.table)
                .select("*")
                .eq("license_key", license_key)
                .limit(1)
                .execute()
            )
        if not response.data:
            return None
        return _parse_redemption(response.data[0])

    def insert_redemption(self, redemption: LicenseRedemption) -> RedemptionInsert:
        """Insert a redemption, returning the existing row on key conflict."""
        try:
            response = (
                self.client.table(self.table)
                .insert(_serialize_redemption(redemption))
                .execute()
            )
        except APIError as exc:
            if not is_unique_violation(exc):
                raise InfrastructureError("Failed to record license") from exc
        except httpx.HTTPError as exc:
            raise InfrastructureError("Failed to record license") from exc
        else:
            if not response.data:
                raise InfrastructureError("Failed to record license")
            return RedemptionInsert(inserted=_parse_redemption(response.data[0]))

        existing = self.get_redemption(redemption.license_key)
        if existing is None:
            raise InfrastructureError(
                "License insert conflicted but no existing row was found"
            )
        return RedemptionInsert(existing=existing)

    def list_redemptions(
        self, offset: int, limit: int
    ) -> tuple[list[LicenseRedemption], int]:
        """Return newest-first redemptions with the total count."""
        with storage_errors("list licenses"):
            response = (
                self.client.table(self.table)
                .select("*", count="exact")
                .order("activated_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        rows = response.data or []
        total = response.count if response.count is not None else len(rows)
        return [_parse_redemption(row) for row in rows], int(total)


def _serialize_redemption(redemption: LicenseRedemption) -> dict[str, object]:
    return {
        "license_key": redemption.license_key,
        "user_id": redemption.user_id,
        "product_id": redemption.product_id,
        "product_tier": str(redemption.product_tier),
        "credits_granted": redemption.credits_granted,
        "activated_at": redemption.activated_at.isoformat(),
        "verifier_metadata": redemption.verifier_metadata,
        "status": str(redemption.status),
    }


def _parse_redemption(row: dict[str, object]) -> LicenseRedemption:
    """Parse a license row into a domain model."""
    metadata = row.get("verifier_metadata")
    return LicenseRedemption(
        license_key=str(row["license_key"]),
        user_id=str(row.get("user_id", "")),
        product_id=str(row.get("product_id", "")),
        product_tier=_parse_tier(row.get("product_tier")),
        credits_granted=int(row.get("credits_granted") or 0),
        activated_at=parse_timestamp(row.get("activated_at")),
        verifier_metadata=metadata if isinstance(metadata, dict) else {},
        status=LicenseStatus(str(row.get("status") or LicenseStatus.ACTIVE)),
    )


def _parse_tier(raw: object) -> ProductTier:
    try:
        return ProductTier(str(raw))
    except ValueError:
        return ProductTier.UNKNOWN
