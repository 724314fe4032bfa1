"""License redemption services."""

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from calino_backend.adapters.gumroad_client import LicenseVerifier
from calino_backend.domain.errors import InfrastructureError, ValidationError
from calino_backend.domain.licenses import (
    LicenseRedemption,
    ProductGrant,
    ProductTier,
    RedemptionInsert,
    RedemptionOutcome,
    RedemptionPage,
    RedemptionResult,
)

logger = logging.getLogger(__name__)

UNKNOWN_PRODUCT = ProductGrant(tier=ProductTier.UNKNOWN, credits=0)


class LicenseRepository(Protocol):
    """Persistence interface for license redemptions."""

    def get_redemption(self, license_key: str) -> LicenseRedemption | None:
        """Return the redemption for a license key, if present."""

    def insert_redemption(self, redemption: LicenseRedemption) -> RedemptionInsert:
        """Insert a redemption unless one already exists for its key."""

    def list_redemptions(
        self, offset: int, limit: int
    ) -> tuple[list[LicenseRedemption], int]:
        """Return newest-first redemptions in the window and the total count."""


@dataclass
class LicenseService:
    """Redeems license keys exactly once and reports the granted tier."""

    repository: LicenseRepository
    verifier: LicenseVerifier
    products: Mapping[str, ProductGrant] = field(default_factory=dict)

    async def redeem(
        self, product_id: str, license_key: str, user_id: str
    ) -> RedemptionResult:
        """Redeem a license key for a user."""
        existing = self.repository.get_redemption(license_key)
        if existing:
            return _already_used(existing)

        verification = await self.verifier.verify(product_id, license_key)
        if not verification.authentic:
            logger.info(
                "License verification rejected",
                extra={"product_id": product_id, "user_id": user_id},
            )
            return RedemptionResult(
                outcome=RedemptionOutcome.VERIFICATION_FAILED,
                message=verification.message or "License verification failed",
            )

        grant = self.resolve_product(product_id)
        if grant.tier is ProductTier.UNKNOWN:
            logger.warning(
                "Redeemed license for unmapped product",
                extra={"product_id": product_id},
            )
        result = self.repository.insert_redemption(
            LicenseRedemption(
                license_key=license_key,
                user_id=user_id,
                product_id=product_id,
                product_tier=grant.tier,
                credits_granted=grant.credits,
                activated_at=datetime.now(tz=UTC),
                verifier_metadata=verification.purchase,
            )
        )
        if result.existing is not None:
            logger.info(
                "Lost redemption race for license",
                extra={"user_id": user_id, "winner": result.existing.user_id},
            )
            return _already_used(result.existing)
        if result.inserted is None:
            raise InfrastructureError("Redemption insert returned no record")

        return RedemptionResult(
            outcome=RedemptionOutcome.REDEEMED,
            message=_success_message(grant),
            tier=grant.tier,
            credits_granted=grant.credits,
            purchase=verification.purchase,
            activated_at=result.inserted.activated_at,
            activated_by=result.inserted.user_id,
        )

    def resolve_product(self, product_id: str) -> ProductGrant:
        """Map a product id to its tier and credits."""
        return self.products.get(product_id, UNKNOWN_PRODUCT)

    def list_redemptions(self, page: int = 0, page_size: int = 20) -> RedemptionPage:
        """Return a page of redemptions, newest first."""
        if page < 0 or page_size <= 0:
            raise ValidationError(
                "page must be zero or greater and limit a positive integer"
            )
        redemptions, total = self.repository.list_redemptions(
            page * page_size, page_size
        )
        return RedemptionPage(
            redemptions=redemptions,
            total_items=total,
            total_pages=math.ceil(total / page_size),
            current_page=page,
        )


def _already_used(redemption: LicenseRedemption) -> RedemptionResult:
    return RedemptionResult(
        outcome=RedemptionOutcome.ALREADY_USED,
        message="This license key has already been used",
        activated_at=redemption.activated_at,
        activated_by=redemption.user_id,
    )


def _success_message(grant: ProductGrant) -> str:
    if grant.tier is ProductTier.UNKNOWN:
        return "License verified, but the product is not recognized"
    return f"License verified: {grant.credits} flowers added ({grant.tier} tier)"
