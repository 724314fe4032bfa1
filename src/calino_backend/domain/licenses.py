"""Domain models for license redemption."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class ProductTier(StrEnum):
    """Product levels a license can unlock."""

    STARTER = "starter"
    CREATOR = "creator"
    PRO = "pro"
    UNKNOWN = "unknown"


class LicenseStatus(StrEnum):
    """Lifecycle status of a redemption record."""

    ACTIVE = "active"
    REVOKED = "revoked"


class RedemptionOutcome(StrEnum):
    """Result kinds of a redemption attempt."""

    REDEEMED = "redeemed"
    ALREADY_USED = "already_used"
    VERIFICATION_FAILED = "verification_failed"


@dataclass(frozen=True)
class ProductGrant:
    """Tier and credits granted for a product."""

    tier: ProductTier
    credits: int


@dataclass(frozen=True)
class LicenseRedemption:
    """A license key that has been exchanged for credits."""

    license_key: str
    user_id: str
    product_id: str
    product_tier: ProductTier
    credits_granted: int
    activated_at: datetime
    verifier_metadata: dict[str, object] = field(default_factory=dict)
    status: LicenseStatus = LicenseStatus.ACTIVE


@dataclass(frozen=True)
class RedemptionInsert:
    """Outcome of an atomic insert keyed by license key.

    Exactly one of ``inserted`` or ``existing`` is set.
    """

    inserted: LicenseRedemption | None = None
    existing: LicenseRedemption | None = None


@dataclass(frozen=True)
class VerificationResult:
    """Answer from the external license verifier."""

    authentic: bool
    message: str | None = None
    purchase: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class RedemptionResult:
    """Result returned to callers of the redemption flow."""

    outcome: RedemptionOutcome
    message: str
    tier: ProductTier | None = None
    credits_granted: int = 0
    purchase: dict[str, object] = field(default_factory=dict)
    activated_at: datetime | None = None
    activated_by: str | None = None

    @property
    def success(self) -> bool:
        """Return true when the key was redeemed by this call."""
        return self.outcome is RedemptionOutcome.REDEEMED


@dataclass(frozen=True)
class RedemptionPage:
    """A page of redemption records for admin listings."""

    redemptions: list[LicenseRedemption]
    total_items: int
    total_pages: int
    current_page: int
