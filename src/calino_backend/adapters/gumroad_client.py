"""Gumroad license verification client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from calino_backend.domain.errors import InfrastructureError
from calino_backend.domain.licenses import VerificationResult

DEFAULT_GUMROAD_BASE_URL = "https://api.gumroad.com/v2"


class LicenseVerifier(Protocol):
    """Interface for checking that a license key is authentic."""

    async def verify(self, product_id: str, license_key: str) -> VerificationResult:
        """Verify a key without consuming a use on the remote system."""


@dataclass
class HttpxGumroadClient(LicenseVerifier):
    """HTTPX-backed Gumroad license verifier."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 10

    @classmethod
    def create(
        cls, base_url: str = DEFAULT_GUMROAD_BASE_URL, timeout: float = 10
    ) -> "HttpxGumroadClient":
        """Create a verifier with a managed httpx session."""
        return cls(base_url=base_url, http_client=httpx.AsyncClient(), timeout=timeout)

    async def verify(self, product_id: str, license_key: str) -> VerificationResult:
        """Verify a license key against Gumroad's licenses API."""
        url = f"{self.base_url}/licenses/verify"
        try:
            response = await self.http_client.post(
                url,
                data={
                    "product_id": product_id,
                    "license_key": license_key,
                    "increment_uses_count": "false",
                },
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            raise InfrastructureError("License verifier is unreachable") from exc

        if response.status_code >= 500:
            raise InfrastructureError(
                f"License verifier returned HTTP {response.status_code}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise InfrastructureError("License verifier returned invalid JSON") from exc
        if not isinstance(payload, dict) or not isinstance(
            payload.get("success"), bool
        ):
            raise InfrastructureError("License verifier returned an unexpected body")

        if not payload["success"]:
            return VerificationResult(
                authentic=False,
                message=str(payload.get("message") or "License verification failed"),
            )
        purchase = payload.get("purchase")
        if not isinstance(purchase, dict):
            raise InfrastructureError("License verifier response has no purchase")
        if purchase.get("refunded") or purchase.get("chargebacked"):
            return VerificationResult(
                authentic=False,
                message="This license belongs to a refunded purchase",
                purchase=purchase,
            )
        return VerificationResult(authentic=True, purchase=purchase)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
