"""Admin API endpoints with simple token auth."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from calino_backend.domain.errors import InfrastructureError

if TYPE_CHECKING:
    from calino_backend.containers import AppContainer
    from calino_backend.domain.licenses import LicenseRedemption

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/licenses", dependencies=[Depends(require_admin)], response_model=None)
async def list_licenses(
    request: Request, page: int = 0, limit: int = 20
) -> dict[str, object] | JSONResponse:
    """Return redeemed licenses, newest first."""
    container: AppContainer = request.app.state.container
    try:
        result = container.license_service.list_redemptions(page, limit)
    except InfrastructureError:
        logger.exception("Failed to list licenses")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to list licenses"},
        )
    return {
        "licenses": [_serialize_license(item) for item in result.redemptions],
        "totalItems": result.total_items,
        "totalPages": result.total_pages,
        "currentPage": result.current_page,
    }


def _serialize_license(redemption: LicenseRedemption) -> dict[str, object]:
    return {
        "licenseKey": redemption.license_key,
        "userId": redemption.user_id,
        "productId": redemption.product_id,
        "tier": str(redemption.product_tier),
        "creditsGranted": redemption.credits_granted,
        "activatedAt": redemption.activated_at.isoformat(),
        "status": str(redemption.status),
    }
