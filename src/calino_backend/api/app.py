"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from calino_backend.api.admin import router as admin_router
from calino_backend.api.models import (
    HistoryItemPayload,
    UpdateFramePayload,
    VerifyLicensePayload,
)
from calino_backend.app_logging import configure_logging
from calino_backend.config import parse_allowed_origins
from calino_backend.containers import AppContainer
from calino_backend.domain.errors import (
    InfrastructureError,
    NotFoundError,
    ValidationError,
)
from calino_backend.domain.history import HistoryItem
from calino_backend.domain.licenses import RedemptionOutcome, RedemptionResult


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=parse_allowed_origins(container.settings.cors_allow_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    images_dir = container.settings.images_dir
    if images_dir:
        if Path(images_dir).is_dir():
            app.mount("/images", StaticFiles(directory=images_dir), name="images")
        else:
            logger.warning("Images directory not found: %s", images_dir)

    app.include_router(admin_router)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": _describe_validation_errors(exc)},
        )

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(exc)}
        )

    @app.get("/")
    async def index() -> dict[str, object]:
        """Describe the service and its main endpoints."""
        return {
            "message": "Calino Image Server",
            "status": "running",
            "endpoints": {
                "images": "/images/calino/",
                "history": "/api/history/:userId",
                "verifyLicense": "/api/verify-license",
            },
        }

    @app.get("/health", response_model=None)
    async def health(request: Request) -> dict[str, str] | JSONResponse:
        """Report liveness and database connectivity."""
        state_container: AppContainer = request.app.state.container
        try:
            return state_container.health_service.check()
        except InfrastructureError:
            logger.exception("Health check failed")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"status": "unhealthy", "database": "disconnected"},
            )

    @app.get("/api/history/{user_id}", response_model=None)
    async def get_history(
        user_id: str,
        request: Request,
        page: int = 0,
        limit: str | None = None,
        search: str = "",
    ) -> dict[str, object] | JSONResponse:
        """Return a page of a user's history, newest first."""
        state_container: AppContainer = request.app.state.container
        page_size = _parse_limit(
            limit, state_container.settings.history_default_page_size
        )
        try:
            history = state_container.history_service.query(
                user_id, page=page, page_size=page_size, search=search
            )
        except InfrastructureError:
            logger.exception("Failed to get history", extra={"user_id": user_id})
            return _server_error("Failed to get history")
        return {
            "items": [_serialize_history_item(item) for item in history.items],
            "totalPages": history.total_pages,
            "currentPage": history.current_page,
            "totalItems": history.total_items,
        }

    @app.post("/api/history/{user_id}", response_model=None)
    async def save_history(
        user_id: str, payload: HistoryItemPayload, request: Request
    ) -> dict[str, object] | JSONResponse:
        """Store a history item and apply the retention limit."""
        state_container: AppContainer = request.app.state.container
        try:
            total = state_container.history_service.append(
                user_id, payload.to_item(user_id)
            )
        except InfrastructureError:
            logger.exception(
                "Failed to save history",
                extra={"user_id": user_id, "item_id": payload.id},
            )
            return _server_error("Failed to save history")
        return {"success": True, "totalItems": total}

    @app.post("/api/history/{user_id}/update-frame", response_model=None)
    async def update_frame(
        user_id: str, payload: UpdateFramePayload, request: Request
    ) -> dict[str, object] | JSONResponse:
        """Attach a frame id to one of the user's history items."""
        state_container: AppContainer = request.app.state.container
        try:
            updated = state_container.history_service.update_frame(
                user_id, payload.item_id, payload.frame_id
            )
        except NotFoundError as exc:
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"success": False, "message": str(exc)},
            )
        except InfrastructureError:
            logger.exception(
                "Failed to update frame ID",
                extra={"user_id": user_id, "item_id": payload.item_id},
            )
            return _server_error("Failed to update frame ID")
        return {
            "success": True,
            "message": f"Updated frameId for item {payload.item_id}",
            "updatedRows": updated,
        }

    @app.post("/api/verify-license", response_model=None)
    async def verify_license(
        payload: VerifyLicensePayload, request: Request
    ) -> dict[str, object] | JSONResponse:
        """Redeem a license key for in-app flowers."""
        state_container: AppContainer = request.app.state.container
        try:
            result = await state_container.license_service.redeem(
                product_id=payload.product_id,
                license_key=payload.license_key,
                user_id=payload.user_id,
            )
        except InfrastructureError:
            logger.exception(
                "Failed to verify license",
                extra={"user_id": payload.user_id, "product_id": payload.product_id},
            )
            return _server_error("Failed to verify license")
        return _serialize_redemption_result(result)

    return app


def _parse_limit(raw: str | None, default: int) -> int | None:
    """Parse the ``limit`` query value; ``all`` disables pagination."""
    if raw is None or not raw.strip():
        return default
    cleaned = raw.strip().lower()
    if cleaned == "all":
        return None
    if not cleaned.isdecimal() or int(cleaned) == 0:
        raise ValidationError("limit must be a positive integer or 'all'")
    return int(cleaned)


def _server_error(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": message},
    )


def _describe_validation_errors(exc: RequestValidationError) -> str:
    fields = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        if location:
            fields.append(".".join(location))
    if not fields:
        return "Invalid request"
    return f"Missing or invalid fields: {', '.join(dict.fromkeys(fields))}"


def _serialize_history_item(item: HistoryItem) -> dict[str, object]:
    return {
        "id": item.item_id,
        "prompt": item.prompt,
        "imageUrl": item.image_url,
        "originalImageUrl": item.original_image_url,
        "frameId": item.frame_id,
        "frameName": item.frame_name,
        "timestamp": item.timestamp.isoformat(),
        "quality": item.quality,
        "dimensions": {"width": item.width, "height": item.height},
    }


def _serialize_redemption_result(result: RedemptionResult) -> dict[str, object]:
    if result.outcome is RedemptionOutcome.REDEEMED:
        return {
            "success": True,
            "message": result.message,
            "tier": result.tier,
            "flowers": result.credits_granted,
            "creditsGranted": result.credits_granted,
            "purchase": result.purchase,
        }
    payload: dict[str, object] = {
        "success": False,
        "message": result.message,
        "alreadyUsed": result.outcome is RedemptionOutcome.ALREADY_USED,
    }
    if result.activated_at is not None:
        payload["activatedAt"] = result.activated_at.isoformat()
        payload["activatedBy"] = result.activated_by
    return payload
