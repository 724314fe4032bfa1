"""Pydantic models for plugin request payloads."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from calino_backend.domain.history import HistoryItem


class Dimensions(BaseModel):
    """Pixel size of a generated image."""

    width: int | None = None
    height: int | None = None


class HistoryItemPayload(BaseModel):
    """A history entry as sent by the plugin."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    prompt: str = Field(min_length=1)
    image_url: str | None = Field(default=None, alias="imageUrl")
    original_image_url: str | None = Field(default=None, alias="originalImageUrl")
    frame_id: str | None = Field(default=None, alias="frameId")
    frame_name: str | None = Field(default=None, alias="frameName")
    quality: str | None = None
    timestamp: datetime | None = None
    dimensions: Dimensions | None = None

    def to_item(self, user_id: str) -> HistoryItem:
        """Convert the payload to a domain item owned by ``user_id``."""
        timestamp = self.timestamp or datetime.now(tz=UTC)
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=UTC)
        dimensions = self.dimensions or Dimensions()
        return HistoryItem(
            user_id=user_id,
            item_id=self.id,
            prompt=self.prompt,
            timestamp=timestamp,
            image_url=self.image_url,
            original_image_url=self.original_image_url,
            frame_id=self.frame_id,
            frame_name=self.frame_name,
            quality=self.quality,
            width=dimensions.width,
            height=dimensions.height,
        )


class UpdateFramePayload(BaseModel):
    """Request body for attaching a frame to a history item."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    item_id: str = Field(min_length=1, alias="itemId")
    frame_id: str = Field(min_length=1, alias="frameId")


class VerifyLicensePayload(BaseModel):
    """Request body for redeeming a license key."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    product_id: str = Field(min_length=1, alias="productId")
    license_key: str = Field(min_length=1, alias="licenseKey")
    user_id: str = Field(min_length=1, alias="userId")
