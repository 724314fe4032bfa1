"""Domain models for the generation history log."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class HistoryItem:
    """Represents one generated image in a user's history."""

    user_id: str
    item_id: str
    prompt: str
    timestamp: datetime
    image_url: str | None = None
    original_image_url: str | None = None
    frame_id: str | None = None
    frame_name: str | None = None
    quality: str | None = None
    width: int | None = None
    height: int | None = None


@dataclass(frozen=True)
class HistoryPage:
    """A page of history items with pagination metadata."""

    items: list[HistoryItem]
    total_items: int
    total_pages: int
    current_page: int
