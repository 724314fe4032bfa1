"""History log services with bounded per-user retention."""

import logging
import math
from dataclasses import dataclass
from typing import Protocol

from calino_backend.domain.errors import (
    InfrastructureError,
    NotFoundError,
    ValidationError,
)
from calino_backend.domain.history import HistoryItem, HistoryPage

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_LIMIT = 50


class HistoryRepository(Protocol):
    """Persistence interface for history items."""

    def upsert_item(self, item: HistoryItem) -> None:
        """Insert an item, or refresh prompt, images and timestamp by item id."""

    def count_items(self, user_id: str) -> int:
        """Return the number of stored items for a user."""

    def list_items(
        self, user_id: str, search: str | None, offset: int, limit: int | None
    ) -> tuple[list[HistoryItem], int]:
        """Return newest-first items in the window and the total match count."""

    def delete_all_but_recent(self, user_id: str, keep: int) -> int:
        """Delete all but the ``keep`` most recent items; return deleted count."""

    def update_frame(self, user_id: str, item_id: str, frame_id: str) -> int:
        """Set the frame id for a user's item and return the updated count."""


@dataclass
class HistoryService:
    """Application service for the per-user generation history."""

    repository: HistoryRepository
    retention_limit: int = DEFAULT_RETENTION_LIMIT

    def append(self, user_id: str, item: HistoryItem) -> int:
        """Store an item and trim the user's history to the retention limit.

        Returns the number of items the user has after trimming.
        """
        self.repository.upsert_item(item)
        try:
            removed = self.repository.delete_all_but_recent(
                user_id, self.retention_limit
            )
        except InfrastructureError:
            logger.exception("History eviction failed", extra={"user_id": user_id})
        else:
            if removed:
                logger.info(
                    "Evicted %s history items",
                    removed,
                    extra={"user_id": user_id},
                )
        return self.repository.count_items(user_id)

    def query(
        self,
        user_id: str,
        page: int = 0,
        page_size: int | None = 10,
        search: str | None = None,
    ) -> HistoryPage:
        """Return one page of a user's history, newest first.

        ``page_size=None`` returns every matching item on a single page.
        """
        if page < 0:
            raise ValidationError("page must be zero or greater")
        if page_size is not None and page_size <= 0:
            raise ValidationError("limit must be a positive integer or 'all'")
        cleaned = search.strip() if search else ""
        offset = page * page_size if page_size is not None else 0
        items, total = self.repository.list_items(
            user_id, cleaned or None, offset, page_size
        )
        return HistoryPage(
            items=items,
            total_items=total,
            total_pages=_total_pages(total, page_size),
            current_page=page,
        )

    def update_frame(self, user_id: str, item_id: str, frame_id: str) -> int:
        """Attach a frame id to a history item."""
        updated = self.repository.update_frame(user_id, item_id, frame_id)
        if updated == 0:
            raise NotFoundError(
                f"No history item found with id {item_id} for user {user_id}"
            )
        return updated


def _total_pages(total: int, page_size: int | None) -> int:
    if total == 0:
        return 0
    if page_size is None:
        return 1
    return math.ceil(total / page_size)
