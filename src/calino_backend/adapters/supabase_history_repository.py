"""Supabase implementation of the history log."""

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
from calino_backend.domain.history import HistoryItem
from calino_backend.services.history import HistoryRepository

_COLUMNS = (
    "item_id, user_id, prompt, image_url, original_image_url, frame_id, "
    "frame_name, timestamp, quality, width, height"
)
_UPSERT_ATTEMPTS = 2


@dataclass
class SupabaseHistoryRepository(HistoryRepository):
    """Supabase-backed repository for user history."""

    client: Client
    table: str = "user_history"

    def upsert_item(self, item: HistoryItem) -> None:
        """Insert an item, refreshing an existing row with the same item id.

        The row can be evicted between a conflicting insert and the update,
        so an update that matches nothing goes back to inserting.
        """
        for _ in range(_UPSERT_ATTEMPTS):
            if self._insert_item(item):
                return
            with storage_errors("update history item"):
                response = (
                    self.client.table(self.table)
                    .update(
                        {
                            "prompt": item.prompt,
                            "image_url": item.image_url,
                            "original_image_url": item.original_image_url,
                            "timestamp": item.timestamp.isoformat(),
                        }
                    )
                    .eq("item_id", item.item_id)
                    .execute()
                )
            if response.data:
                return
        raise InfrastructureError("Failed to save history item")

    def _insert_item(self, item: HistoryItem) -> bool:
        """Insert a row; return false when the item id already exists."""
        try:
            self.client.table(self.table).insert(_serialize_item(item)).execute()
        except APIError as exc:
            if is_unique_violation(exc):
                return False
            raise InfrastructureError("Failed to save history item") from exc
        except httpx.HTTPError as exc:
            raise InfrastructureError("Failed to save history item") from exc
        return True

    def count_items(self, user_id: str) -> int:
        """Return the number of history rows for a user."""
        with storage_errors("count history items"):
            response = (
                self.client.table(self.table)
                .select("id", count="exact")
                .eq("user_id", user_id)
                .execute()
            )
        return int(response.count or 0)

    def list_items(
        self, user_id: str, search: str | None, offset: int, limit: int | None
    ) -> tuple[list[HistoryItem], int]:
        """Return newest-first items for a user with the total match count."""
        query = (
            self.client.table(self.table)
            .select(_COLUMNS, count="exact")
            .eq("user_id", user_id)
        )
        if search:
            query = query.ilike("prompt", f"%{_escape_like(search)}%")
        query = query.order("timestamp", desc=True)
        if limit is not None:
            query = query.range(offset, offset + limit - 1)
        with storage_errors("load history"):
            response = query.execute()
        rows = response.data or []
        total = response.count if response.count is not None else len(rows)
        return [_parse_item(row) for row in rows], int(total)

    def delete_all_but_recent(self, user_id: str, keep: int) -> int:
        """Delete rows beyond the ``keep`` most recent for a user."""
        with storage_errors("trim history"):
            response = (
                self.client.table(self.table)
                .select("id")
                .eq("user_id", user_id)
                .order("timestamp", desc=True)
                .execute()
            )
            stale_ids = [row["id"] for row in (response.data or [])[keep:]]
            if not stale_ids:
                return 0
            self.client.table(self.table).delete().in_("id", stale_ids).execute()
        return len(stale_ids)

    def update_frame(self, user_id: str, item_id: str, frame_id: str) -> int:
        """Set frame_id on the row matching both user and item id."""
        with storage_errors("update frame id"):
            response = (
                self.client.table(self.table)
                .update({"frame_id": frame_id})
                .eq("user_id", user_id)
                .eq("item_id", item_id)
                .execute()
            )
        return len(response.data or [])


def _serialize_item(item: HistoryItem) -> dict[str, object]:
    return {
        "user_id": item.user_id,
        "item_id": item.item_id,
        "prompt": item.prompt,
        "image_url": item.image_url,
        "original_image_url": item.original_image_url,
        "frame_id": item.frame_id,
        "frame_name": item.frame_name,
        "quality": item.quality,
        "width": item.width,
        "height": item.height,
        "timestamp": item.timestamp.isoformat(),
    }


def _parse_item(row: dict[str, object]) -> HistoryItem:
    """Parse a history row into a domain model."""
    width = row.get("width")
    height = row.get("height")
    return HistoryItem(
        user_id=str(row.get("user_id", "")),
        item_id=str(row["item_id"]),
        prompt=str(row.get("prompt", "")),
        timestamp=parse_timestamp(row.get("timestamp")),
        image_url=row.get("image_url"),
        original_image_url=row.get("original_image_url"),
        frame_id=row.get("frame_id"),
        frame_name=row.get("frame_name"),
        quality=row.get("quality"),
        width=int(width) if width is not None else None,
        height=int(height) if height is not None else None,
    )


def _escape_like(text: str) -> str:
    """Escape LIKE wildcards so search text matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
