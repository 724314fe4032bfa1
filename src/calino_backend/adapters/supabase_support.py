"""Helpers shared by the Supabase repositories."""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from calino_backend.domain.errors import InfrastructureError

UNIQUE_VIOLATION = "23505"


def is_unique_violation(exc: APIError) -> bool:
    """Return true when PostgREST reports a unique constraint violation."""
    return str(getattr(exc, "code", "")) == UNIQUE_VIOLATION


def close_client(client: Client) -> None:
    """Close the HTTP session behind a Supabase client's PostgREST handle."""
    client.postgrest.session.close()


@contextmanager
def storage_errors(action: str) -> Iterator[None]:
    """Re-raise PostgREST and transport failures as infrastructure errors."""
    try:
        yield
    except (APIError, httpx.HTTPError) as exc:
        raise InfrastructureError(f"Failed to {action}") from exc


def parse_timestamp(raw: object) -> datetime:
    """Parse a timestamp column, treating naive values as UTC."""
    if isinstance(raw, datetime):
        value = raw
    elif isinstance(raw, str) and raw:
        value = datetime.fromisoformat(raw)
    else:
        raise InfrastructureError(f"Invalid timestamp value: {raw!r}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value
