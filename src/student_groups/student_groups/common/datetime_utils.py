from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current UTC time (naive, as stored in DATETIME columns).

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat(timespec="seconds")
