from __future__ import annotations

from datetime import datetime, timezone


def utc_isoformat(dt: datetime | None = None) -> str:
    dt = dt or datetime.now(timezone.utc)
    return dt.isoformat().replace("+00:00", "Z")


def timestamped_name(prefix: str, dt: datetime | None = None) -> str:
    # e.g. run_20260115T093000Z; sorts chronologically as a directory name
    dt = dt or datetime.now(timezone.utc)
    return f"{prefix}_{dt.strftime('%Y%m%dT%H%M%SZ')}"
