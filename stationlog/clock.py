from __future__ import annotations

from datetime import datetime, timezone


def local_offset_seconds(at: datetime | None = None) -> int:
    """Return the local UTC offset in seconds, as it is right now (or at `at`)."""
    if at is None:
        at = datetime.now(timezone.utc)
    offset = at.astimezone().utcoffset()
    return int(offset.total_seconds()) if offset is not None else 0


def format_clock(instant: datetime, offset_seconds: int | None = None) -> str:
    """Render an instant as local wall-clock HH:MM:SS, without a date.

    The offset is taken at render time, not at capture time, so events
    captured before a DST change are shown with the new offset.
    """
    if offset_seconds is None:
        offset_seconds = local_offset_seconds()
    secs = int(instant.timestamp()) + offset_seconds
    secs %= 86400
    h, rem = divmod(secs, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"
