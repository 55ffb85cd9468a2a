from __future__ import annotations

import logging
from collections import deque
from dataclasses import asdict, dataclass

from stationlog.config import FETCH_HISTORY_SIZE

logger = logging.getLogger(__name__)

PAGE_SIZE = 15


@dataclass
class FetchEvent:
    time: str      # ISO-8601 UTC
    kind: str      # "servers" | "stations"
    server: str    # server code the fetch targeted, "" for the server list
    status: str    # "ok" | "error" | "stale"
    stations: int  # entries in the response, 0 on error
    error: str     # "" on success

    def to_api_dict(self) -> dict:
        return asdict(self)


# In-memory only, oldest entries fall off once the ring is full
_events: deque[FetchEvent] = deque(maxlen=FETCH_HISTORY_SIZE)


def record(event: FetchEvent) -> None:
    """Append one fetch event to the ring."""
    _events.append(event)
    if event.status == "error":
        logger.debug("Recorded failed %s fetch for %r", event.kind, event.server)


def last() -> FetchEvent | None:
    return _events[-1] if _events else None


def clear() -> None:
    _events.clear()


def load_page(
    page: int = 1,
    kind: str = "",
    status: str = "",
) -> tuple[list[FetchEvent], int]:
    """Return (events, total_filtered) for the given page, newest first.

    Optionally filter by kind ("servers"|"stations") and/or status
    ("ok"|"error"|"stale"). Page is 1-based.
    """
    all_events = [
        e for e in reversed(_events)
        if (not kind or e.kind == kind) and (not status or e.status == status)
    ]
    total = len(all_events)
    start = (page - 1) * PAGE_SIZE
    return all_events[start: start + PAGE_SIZE], total
