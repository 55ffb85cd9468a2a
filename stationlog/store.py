from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

from stationlog.dedup import resolve_occupant, should_append
from stationlog.models import OccupancyEvent, Station, StationHistory

logger = logging.getLogger(__name__)


class OccupancyLog:
    """Thread-safe in-memory occupancy history, keyed by station prefix.

    Histories are append-only and keep the order in which stations were
    first observed. Consecutive identical occupants are collapsed into one
    event.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stations: dict[str, list[OccupancyEvent]] = {}

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._stations)

    @property
    def event_count(self) -> int:
        with self._lock:
            return sum(len(events) for events in self._stations.values())

    def ingest(self, stations: list[Station], now: datetime | None = None) -> int:
        """Apply one station snapshot. Returns the number of events appended.

        Every station in the snapshot ends up with at least one event.
        Stations missing from the snapshot are left untouched. A prefix
        repeated within one snapshot is compared against the state the
        earlier occurrence left behind.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        appended = 0
        with self._lock:
            for s in stations:
                occupant = resolve_occupant(s)
                events = self._stations.get(s.prefix)
                if events is None:
                    events = self._stations[s.prefix] = []
                if should_append(events, occupant):
                    events.append(OccupancyEvent(time=now, occupant=occupant))
                    appended += 1
                    logger.debug("Station %s now occupied by %s", s.prefix, occupant)
        if appended:
            logger.debug("Occupancy log updated: %d stations in snapshot, %d new events", len(stations), appended)
        return appended

    def clear(self) -> None:
        with self._lock:
            self._stations.clear()

    def history(self, prefix: str) -> tuple[OccupancyEvent, ...]:
        """Return a copy of one station's events (empty if never observed)."""
        with self._lock:
            return tuple(self._stations.get(prefix, ()))

    def prefixes(self) -> list[str]:
        """Observed station prefixes in first-observation order."""
        with self._lock:
            return list(self._stations)

    def view(self, filter_text: str = "") -> list[StationHistory]:
        """Return histories for display.

        An empty filter selects every station; otherwise only the station
        whose prefix equals the filter. Does not mutate the log.
        """
        with self._lock:
            return [
                StationHistory(prefix=prefix, events=tuple(events))
                for prefix, events in self._stations.items()
                if not filter_text or prefix == filter_text
            ]
