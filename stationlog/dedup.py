from __future__ import annotations

from collections.abc import Sequence

from stationlog.config import BOT_OCCUPANT
from stationlog.models import OccupancyEvent, Station


def resolve_occupant(station: Station) -> str:
    """Return who controls the station: the first dispatcher, or the bot."""
    if station.dispatcher_id is None:
        return BOT_OCCUPANT
    return station.dispatcher_id


def should_append(events: Sequence[OccupancyEvent], occupant: str) -> bool:
    """Decide whether `occupant` starts a new entry in a station's log.

    Only the last event matters. A repeat of the current occupant is
    collapsed (no new event, original timestamp kept), while a return after
    somebody else (A, B, A) is a new event.
    """
    if not events:
        return True
    return events[-1].occupant != occupant
