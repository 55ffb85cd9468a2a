from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from stationlog.config import BOT_OCCUPANT


@dataclass(slots=True, frozen=True)
class Server:
    """A SimRail multiplayer server as listed by /servers-open."""

    code: str    # server_code, e.g. "en1"
    name: str    # server_name, human readable
    active: bool  # is_active

    def to_api_dict(self) -> dict:
        return {"code": self.code, "name": self.name, "active": self.active}


@dataclass(slots=True, frozen=True)
class Station:
    """One station entry of a /stations-open snapshot.

    Only the first listed dispatcher is kept. Stations with several
    simultaneous dispatchers are not modelled.
    """

    prefix: str
    dispatcher_id: Optional[str] = None  # steam_id of the first dispatcher


@dataclass(slots=True, frozen=True)
class OccupancyEvent:
    """A change of occupant on a station, observed at `time` (UTC)."""

    time: datetime
    occupant: str  # steam_id or BOT_OCCUPANT

    @property
    def is_bot(self) -> bool:
        return self.occupant == BOT_OCCUPANT

    def to_api_dict(self) -> dict:
        return {
            "time": self.time.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "occupant": self.occupant,
        }


@dataclass(slots=True, frozen=True)
class StationHistory:
    """Read-only copy of one station's occupancy log."""

    prefix: str
    events: tuple[OccupancyEvent, ...]

    def to_api_dict(self) -> dict:
        return {
            "prefix": self.prefix,
            "events": [e.to_api_dict() for e in self.events],
        }
