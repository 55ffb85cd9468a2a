"""Application state of the dashboard.

All mutations go through the transition methods of `DashboardState`; the
poll driver and the web handlers never touch the fields directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from stationlog.models import Server, Station, StationHistory
from stationlog.store import OccupancyLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardView:
    """Read-only snapshot handed to the renderers."""

    servers: tuple[Server, ...]  # active servers only
    selected_server: str
    dark: bool
    filter_text: str
    prefixes: tuple[str, ...]
    stations: tuple[StationHistory, ...]

    def to_api_dict(self) -> dict:
        return {
            "servers": [s.to_api_dict() for s in self.servers],
            "selected_server": self.selected_server,
            "dark": self.dark,
            "filter": self.filter_text,
            "stations": [h.to_api_dict() for h in self.stations],
        }


@dataclass
class DashboardState:
    servers: list[Server] = field(default_factory=list)
    selected_server: str = ""  # "" = nothing selected yet
    dark: bool = True
    filter_text: str = ""
    log: OccupancyLog = field(default_factory=OccupancyLog)
    selection: int = 0  # bumped on every select_server, tags in-flight fetches

    def active_servers(self) -> list[Server]:
        return [s for s in self.servers if s.active]

    def has_server(self, code: str) -> bool:
        """True if `code` is one of the servers offered in the selector."""
        return any(s.code == code for s in self.active_servers())

    def servers_loaded(self, servers: list[Server]) -> str | None:
        """Store a fresh server list.

        If nothing is selected yet, the first active server is selected and
        its code returned so the caller can poll it right away.
        """
        self.servers = list(servers)
        if self.selected_server:
            return None
        active = self.active_servers()
        if not active:
            logger.warning("Server list has no active servers; staying idle")
            return None
        self.select_server(active[0].code)
        return active[0].code

    def select_server(self, code: str) -> None:
        """Switch to another server. Histories never carry over."""
        self.log.clear()
        self.selected_server = code
        self.selection += 1
        logger.info("Selected server %s", code)

    def is_current(self, server_code: str, selection: int) -> bool:
        return server_code == self.selected_server and selection == self.selection

    def ingest(self, server_code: str, selection: int, stations: list[Station]) -> int:
        """Apply a snapshot fetched for `server_code` under `selection`.

        Snapshots tagged with an earlier selection are dropped, even when the
        same server has been selected again since.
        """
        if not self.is_current(server_code, selection):
            logger.info(
                "Ignoring stale snapshot for %s (selection %d, current: %s #%d)",
                server_code, selection, self.selected_server or "none", self.selection,
            )
            return 0
        return self.log.ingest(stations)

    def toggle_theme(self) -> None:
        self.dark = not self.dark

    def set_filter(self, text: str) -> None:
        self.filter_text = text

    def view(self) -> DashboardView:
        return DashboardView(
            servers=tuple(self.active_servers()),
            selected_server=self.selected_server,
            dark=self.dark,
            filter_text=self.filter_text,
            prefixes=tuple(self.log.prefixes()),
            stations=tuple(self.log.view(self.filter_text)),
        )
