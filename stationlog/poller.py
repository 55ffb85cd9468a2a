from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

import httpx

from stationlog import fetch_history
from stationlog.config import POLL_INTERVAL_SECONDS
from stationlog.fetchers.simrail import fetch_servers, fetch_stations
from stationlog.state import DashboardState

logger = logging.getLogger(__name__)


def _now_str() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class PollDriver:
    """Fire-and-forget poller feeding station snapshots into the dashboard state.

    Each tick starts one station fetch for the selected server, tagged with
    that server's code and the selection counter at the time of the tick.
    Fetches are not serialized or cancelled on a server switch; a result is
    applied whenever it resolves and dropped by the state if its tag no
    longer matches the current selection. Failed fetches are logged and the
    cycle is lost; the next tick tries again.
    """

    def __init__(
        self,
        state: DashboardState,
        client: httpx.AsyncClient,
        interval: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        self.state = state
        self.client = client
        self.interval = interval
        self._tasks: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def tick(self) -> asyncio.Task | None:
        """Start one station fetch for the selected server. No-op if none is selected."""
        code = self.state.selected_server
        if not code:
            return None
        task = asyncio.create_task(self._poll_stations(code, self.state.selection))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def select_server(self, code: str) -> asyncio.Task | None:
        self.state.select_server(code)
        return self.tick()

    async def load_servers(self) -> bool:
        """Fetch the server list. Returns False if the fetch failed."""
        try:
            servers = await fetch_servers(self.client)
        except Exception as exc:
            logger.exception("Server list fetch failed")
            fetch_history.record(fetch_history.FetchEvent(
                time=_now_str(), kind="servers", server="",
                status="error", stations=0, error=str(exc),
            ))
            return False
        fetch_history.record(fetch_history.FetchEvent(
            time=_now_str(), kind="servers", server="",
            status="ok", stations=len(servers), error="",
        ))
        if self.state.servers_loaded(servers):
            self.tick()
        return True

    async def _poll_stations(self, code: str, selection: int) -> None:
        try:
            stations = await fetch_stations(self.client, code)
        except Exception as exc:
            logger.exception("Station fetch for %s failed", code)
            fetch_history.record(fetch_history.FetchEvent(
                time=_now_str(), kind="stations", server=code,
                status="error", stations=0, error=str(exc),
            ))
            return
        stale = not self.state.is_current(code, selection)
        self.state.ingest(code, selection, stations)
        fetch_history.record(fetch_history.FetchEvent(
            time=_now_str(), kind="stations", server=code,
            status="stale" if stale else "ok", stations=len(stations), error="",
        ))

    async def run(self) -> None:
        """Poll forever. Until a server is selected, keep retrying the server list."""
        while True:
            if self.state.selected_server:
                self.tick()
            else:
                await self.load_servers()
            await asyncio.sleep(self.interval)

    async def aclose(self) -> None:
        """Cancel in-flight fetches. Only used on shutdown."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
