from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import httpx
import uvicorn
from fastapi import FastAPI, Form, HTTPException, Query
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from stationlog import fetch_history
from stationlog.config import APP_VERSION, POLL_INTERVAL_SECONDS, SERVER_HOST, SERVER_PORT
from stationlog.dashboard_html import render_dashboard_page
from stationlog.poller import PollDriver
from stationlog.state import DashboardState

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

state = DashboardState()
_start_time: float = 0.0
_driver: PollDriver | None = None  # set during lifespan


def _uptime_str() -> str:
    elapsed = time.monotonic() - _start_time
    days = int(elapsed // 86400)
    hours = int((elapsed % 86400) // 3600)
    if days > 0:
        return f"{days}d {hours}h"
    minutes = int((elapsed % 3600) // 60)
    return f"{hours}h {minutes}m"


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _start_time, _driver

    _start_time = time.monotonic()

    async with httpx.AsyncClient() as client:
        driver = PollDriver(state, client)
        _driver = driver

        # Start the background poller
        task = asyncio.create_task(driver.run())
        try:
            yield
        finally:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            await driver.aclose()
        _driver = None


app = FastAPI(title="SimRail Station Occupancy Log", version=APP_VERSION, lifespan=lifespan)


@app.get("/", response_class=HTMLResponse)
async def dashboard_page():
    html = render_dashboard_page(state.view(), refresh_seconds=POLL_INTERVAL_SECONDS)
    return HTMLResponse(content=html)


@app.post("/server")
async def select_server(server_code: str = Form(...)):
    if not state.has_server(server_code):
        raise HTTPException(status_code=404, detail=f"Unknown server {server_code!r}")
    if _driver is None:
        state.select_server(server_code)
    else:
        _driver.select_server(server_code)
    return RedirectResponse("/", status_code=303)


@app.post("/theme")
async def toggle_theme():
    state.toggle_theme()
    return RedirectResponse("/", status_code=303)


@app.post("/filter")
async def change_filter(station: str = Form("")):
    state.set_filter(station)
    return RedirectResponse("/", status_code=303)


@app.get("/api/v1/state")
async def get_state():
    return JSONResponse(content={
        "generated": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        **state.view().to_api_dict(),
    })


@app.api_route("/api/v1/status", methods=["GET", "HEAD"])
async def get_status():
    last = fetch_history.last()
    return JSONResponse(
        content={
            "version": APP_VERSION,
            "uptime": _uptime_str(),
            "selected_server": state.selected_server or None,
            "total_stations": state.log.count,
            "total_events": state.log.event_count,
            "in_flight": _driver.in_flight if _driver is not None else 0,
            "last_fetch": last.to_api_dict() if last else None,
        }
    )


@app.get("/api/v1/fetch-history")
async def get_fetch_history(
    page: int = Query(1, ge=1),
    kind: str = Query(""),
    status: str = Query(""),
):
    events, total = fetch_history.load_page(page=page, kind=kind, status=status)
    return JSONResponse(content={
        "page": page,
        "page_size": fetch_history.PAGE_SIZE,
        "total": total,
        "events": [e.to_api_dict() for e in events],
    })


def run() -> None:
    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT)
