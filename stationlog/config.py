from __future__ import annotations

import os

APP_VERSION = "0.3.0"

SIMRAIL_API_BASE_URL = os.getenv("SIMRAIL_API_BASE_URL", "https://panel.simrail.eu:8084").rstrip("/")
SERVERS_PATH = "/servers-open"
STATIONS_PATH = "/stations-open"

POLL_INTERVAL_SECONDS = float(os.getenv("POLL_INTERVAL_SECONDS", "1.0"))

# Unset means fetches never time out; a hung fetch just loses its cycle.
_timeout = os.getenv("HTTP_TIMEOUT_SECONDS", "")
HTTP_TIMEOUT_SECONDS: float | None = float(_timeout) if _timeout else None

FETCH_HISTORY_SIZE = int(os.getenv("FETCH_HISTORY_SIZE", "500"))

BOT_OCCUPANT = "BOT"
STEAM_PROFILE_URL = "https://steamcommunity.com/profiles/{steam_id}"

SERVER_HOST = "0.0.0.0"
SERVER_PORT = int(os.getenv("PORT", "8080"))
